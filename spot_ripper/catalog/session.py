"""
Catalog session for spot-ripper.

This module defines the contract the pipeline needs from the catalog
service and the adapter that fulfils it with librespot-python.

The pipeline only ever talks to CatalogSession. Everything that knows
about librespot (protobuf messages, id classes, the CDN) stays in
LibrespotSession, so tests can substitute an in-memory catalog.

Authentication:
    LibrespotSession.connect() logs in with a username/password pair.
    Any failure during login is a CatalogError with is_auth_error=True,
    which aborts the whole run.

Region restrictions:
    The catalog attaches restriction entries to tracks. An entry applies
    to this session when the session's country is listed in
    countries_forbidden, or when countries_allowed is non-empty and does
    not list it. Both fields are strings of concatenated two-letter codes
    ("USGBDE").

Usage:
    from spot_ripper.catalog.session import LibrespotSession

    session = LibrespotSession.connect("user@example.com", "hunter2")
    try:
        track = session.get_track(identifier)
    finally:
        session.close()
"""

from abc import ABC, abstractmethod
from typing import BinaryIO

import requests
from librespot.core import Session
from librespot.metadata import AlbumId, ArtistId, PlaylistId, TrackId
from librespot.proto import Metadata_pb2 as Metadata

from spot_ripper.catalog.models import (
    AlbumRecord,
    ArtistRecord,
    CatalogIdentifier,
    CollectionRecord,
    CoverImage,
    IdentifierKind,
    ImageSize,
    TrackRecord,
    decode_base62,
)
from spot_ripper.core.exceptions import CatalogError, IdentifierError, TransferError
from spot_ripper.core.logger import get_logger


logger = get_logger(__name__)

CDN_TIMEOUT = 30


class CatalogSession(ABC):
    """
    Authenticated access to the catalog.

    Every getter returns a freshly fetched record; nothing is cached
    between calls.

    Raises (all getters):
        CatalogError: If the record does not exist (is_not_found=True) or
                      the request failed.
    """

    @abstractmethod
    def get_track(self, identifier: CatalogIdentifier) -> TrackRecord:
        ...

    @abstractmethod
    def get_album(self, album_id: str) -> AlbumRecord:
        ...

    @abstractmethod
    def get_artist(self, artist_id: str) -> ArtistRecord:
        ...

    @abstractmethod
    def get_collection(self, identifier: CatalogIdentifier) -> CollectionRecord:
        ...

    @abstractmethod
    def request_content_key(self, track_id: CatalogIdentifier, file_key: str) -> bytes | None:
        """
        Ask the service for the decryption key of one content file.

        Returns:
            The key, or None if the service did not issue one.
        """

    @abstractmethod
    def open_content_stream(self, file_key: str, bitrate: int) -> BinaryIO:
        """
        Open the encrypted byte stream of one content file.

        Args:
            file_key: Hex content file key from TrackRecord.files.
            bitrate: Nominal bitrate of the chosen format, in kbps.

        Returns:
            A readable binary stream. The caller closes it.

        Raises:
            TransferError: If the stream cannot be opened.
        """

    def close(self) -> None:
        """Release the connection. Default: nothing to release."""

    def __enter__(self) -> "CatalogSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def parse_country_codes(codes: str) -> set[str]:
    """Split a string of concatenated two-letter country codes."""
    return {codes[i:i + 2] for i in range(0, len(codes) - 1, 2)}


def restriction_applies(country: str, allowed: str, forbidden: str) -> bool:
    """
    Check whether one restriction entry blocks playback in a country.

    Args:
        country: Two-letter code of the session's country.
        allowed: Concatenated codes where playback is allowed ("" = anywhere).
        forbidden: Concatenated codes where playback is forbidden.
    """
    if country in parse_country_codes(forbidden):
        return True
    if allowed and country not in parse_country_codes(allowed):
        return True
    return False


class LibrespotSession(CatalogSession):
    """
    CatalogSession backed by a librespot-python Session.

    Attributes:
        session: The underlying librespot Session.
        country: Two-letter code the session reported at login.
        http: requests.Session used to read CDN content.
    """

    def __init__(self, session: Session, http: requests.Session | None = None) -> None:
        self.session = session
        self.country = session.country()
        self.http = http or requests.Session()

    @classmethod
    def connect(cls, username: str, password: str) -> "LibrespotSession":
        """
        Log in and return a ready session.

        Raises:
            CatalogError: With is_auth_error=True if login fails for any
                          reason (bad credentials, network, protocol).
        """
        logger.info("Connecting ...")
        try:
            session = Session.Builder().user_pass(username, password).create()
        except Exception as e:
            raise CatalogError(
                f"Could not log in as {username}: {e}",
                details={"username": username, "original_error": str(e)},
                is_auth_error=True
            ) from e
        logger.info("Connected!")
        return cls(session)

    def close(self) -> None:
        self.http.close()
        self.session.close()

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def get_track(self, identifier: CatalogIdentifier) -> TrackRecord:
        logger.debug(f"Fetching track {identifier.token}")
        try:
            message = self.session.api().get_metadata_4_track(
                TrackId.from_base62(identifier.token)
            )
        except Exception as e:
            raise CatalogError(
                f"Cannot get track metadata for {identifier.token}: {e}",
                details={"track_id": identifier.token, "original_error": str(e)}
            ) from e
        return self._track_from_message(message, identifier)

    def get_album(self, album_id: str) -> AlbumRecord:
        try:
            message = self.session.api().get_metadata_4_album(AlbumId.from_hex(album_id))
        except Exception as e:
            raise CatalogError(
                f"Cannot get album metadata for {album_id}: {e}",
                details={"album_id": album_id, "original_error": str(e)}
            ) from e

        images = message.cover_group.image or message.cover
        covers = tuple(
            CoverImage(image_id=image.file_id.hex(), size=ImageSize(image.size))
            for image in images
        )
        return AlbumRecord(
            identifier=album_id,
            name=message.name,
            genres=tuple(message.genre),
            covers=covers,
        )

    def get_artist(self, artist_id: str) -> ArtistRecord:
        try:
            message = self.session.api().get_metadata_4_artist(ArtistId.from_hex(artist_id))
        except Exception as e:
            raise CatalogError(
                f"Cannot get artist metadata for {artist_id}: {e}",
                details={"artist_id": artist_id, "original_error": str(e)}
            ) from e
        return ArtistRecord(identifier=artist_id, name=message.name)

    def get_collection(self, identifier: CatalogIdentifier) -> CollectionRecord:
        logger.debug(f"Fetching playlist {identifier.token}")
        try:
            playlist = self.session.api().get_playlist(PlaylistId(identifier.token))
        except Exception as e:
            raise CatalogError(
                f"Cannot get playlist {identifier.token}: {e}",
                details={"playlist_id": identifier.token, "original_error": str(e)}
            ) from e

        members = []
        for item in playlist.contents.items:
            member = _track_identifier_from_uri(item.uri)
            if member is None:
                logger.warning(f"Skipping non-track playlist entry {item.uri}")
                continue
            members.append(member)

        return CollectionRecord(
            identifier=identifier,
            name=playlist.attributes.name,
            members=tuple(members),
        )

    def _track_from_message(self, message, identifier: CatalogIdentifier) -> TrackRecord:
        restrictions = tuple(
            _describe_restriction(entry)
            for entry in message.restriction
            if restriction_applies(self.country, entry.countries_allowed, entry.countries_forbidden)
        )
        files = {
            Metadata.AudioFile.Format.Name(audio_file.format): audio_file.file_id.hex()
            for audio_file in message.file
        }
        return TrackRecord(
            identifier=identifier,
            name=message.name,
            artist_ids=tuple(artist.gid.hex() for artist in message.artist),
            album_id=message.album.gid.hex(),
            restrictions=restrictions,
            alternatives=tuple(
                CatalogIdentifier.from_gid(IdentifierKind.TRACK, alternative.gid)
                for alternative in message.alternative
            ),
            files=files,
        )

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def request_content_key(self, track_id: CatalogIdentifier, file_key: str) -> bytes | None:
        try:
            return self.session.audio_key().get_audio_key(
                bytes.fromhex(track_id.hex_id), bytes.fromhex(file_key)
            )
        except Exception as e:
            logger.debug(f"No audio key for {track_id.token}/{file_key}: {e}")
            return None

    def open_content_stream(self, file_key: str, bitrate: int) -> BinaryIO:
        logger.debug(f"Opening {bitrate} kbps stream for file {file_key}")
        try:
            url = self.session.cdn().get_audio_url(bytes.fromhex(file_key))
        except Exception as e:
            raise TransferError(
                f"Could not resolve a CDN URL for file {file_key}: {e}",
                details={"file_key": file_key, "original_error": str(e)}
            ) from e

        try:
            response = self.http.get(url, stream=True, timeout=CDN_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as e:
            raise TransferError(
                f"Could not open content stream for file {file_key}: {e}",
                details={"file_key": file_key, "original_error": str(e)}
            ) from e

        response.raw.decode_content = True
        return response.raw


def _describe_restriction(entry) -> str:
    if entry.countries_forbidden:
        return f"forbidden in {entry.countries_forbidden}"
    return f"allowed only in {entry.countries_allowed}"


def _track_identifier_from_uri(uri: str) -> CatalogIdentifier | None:
    parts = uri.split(":")
    if len(parts) != 3 or parts[0] != "spotify" or parts[1] != "track":
        return None
    try:
        decode_base62(parts[2])
    except IdentifierError:
        return None
    return CatalogIdentifier(IdentifierKind.TRACK, parts[2])
