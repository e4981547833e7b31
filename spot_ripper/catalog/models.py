"""
Data models for catalog entities.

This module defines immutable dataclasses representing catalog objects:
identifiers, tracks, artists, albums and collections (playlists). Records
are built by a CatalogSession from whatever the backend returns and are
never mutated afterwards. When the availability resolver substitutes an
alternative it returns the alternative's own record, it does not patch
the original.

Design Decisions:
    - All dataclasses are frozen (immutable) to prevent accidental modification
    - Identifiers carry the 22-character base62 token; the 128-bit integer
      and hex forms are derived on demand
    - Format tags are plain strings ("OGG_VORBIS_320"), the names used by
      the catalog's AudioFile.Format enum

Usage:
    from spot_ripper.catalog.models import CatalogIdentifier, IdentifierKind

    identifier = CatalogIdentifier(IdentifierKind.TRACK, "4cOdK2wGLETKBW3PvgPWqT")
    print(identifier.uri)     # spotify:track:4cOdK2wGLETKBW3PvgPWqT
    print(identifier.hex_id)  # 32 hex characters
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import Mapping

from spot_ripper.core.exceptions import IdentifierError


BASE62_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
TOKEN_LENGTH = 22

_BASE62_VALUES = {char: index for index, char in enumerate(BASE62_ALPHABET)}
_MAX_ID = 2 ** 128


def decode_base62(token: str) -> int:
    """
    Decode a catalog token into its 128-bit integer id.

    Args:
        token: 22-character base62 string.

    Returns:
        The integer id.

    Raises:
        IdentifierError: If the token has the wrong length, contains
                         characters outside the alphabet, or does not
                         fit in 128 bits.
    """
    if len(token) != TOKEN_LENGTH:
        raise IdentifierError(
            f"Catalog token must be {TOKEN_LENGTH} characters, got {len(token)}: {token!r}",
            details={"token": token}
        )

    value = 0
    for char in token:
        digit = _BASE62_VALUES.get(char)
        if digit is None:
            raise IdentifierError(
                f"Invalid character {char!r} in catalog token {token!r}",
                details={"token": token}
            )
        value = value * 62 + digit

    if value >= _MAX_ID:
        raise IdentifierError(
            f"Catalog token {token!r} is out of range",
            details={"token": token}
        )
    return value


def encode_base62(value: int) -> str:
    """Encode a 128-bit integer id as a zero-padded 22-character token."""
    chars = []
    while value:
        value, digit = divmod(value, 62)
        chars.append(BASE62_ALPHABET[digit])
    return "".join(reversed(chars)).rjust(TOKEN_LENGTH, "0")


class IdentifierKind(Enum):
    """What a catalog identifier points to. Values are the URI segment."""
    TRACK = "track"
    COLLECTION = "playlist"


@dataclass(frozen=True)
class CatalogIdentifier:
    """
    Immutable reference to one catalog object.

    Attributes:
        kind: TRACK or COLLECTION.
        token: 22-character base62 token.
               Example: "4cOdK2wGLETKBW3PvgPWqT"
    """
    kind: IdentifierKind
    token: str

    @classmethod
    def from_hex(cls, kind: IdentifierKind, hex_id: str) -> "CatalogIdentifier":
        """Build an identifier from the 32-character hex form."""
        return cls(kind, encode_base62(int(hex_id, 16)))

    @classmethod
    def from_gid(cls, kind: IdentifierKind, gid: bytes) -> "CatalogIdentifier":
        """Build an identifier from the 16 raw bytes used in metadata messages."""
        return cls.from_hex(kind, gid.hex())

    @property
    def numeric_id(self) -> int:
        return decode_base62(self.token)

    @property
    def hex_id(self) -> str:
        return f"{self.numeric_id:032x}"

    @property
    def uri(self) -> str:
        return f"spotify:{self.kind.value}:{self.token}"

    @property
    def url(self) -> str:
        return f"https://open.spotify.com/{self.kind.value}/{self.token}"

    def __str__(self) -> str:
        return self.uri


class ImageSize(IntEnum):
    """Pixel-size class of a cover image, ordered smallest-first by value."""
    DEFAULT = 0
    SMALL = 1
    LARGE = 2
    XLARGE = 3


@dataclass(frozen=True)
class CoverImage:
    """
    Cover image descriptor.

    Attributes:
        image_id: Hex id of the image on the image host.
        size: Size class.
    """
    image_id: str
    size: ImageSize = ImageSize.DEFAULT


@dataclass(frozen=True)
class TrackRecord:
    """
    Immutable representation of a catalog track.

    Attributes:
        identifier: The track's own identifier. For a substituted
                    alternative this is the alternative's identifier.
        name: Track title.
        artist_ids: Hex ids of the contributing artists, in credit order.
        album_id: Hex id of the parent album.
        restrictions: Region restrictions that apply to the session's
                      country. Empty means the track is playable.
        alternatives: Identifiers of alternative releases, in catalog order.
        files: Format tag -> content file key (hex).
               Example: {"OGG_VORBIS_320": "a1b2...", "MP3_96": "c3d4..."}
    """
    identifier: CatalogIdentifier
    name: str
    artist_ids: tuple[str, ...] = ()
    album_id: str = ""
    restrictions: tuple[str, ...] = ()
    alternatives: tuple[CatalogIdentifier, ...] = ()
    files: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Read-only view so the format table cannot be changed after fetch
        object.__setattr__(self, "files", MappingProxyType(dict(self.files)))

    @property
    def is_available(self) -> bool:
        return not self.restrictions


@dataclass(frozen=True)
class ArtistRecord:
    identifier: str
    name: str


@dataclass(frozen=True)
class AlbumRecord:
    """
    Immutable representation of a catalog album.

    Attributes:
        identifier: Hex id of the album.
        name: Album title.
        genres: Genre names, possibly empty.
        covers: Cover image descriptors in catalog order (not sorted).
    """
    identifier: str
    name: str
    genres: tuple[str, ...] = ()
    covers: tuple[CoverImage, ...] = ()


@dataclass(frozen=True)
class CollectionRecord:
    """
    A named, ordered list of tracks (a playlist).

    Attributes:
        identifier: The collection's identifier.
        name: Display name, used as the output sub-directory.
        members: Track identifiers in listed order.
    """
    identifier: CatalogIdentifier
    name: str
    members: tuple[CatalogIdentifier, ...] = ()


@dataclass(frozen=True)
class ContentKey:
    """The chosen (track, format) content stream of one track."""
    track_id: CatalogIdentifier
    file_key: str
    format_tag: str
