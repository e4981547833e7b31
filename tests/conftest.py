"""Test configuration and fixtures"""

import io
import subprocess
from pathlib import Path

import pytest

from spot_ripper.catalog.models import (
    AlbumRecord,
    ArtistRecord,
    CatalogIdentifier,
    CollectionRecord,
    CoverImage,
    IdentifierKind,
    TrackRecord,
)
from spot_ripper.catalog.session import CatalogSession
from spot_ripper.core.exceptions import CatalogError, TransferError
from spot_ripper.core.file_manager import OGG_HEADER_SIZE
from spot_ripper.download.transfer import TransferOrchestrator

DEFAULT_ARTIST_ID = "11" * 16
DEFAULT_ALBUM_ID = "22" * 16
CONTENT_KEY = b"k" * 16


class FakeSession(CatalogSession):
    """
    In-memory catalog.

    Records every track fetch and stream open so tests can check what
    the pipeline asked for.
    """

    def __init__(self):
        self.tracks: dict[str, TrackRecord] = {}
        self.albums: dict[str, AlbumRecord] = {}
        self.artists: dict[str, ArtistRecord] = {}
        self.collections: dict[str, CollectionRecord] = {}
        self.keys: dict[str, bytes | None] = {}
        self.contents: dict[str, bytes] = {}
        self.failing_tracks: set[str] = set()
        self.track_requests: list[str] = []
        self.album_requests: list[str] = []
        self.stream_opens: list[str] = []
        self.http = None
        self.closed = False

        self.add_artist(DEFAULT_ARTIST_ID, "Queen")
        self.add_album(DEFAULT_ALBUM_ID, "A Night at the Opera", genres=("rock",))

    # Catalog building

    def add_artist(self, artist_id: str, name: str) -> ArtistRecord:
        artist = ArtistRecord(identifier=artist_id, name=name)
        self.artists[artist_id] = artist
        return artist

    def add_album(
        self,
        album_id: str,
        name: str,
        genres: tuple[str, ...] = (),
        covers: tuple[CoverImage, ...] = ()
    ) -> AlbumRecord:
        album = AlbumRecord(identifier=album_id, name=name, genres=genres, covers=covers)
        self.albums[album_id] = album
        return album

    def add_track(
        self,
        token: str,
        name: str,
        artist_ids: tuple[str, ...] = (DEFAULT_ARTIST_ID,),
        album_id: str = DEFAULT_ALBUM_ID,
        formats: tuple[str, ...] = ("OGG_VORBIS_320", "OGG_VORBIS_160"),
        restrictions: tuple[str, ...] = (),
        alternatives: tuple[str, ...] = (),
        key: bytes | None = CONTENT_KEY
    ) -> TrackRecord:
        identifier = CatalogIdentifier(IdentifierKind.TRACK, token)
        files = {}
        for format_tag in formats:
            file_key = f"{token}-{format_tag}".encode().hex()
            files[format_tag] = file_key
            self.keys[file_key] = key
            self.contents[file_key] = b"H" * OGG_HEADER_SIZE + f"{format_tag}:{name}".encode()
        track = TrackRecord(
            identifier=identifier,
            name=name,
            artist_ids=artist_ids,
            album_id=album_id,
            restrictions=restrictions,
            alternatives=tuple(
                CatalogIdentifier(IdentifierKind.TRACK, alternative)
                for alternative in alternatives
            ),
            files=files,
        )
        self.tracks[token] = track
        return track

    def add_collection(self, token: str, name: str, members: list[str]) -> CatalogIdentifier:
        identifier = CatalogIdentifier(IdentifierKind.COLLECTION, token)
        self.collections[token] = CollectionRecord(
            identifier=identifier,
            name=name,
            members=tuple(CatalogIdentifier(IdentifierKind.TRACK, m) for m in members),
        )
        return identifier

    # CatalogSession

    def get_track(self, identifier: CatalogIdentifier) -> TrackRecord:
        self.track_requests.append(identifier.token)
        if identifier.token in self.failing_tracks:
            raise CatalogError(f"Cannot get track metadata for {identifier.token}")
        try:
            return self.tracks[identifier.token]
        except KeyError:
            raise CatalogError(f"No track {identifier.token}", is_not_found=True)

    def get_album(self, album_id: str) -> AlbumRecord:
        self.album_requests.append(album_id)
        try:
            return self.albums[album_id]
        except KeyError:
            raise CatalogError(f"No album {album_id}", is_not_found=True)

    def get_artist(self, artist_id: str) -> ArtistRecord:
        try:
            return self.artists[artist_id]
        except KeyError:
            raise CatalogError(f"No artist {artist_id}", is_not_found=True)

    def get_collection(self, identifier: CatalogIdentifier) -> CollectionRecord:
        try:
            return self.collections[identifier.token]
        except KeyError:
            raise CatalogError(f"No playlist {identifier.token}", is_not_found=True)

    def request_content_key(self, track_id: CatalogIdentifier, file_key: str) -> bytes | None:
        return self.keys.get(file_key)

    def open_content_stream(self, file_key: str, bitrate: int):
        self.stream_opens.append(file_key)
        if file_key not in self.contents:
            raise TransferError(f"No content for {file_key}")
        return io.BytesIO(self.contents[file_key])

    def close(self) -> None:
        self.closed = True


def identity_decrypt(raw: bytes, key: bytes | None) -> bytes:
    return raw


class FakeTranscoder:
    """Stands in for the ffmpeg step: copies the .ogg to the .mp3."""

    def __init__(self):
        self.calls: list[tuple[Path, Path]] = []
        self.options: list[dict] = []

    def __call__(self, media_path: Path, final_path: Path, **kwargs) -> Path:
        self.calls.append((media_path, final_path))
        self.options.append(kwargs)
        final_path.write_bytes(media_path.read_bytes())
        media_path.unlink()
        return final_path


@pytest.fixture
def session():
    """In-memory catalog with one artist and one album"""
    return FakeSession()


@pytest.fixture
def output_dir(tmp_path):
    """Output root inside the test's temporary directory"""
    directory = tmp_path / "music"
    directory.mkdir()
    return directory


@pytest.fixture
def fake_transcoder(monkeypatch):
    """Replace the ffmpeg call of the pipeline"""
    transcoder = FakeTranscoder()
    monkeypatch.setattr("spot_ripper.download.pipeline.transcode", transcoder)
    return transcoder


@pytest.fixture
def completed_process():
    """Factory for subprocess.CompletedProcess results"""
    def make(returncode=0, stdout="", stderr=""):
        return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)
    return make


@pytest.fixture
def transfer(session):
    """Entered transfer orchestrator that skips decryption"""
    with TransferOrchestrator(session, decrypt=identity_decrypt) as orchestrator:
        yield orchestrator
