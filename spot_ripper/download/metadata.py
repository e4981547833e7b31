"""
ID3 metadata synthesis for ripped tracks.

Builds one TagRecord per track from the track, album and artist records
and writes it into the final MP3 with mutagen, replacing whatever tag
block ffmpeg left there.

Tag mapping:
    TIT2  title            track name
    TALB  album            album name
    TPE1  artist           artist names joined with ", "
    TCON  collection tag   playlist name (collection mode only)
    TDRC  timestamp        moment of tagging, not the release date
    COMM  comment          "Collection: <name>, Genres: <g1, g2>"
    COMM  "Bitrate"        only when the preferred bitrate was unavailable
    APIC  front cover      only when artwork was fetched and decoded

The playlist name goes in the genre slot so players can group ripped
playlists; it is kept as its own collection_tag field here so it is never
mistaken for the album's musical genres, which go in the comment.

Artwork:
    The smallest cover of the album (covers sorted by size class
    ascending) is fetched from the image host. Any HTTP error, transport
    error or undecodable image means "no artwork": the APIC frame is then
    left out entirely.

Usage:
    synthesizer = MetadataSynthesizer(ArtworkFetcher())
    record = synthesizer.synthesize(track, album, artists, "Road Trip Mix", choice, path)
"""

from dataclasses import dataclass, field
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Callable

import requests
from mutagen import MutagenError
from mutagen.id3 import APIC, COMM, ID3, TALB, TCON, TDRC, TIT2, TPE1
from PIL import Image, UnidentifiedImageError

from spot_ripper.catalog.models import AlbumRecord, CoverImage, TrackRecord
from spot_ripper.core.config import DEFAULT_ARTWORK_URL_TEMPLATE
from spot_ripper.core.exceptions import MetadataError
from spot_ripper.core.logger import get_logger
from spot_ripper.download.formats import PREFERRED_BITRATE, FormatChoice


logger = get_logger(__name__)

JPEG_MIME = "image/jpeg"
BITRATE_COMMENT_DESC = "Bitrate"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"


@dataclass
class TagRecord:
    """
    Everything written into one file's tag block.

    Attributes:
        title: Track name.
        album: Album name.
        artist: Comma-joined artist names.
        collection_tag: Playlist name, "" outside collection mode.
        timestamp: When the track was tagged.
        comments: (description, text) pairs, one COMM frame each.
        artwork: JPEG bytes, or None for no cover.
        artwork_mime: MIME type of artwork.
    """
    title: str
    album: str
    artist: str
    collection_tag: str = ""
    timestamp: datetime = field(default_factory=datetime.now)
    comments: list[tuple[str, str]] = field(default_factory=list)
    artwork: bytes | None = None
    artwork_mime: str = JPEG_MIME


def build_comment(collection_name: str, genres: tuple[str, ...]) -> str:
    """
    Build the main comment text.

    Example:
        build_comment("Road Trip Mix", ("rock", "glam rock"))
        # Returns: "Collection: Road Trip Mix, Genres: rock, glam rock"
    """
    parts = []
    if collection_name:
        parts.append(f"Collection: {collection_name}")
    if genres:
        parts.append(f"Genres: {', '.join(genres)}")
    return ", ".join(parts)


def build_tag_record(
    track: TrackRecord,
    album: AlbumRecord,
    artist_names: list[str],
    collection_name: str,
    choice: FormatChoice,
    artwork: bytes | None = None,
    now: datetime | None = None
) -> TagRecord:
    """
    Assemble the tag record of a track.

    Args:
        track: The playable track record.
        album: Its album.
        artist_names: Artist names in credit order.
        collection_name: Playlist name, "" in single-track mode.
        choice: The format that was downloaded.
        artwork: Cover bytes, if any.
        now: Tagging time, defaults to the current time.
    """
    comments = []
    comment = build_comment(collection_name, album.genres)
    if comment:
        comments.append(("", comment))
    if choice.degraded:
        comments.append((
            BITRATE_COMMENT_DESC,
            f"Downloaded at {choice.bitrate} kbps ({PREFERRED_BITRATE} kbps unavailable)",
        ))

    return TagRecord(
        title=track.name,
        album=album.name,
        artist=", ".join(artist_names),
        collection_tag=collection_name,
        timestamp=now or datetime.now(),
        comments=comments,
        artwork=artwork,
    )


def select_cover(album: AlbumRecord) -> CoverImage | None:
    """Return the smallest cover of an album, or None if it has none."""
    if not album.covers:
        return None
    return sorted(album.covers, key=lambda cover: cover.size)[0]


class ArtworkFetcher:
    """
    Downloads cover images from the image host.

    Attributes:
        http: requests.Session used for the GETs.
        url_template: URL with an {image_id} placeholder.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        http: requests.Session | None = None,
        url_template: str = DEFAULT_ARTWORK_URL_TEMPLATE,
        timeout: float = 10
    ) -> None:
        self.http = http or requests.Session()
        self.url_template = url_template
        self.timeout = timeout

    def fetch(self, cover: CoverImage) -> bytes | None:
        """
        Fetch one cover as JPEG bytes.

        Returns:
            JPEG bytes, or None on any HTTP, transport or image error.
        """
        url = self.url_template.format(image_id=cover.image_id)
        try:
            response = self.http.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"Failed to download album art from {url}: {e}")
            return None
        return to_jpeg(response.content)


def to_jpeg(data: bytes) -> bytes | None:
    """
    Validate image bytes and make sure they are JPEG.

    JPEG input in RGB mode is returned unchanged; anything else Pillow
    can open is re-encoded. Undecodable data gives None.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            if img.format == "JPEG" and img.mode == "RGB":
                img.verify()
                return data
            if img.mode != "RGB":
                img = img.convert("RGB")
            output = BytesIO()
            img.save(output, format="JPEG", quality=90, optimize=True)
            return output.getvalue()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        logger.warning(f"Failed to process album art image: {e}")
        return None


def write_tags(path: Path, record: TagRecord, id3_version: int = 4) -> None:
    """
    Write a tag record into a file, replacing any existing ID3 block.

    Args:
        path: Final MP3 file.
        record: Tags to write.
        id3_version: 3 or 4.

    Raises:
        MetadataError: If the file cannot be written.
    """
    tags = ID3()
    tags.add(TIT2(encoding=3, text=record.title))
    tags.add(TALB(encoding=3, text=record.album))
    tags.add(TPE1(encoding=3, text=record.artist))
    if record.collection_tag:
        tags.add(TCON(encoding=3, text=record.collection_tag))
    tags.add(TDRC(encoding=3, text=record.timestamp.strftime(TIMESTAMP_FORMAT)))
    for description, text in record.comments:
        tags.add(COMM(encoding=3, lang="eng", desc=description, text=text))
    if record.artwork:
        tags.add(APIC(
            encoding=3,
            mime=record.artwork_mime,
            type=3,  # Cover (front)
            desc="Cover Image",
            data=record.artwork
        ))

    try:
        tags.save(path, v2_version=id3_version)
    except (MutagenError, OSError) as e:
        raise MetadataError(
            f"Error writing ID3 tags to {path.name}: {e}",
            details={"path": str(path), "original_error": str(e)}
        ) from e


class MetadataSynthesizer:
    """
    Builds and writes the tags of a track.

    Attributes:
        artwork_fetcher: Source of cover images, None to skip artwork.
        id3_version: ID3v2 minor version to save with.
        clock: Returns the tagging timestamp.
    """

    def __init__(
        self,
        artwork_fetcher: ArtworkFetcher | None = None,
        id3_version: int = 4,
        clock: Callable[[], datetime] = datetime.now
    ) -> None:
        self.artwork_fetcher = artwork_fetcher
        self.id3_version = id3_version
        self.clock = clock

    def fetch_artwork(self, album: AlbumRecord) -> bytes | None:
        if self.artwork_fetcher is None:
            return None
        cover = select_cover(album)
        if cover is None:
            logger.debug(f"Album {album.name} has no cover")
            return None
        return self.artwork_fetcher.fetch(cover)

    def synthesize(
        self,
        track: TrackRecord,
        album: AlbumRecord,
        artist_names: list[str],
        collection_name: str,
        choice: FormatChoice,
        path: Path
    ) -> TagRecord:
        """
        Build the tag record of a track and write it into path.

        Returns:
            The record that was written.

        Raises:
            MetadataError: If writing fails.
        """
        record = build_tag_record(
            track,
            album,
            artist_names,
            collection_name,
            choice,
            artwork=self.fetch_artwork(album),
            now=self.clock(),
        )
        write_tags(path, record, self.id3_version)
        logger.debug(f"Tagged {path.name}")
        return record
