"""
Output placement for spot-ripper.

This module decides where each track lands on disk and whether any work
is needed for it at all.

Architecture:
    output_directory/
    ├── Queen - Bohemian Rhapsody.mp3          # single-track mode
    ├── AC_DC - Back In Black.mp3              # "/" in names becomes "_"
    ├── logs/
    │   └── ...
    └── Road Trip Mix/                         # collection mode
        ├── The Beatles - Hey Jude.mp3
        └── Queen - Bohemian Rhapsody.mp3

File Naming:
    {artist1, artist2} - {title}.ogg   intermediate decoded stream
    {artist1, artist2} - {title}.mp3   final file

Idempotence:
    The final .mp3 is the marker of a finished track. When it exists the
    track is skipped, or only re-tagged when --force-tags is given. A
    failed conversion never leaves a final file behind (see
    spot_ripper.download.transcode), so interrupted work is retried.

Collisions:
    Two different tracks can sanitize to the same path within one run
    (same artists, same title). The placer remembers which track claimed
    each final path and appends " [<track token>]" to the stem of any
    later, different track.

Errors:
    Filesystem failures (name too long, permission denied, disk full)
    surface as OutputError so they abandon only the current track.

Usage:
    from spot_ripper.core.file_manager import OutputPlacer, PlacementDecision

    placer = OutputPlacer(output_dir)
    resolved = placer.resolve(track, ["Queen"], collection_name="Road Trip Mix")
    if placer.decide(resolved, force_tags=False) is PlacementDecision.DOWNLOAD:
        placer.ensure_directory(resolved)
        placer.write_media(resolved, decoded)
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from spot_ripper.catalog.models import TrackRecord
from spot_ripper.core.exceptions import OutputError, PathCollisionError
from spot_ripper.core.logger import get_logger


logger = get_logger(__name__)


# Length of the container header the catalog prepends to decoded Vorbis
# streams. Everything before it is not part of the Ogg bitstream.
OGG_HEADER_SIZE = 0xA7

MEDIA_EXTENSION = ".ogg"
FINAL_EXTENSION = ".mp3"

# Path separators on either platform, plus NUL
_SEPARATOR_CHARS = ("/", "\\", "\x00")

# Components the filesystem reads as the current or parent directory
_RESERVED_COMPONENTS = ("", ".", "..")


def sanitize_component(text: str) -> str:
    """
    Make a string safe to use as a single path component.

    Only path separators (and NUL) are replaced, with "_". Everything else,
    including spaces and punctuation, is kept so file names stay readable.
    A result of ".", ".." or "" would not name a directory of its own and
    becomes "_".

    Args:
        text: Artist string, title or collection name.

    Returns:
        The sanitized string. Never contains a path separator and is never
        a relative directory reference.

    Example:
        sanitize_component("AC/DC")
        # Returns: "AC_DC"
    """
    text = _replace_separators(text)
    if text in _RESERVED_COMPONENTS:
        return "_"
    return text


def _replace_separators(text: str) -> str:
    for char in _SEPARATOR_CHARS:
        text = text.replace(char, "_")
    return text


class PlacementDecision(Enum):
    """What the pipeline should do for a resolved output."""
    DOWNLOAD = "download"
    RETAG = "retag"
    SKIP = "skip"


@dataclass(frozen=True)
class ResolvedOutput:
    """
    Destination of one track.

    Attributes:
        track_token: Base62 token of the track that claimed these paths.
        collection_name: Enclosing collection name, "" in single-track mode.
        artist_string: Artist names joined with ", " (unsanitized).
        title: Track name (unsanitized).
        directory: Destination directory.
        media_path: Path of the intermediate decoded stream.
        final_path: Path of the finished file.
    """
    track_token: str
    collection_name: str
    artist_string: str
    title: str
    directory: Path
    media_path: Path
    final_path: Path

    @property
    def stem(self) -> str:
        return self.final_path.stem


class OutputPlacer:
    """
    Computes destination paths and performs the idempotence check.

    One instance lives for the whole run so that path claims can be
    tracked across tracks.

    Attributes:
        root: Base output directory.
        disambiguate: If False, a collision raises PathCollisionError
                      instead of suffixing the track token.
    """

    def __init__(self, root: Path, disambiguate: bool = True) -> None:
        self.root = root
        self.disambiguate = disambiguate
        self._claims: dict[Path, str] = {}

    def resolve(
        self,
        track: TrackRecord,
        artist_names: list[str],
        collection_name: str = ""
    ) -> ResolvedOutput:
        """
        Compute the destination of a track.

        Args:
            track: The (possibly substituted) playable track record.
            artist_names: Artist names in the track's order.
            collection_name: Enclosing collection name, "" for single tracks.

        Returns:
            ResolvedOutput with directory, media and final paths.

        Raises:
            PathCollisionError: If another track already claimed the path in
                                this run and disambiguation is disabled.
        """
        artist_string = ", ".join(artist_names)
        directory = self.root
        if collection_name:
            directory = self.root / sanitize_component(collection_name)

        stem = f"{_replace_separators(artist_string)} - {_replace_separators(track.name)}"
        token = track.identifier.token

        final_path = directory / f"{stem}{FINAL_EXTENSION}"
        owner = self._claims.get(final_path)
        if owner is not None and owner != token:
            if not self.disambiguate:
                raise PathCollisionError(
                    f"Output path already used by another track: {final_path}",
                    details={"path": str(final_path), "track_id": token, "claimed_by": owner}
                )
            logger.warning(
                f"'{final_path.name}' already written for track {owner} in this run, "
                f"adding the track id to the name"
            )
            stem = f"{stem} [{token}]"
            final_path = directory / f"{stem}{FINAL_EXTENSION}"

        self._claims[final_path] = token

        return ResolvedOutput(
            track_token=token,
            collection_name=collection_name,
            artist_string=artist_string,
            title=track.name,
            directory=directory,
            media_path=directory / f"{stem}{MEDIA_EXTENSION}",
            final_path=final_path,
        )

    def decide(self, resolved: ResolvedOutput, force_tags: bool = False) -> PlacementDecision:
        """
        Idempotence check on the final path.

        Returns:
            SKIP if the final file exists and force_tags is False,
            RETAG if it exists and force_tags is True,
            DOWNLOAD otherwise.

        Raises:
            OutputError: If the final path can't be checked (e.g. the name
                         is too long for the filesystem).
        """
        try:
            exists = resolved.final_path.exists()
        except OSError as e:
            raise _output_error("check", resolved.final_path, e) from e

        if exists:
            if force_tags:
                return PlacementDecision.RETAG
            return PlacementDecision.SKIP
        return PlacementDecision.DOWNLOAD

    def ensure_directory(self, resolved: ResolvedOutput) -> None:
        """Create the destination directory. Existing directories are fine."""
        try:
            resolved.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise _output_error("create", resolved.directory, e) from e

    def write_media(self, resolved: ResolvedOutput, decoded: bytes) -> Path:
        """
        Write the decoded stream to the media path, header stripped.

        Args:
            resolved: Destination from resolve().
            decoded: Whole decoded buffer as returned by the transfer.

        Returns:
            The media path.

        Raises:
            OutputError: If the file can't be written. A partially written
                         file is removed.
        """
        self.ensure_directory(resolved)
        payload = decoded[OGG_HEADER_SIZE:]
        try:
            resolved.media_path.write_bytes(payload)
        except OSError as e:
            _discard(resolved.media_path)
            raise _output_error("write", resolved.media_path, e) from e
        logger.debug(f"Wrote {len(payload)} bytes to {resolved.media_path}")
        return resolved.media_path


def _output_error(action: str, path: Path, error: OSError) -> OutputError:
    reason = error.strerror or str(error)
    return OutputError(
        f"Couldn't {action} {path}: {reason}",
        details={"path": str(path), "errno": error.errno, "original_error": str(error)}
    )


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.error(f"Couldn't remove file: {path}, error: {e}")
