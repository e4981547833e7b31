"""
Ogg Vorbis to MP3 conversion with ffmpeg.

The decoded stream is written to <stem>.ogg first, then converted to
<stem>.mp3 with LAME at its best VBR setting. The stream-level Vorbis
comments are mapped onto the output so ffmpeg writes a first ID3 block,
which the metadata step then replaces.

Failure handling:
    A missing or unrunnable ffmpeg binary, a timeout or a non-zero exit
    status raises TranscodeError. Whatever ffmpeg managed to write to the .mp3 is
    removed first: the final file is the marker of a finished track, and
    a broken one would make every later run skip the track.

    The .ogg is deleted in every case (unless keep_intermediate_on_failure
    is set and the conversion failed). Failing to delete it is logged
    only.
"""

import subprocess
from pathlib import Path

from spot_ripper.core.exceptions import TranscodeError
from spot_ripper.core.logger import get_logger


logger = get_logger(__name__)


def build_ffmpeg_command(
    media_path: Path,
    final_path: Path,
    ffmpeg_path: str = "ffmpeg",
    id3_version: int = 3
) -> list[str]:
    """Build the ffmpeg argument list for one conversion."""
    return [
        ffmpeg_path,
        "-y",
        "-hide_banner",
        "-loglevel", "error",
        "-i", str(media_path),
        "-map_metadata", "0:s:0",
        "-id3v2_version", str(id3_version),
        "-codec:a", "libmp3lame",
        "-qscale:a", "1",
        str(final_path),
    ]


def transcode(
    media_path: Path,
    final_path: Path,
    ffmpeg_path: str = "ffmpeg",
    timeout: float | None = None,
    id3_version: int = 3,
    keep_intermediate_on_failure: bool = False
) -> Path:
    """
    Convert the intermediate file to the final MP3.

    Args:
        media_path: The .ogg written by the placer.
        final_path: Where the .mp3 goes.
        ffmpeg_path: ffmpeg executable.
        timeout: Seconds before ffmpeg is killed, None for no limit.
        id3_version: ID3v2 minor version hint passed to ffmpeg.
        keep_intermediate_on_failure: Leave the .ogg for inspection when
                                      the conversion fails.

    Returns:
        final_path.

    Raises:
        TranscodeError: ffmpeg not found or not runnable, timed out, or
                        exited non-zero.
    """
    cmd = build_ffmpeg_command(media_path, final_path, ffmpeg_path, id3_version)
    logger.debug(f"Running: {' '.join(cmd)}")

    failed = True
    try:
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout
            )
        except FileNotFoundError as e:
            raise TranscodeError(
                f"ffmpeg not found ({ffmpeg_path}). Install ffmpeg or set transcode.ffmpeg_path",
                details={"ffmpeg_path": ffmpeg_path, "input": str(media_path)}
            ) from e
        except subprocess.TimeoutExpired as e:
            _remove_partial(final_path)
            raise TranscodeError(
                f"ffmpeg timed out after {timeout} s converting {media_path.name}",
                details={"input": str(media_path), "timeout": timeout}
            ) from e
        except OSError as e:
            raise TranscodeError(
                f"Couldn't run ffmpeg ({ffmpeg_path}): {e.strerror or e}",
                details={"ffmpeg_path": ffmpeg_path, "input": str(media_path), "errno": e.errno}
            ) from e

        if result.returncode != 0:
            _remove_partial(final_path)
            stderr = (result.stderr or "").strip()
            raise TranscodeError(
                f"ffmpeg exited with status {result.returncode} converting {media_path.name}"
                + (f": {stderr.splitlines()[-1]}" if stderr else ""),
                details={
                    "input": str(media_path),
                    "returncode": result.returncode,
                    "stderr": stderr,
                }
            )

        failed = False
        logger.info(f"Converted file with filename: {media_path.name} to {final_path.name}")
        return final_path
    finally:
        if failed and keep_intermediate_on_failure:
            logger.info(f"Keeping {media_path} after failed conversion")
        else:
            _remove_intermediate(media_path)


def _remove_partial(final_path: Path) -> None:
    try:
        final_path.unlink(missing_ok=True)
    except OSError as e:
        logger.error(f"Couldn't remove partial output {final_path}: {e}")


def _remove_intermediate(media_path: Path) -> None:
    try:
        media_path.unlink(missing_ok=True)
    except OSError as e:
        logger.error(f"Couldn't remove file: {media_path}, error: {e}")
