"""
External post-processing helper.

Instead of writing, converting and tagging files, spot-ripper can hand
every decoded track to a helper program (--helper PATH). The helper is
started once per track as

    <helper> <track id> <track name> <album name> <artist> [<artist> ...]

and receives the Ogg stream (container header already stripped) on its
standard input. It must exit with status 0.
"""

import subprocess
from pathlib import Path

from spot_ripper.catalog.models import AlbumRecord, TrackRecord
from spot_ripper.core.exceptions import HelperError
from spot_ripper.core.file_manager import OGG_HEADER_SIZE
from spot_ripper.core.logger import get_logger


logger = get_logger(__name__)


class HelperHook:
    """
    Pipes decoded tracks into an external program.

    Attributes:
        executable: Path or name of the helper.
        timeout: Seconds to wait for the helper to finish, None for no limit.
    """

    def __init__(self, executable: str | Path, timeout: float | None = None) -> None:
        self.executable = str(executable)
        self.timeout = timeout

    def build_command(
        self,
        track: TrackRecord,
        album: AlbumRecord,
        artist_names: list[str]
    ) -> list[str]:
        return [
            self.executable,
            track.identifier.token,
            track.name,
            album.name,
            *artist_names,
        ]

    def run(
        self,
        track: TrackRecord,
        album: AlbumRecord,
        artist_names: list[str],
        decoded: bytes
    ) -> None:
        """
        Run the helper for one track.

        Raises:
            HelperError: If the helper cannot be started, times out or
                         exits with a non-zero status.
        """
        cmd = self.build_command(track, album, artist_names)
        logger.debug(f"Running helper: {cmd}")
        try:
            result = subprocess.run(
                cmd,
                input=decoded[OGG_HEADER_SIZE:],
                capture_output=True,
                timeout=self.timeout
            )
        except OSError as e:
            raise HelperError(
                f"Could not run helper program {self.executable}: {e}",
                details={"helper": self.executable, "track_id": track.identifier.token}
            ) from e
        except subprocess.TimeoutExpired as e:
            raise HelperError(
                f"Helper program timed out after {self.timeout} s",
                details={"helper": self.executable, "track_id": track.identifier.token}
            ) from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise HelperError(
                f"Helper script returned an error (status {result.returncode})",
                details={
                    "helper": self.executable,
                    "track_id": track.identifier.token,
                    "returncode": result.returncode,
                    "stderr": stderr,
                }
            )
        logger.info(f"Piped {track.name} to {self.executable}")
