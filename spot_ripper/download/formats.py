"""
Encoded-format selection.

The catalog publishes each track in several encodings. Only Ogg Vorbis is
accepted (the transcode step expects an Ogg container), best bitrate first:

    OGG_VORBIS_320 (320 kbps) -> OGG_VORBIS_160 (160 kbps)

There is no further fallback. A track offering neither is a per-track
failure, reported with the formats it does offer.
"""

from dataclasses import dataclass

from spot_ripper.catalog.models import TrackRecord
from spot_ripper.core.exceptions import FormatUnavailableError
from spot_ripper.core.logger import get_logger


logger = get_logger(__name__)

# (format tag, nominal bitrate in kbps), best first
FORMAT_LADDER: tuple[tuple[str, int], ...] = (
    ("OGG_VORBIS_320", 320),
    ("OGG_VORBIS_160", 160),
)

PREFERRED_BITRATE = FORMAT_LADDER[0][1]


@dataclass(frozen=True)
class FormatChoice:
    """
    The format picked for a track.

    Attributes:
        format_tag: Catalog format name, e.g. "OGG_VORBIS_320".
        file_key: Hex content file key for that format.
        bitrate: Nominal bitrate in kbps.
        degraded: True if the preferred format was missing.
    """
    format_tag: str
    file_key: str
    bitrate: int
    degraded: bool = False


def select_format(track: TrackRecord) -> FormatChoice:
    """
    Pick the best acceptable format of a track.

    Args:
        track: A playable track record.

    Returns:
        FormatChoice for the first ladder entry present in track.files.

    Raises:
        FormatUnavailableError: If no ladder entry is present.
                                details['available'] lists what is.
    """
    available = sorted(track.files)
    logger.debug(f"File formats: {' '.join(available)}")

    for rung, (format_tag, bitrate) in enumerate(FORMAT_LADDER):
        file_key = track.files.get(format_tag)
        if file_key is None:
            continue
        degraded = rung > 0
        if degraded:
            logger.warning(
                f"{track.name}: {PREFERRED_BITRATE} kbps not available, "
                f"using {format_tag} ({bitrate} kbps)"
            )
        return FormatChoice(
            format_tag=format_tag,
            file_key=file_key,
            bitrate=bitrate,
            degraded=degraded,
        )

    accepted = ", ".join(tag for tag, _ in FORMAT_LADDER)
    logger.error(
        f"{track.name}: none of {accepted} available, track offers: "
        f"{', '.join(available) or 'nothing'}"
    )
    raise FormatUnavailableError(
        f"No acceptable format for track {track.identifier.token} "
        f"(available: {', '.join(available) or 'none'})",
        details={"track_id": track.identifier.token, "available": available}
    )
