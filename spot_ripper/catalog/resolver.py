"""
Availability resolution for catalog tracks.

A track can be restricted in the session's region. The catalog usually
lists alternative releases of the same recording (a different album, a
regional re-release); the first alternative that is playable replaces
the requested track entirely, including its identifier, name, format
table and album.

Alternatives are fetched lazily in listed order and the walk stops at
the first playable one, so later alternatives are never requested.
"""

from spot_ripper.catalog.models import CatalogIdentifier, TrackRecord
from spot_ripper.catalog.session import CatalogSession
from spot_ripper.core.exceptions import UnavailableTrackError
from spot_ripper.core.logger import get_logger


logger = get_logger(__name__)


def resolve_playable_track(session: CatalogSession, identifier: CatalogIdentifier) -> TrackRecord:
    """
    Return a playable record for a track identifier.

    Args:
        session: Catalog session.
        identifier: Requested track.

    Returns:
        The requested track's record if it is available, else the record
        of its first available alternative.

    Raises:
        UnavailableTrackError: If the track and every alternative are restricted.
        CatalogError: If a record cannot be fetched.
    """
    logger.info(f"Getting track {identifier.token}...")
    track = session.get_track(identifier)
    if track.is_available:
        return track

    logger.warning(
        f"Track {identifier.token} is not available ({'; '.join(track.restrictions)}), "
        f"finding alternative..."
    )

    for alternative_id in track.alternatives:
        candidate = session.get_track(alternative_id)
        if candidate.is_available:
            logger.warning(
                f"Found track alternative {identifier.token} -> {candidate.identifier.token}"
            )
            return candidate
        logger.debug(f"Alternative {alternative_id.token} is restricted too")

    raise UnavailableTrackError(
        f"Could not find a playable alternative for track {identifier.token}",
        details={
            "track_id": identifier.token,
            "alternatives_tried": len(track.alternatives),
        }
    )


def fetch_artist_names(session: CatalogSession, track: TrackRecord) -> list[str]:
    """Fetch the names of a track's artists, in credit order."""
    return [session.get_artist(artist_id).name for artist_id in track.artist_ids]
