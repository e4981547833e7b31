"""
Per-track pipeline and collection walker.

For every identifier read from input:

    1. Resolve a playable track (alternative fallback)
    2. Fetch artist names
    3. Select the encoded format
    4. Placement check on the final path:
         SKIP      final file exists             -> nothing else happens
         RETAG     exists and --force-tags       -> tags only
         DOWNLOAD  missing                       -> transfer, write .ogg,
                                                    transcode, tags
    In helper mode step 4 is replaced by transfer + helper; nothing is
    written to the output directory.

A collection identifier expands into its member tracks, each run
through the same steps in playlist order.

Errors:
    Any SpotRipperError raised for one track is logged (and added to the
    failure report) and turned into a FAILED outcome; the batch moves on.
    A catalog authentication error is the exception: it means the
    session is gone, so it propagates and ends the run. A tag write
    failure does not fail the track: the MP3 is there, only untagged.

Usage:
    with TransferOrchestrator(session) as transfer:
        pipeline = TrackPipeline(session, OutputPlacer(root), transfer, MetadataSynthesizer())
        stats = pipeline.run(extract_identifiers(sys.stdin, IdentifierKind.TRACK))
"""

from typing import Iterable

from spot_ripper.catalog.models import (
    AlbumRecord,
    CatalogIdentifier,
    ContentKey,
    IdentifierKind,
    TrackRecord,
)
from spot_ripper.catalog.resolver import fetch_artist_names, resolve_playable_track
from spot_ripper.catalog.session import CatalogSession
from spot_ripper.core.config import TranscodeConfig
from spot_ripper.core.exceptions import CatalogError, MetadataError, SpotRipperError
from spot_ripper.core.file_manager import OutputPlacer, PlacementDecision, ResolvedOutput
from spot_ripper.core.logger import get_logger, log_track_failure
from spot_ripper.core.progress import TrackProgressBar
from spot_ripper.download.formats import FormatChoice, select_format
from spot_ripper.download.hook import HelperHook
from spot_ripper.download.metadata import MetadataSynthesizer
from spot_ripper.download.outcome import BatchStats, TrackOutcome, TrackStatus
from spot_ripper.download.transcode import transcode
from spot_ripper.download.transfer import TransferOrchestrator


logger = get_logger(__name__)

__all__ = [
    "TrackPipeline",
    "TrackStatus",
    "TrackOutcome",
    "BatchStats",
]


class TrackPipeline:
    """
    Runs identifiers through resolution, transfer, placement and tagging.

    Attributes:
        session: Catalog session.
        placer: Output placer, shared by all tracks of the run.
        transfer: Transfer orchestrator (already entered).
        synthesizer: Tag writer.
        transcode_options: ffmpeg settings.
        force_tags: Re-tag existing files instead of skipping them.
        hook: Helper hook; when set, tracks are piped instead of saved.
        show_progress: Draw a progress bar during collection walks.
    """

    def __init__(
        self,
        session: CatalogSession,
        placer: OutputPlacer,
        transfer: TransferOrchestrator,
        synthesizer: MetadataSynthesizer,
        transcode_options: TranscodeConfig | None = None,
        force_tags: bool = False,
        hook: HelperHook | None = None,
        show_progress: bool = False
    ) -> None:
        self.session = session
        self.placer = placer
        self.transfer = transfer
        self.synthesizer = synthesizer
        self.transcode_options = transcode_options or TranscodeConfig()
        self.force_tags = force_tags
        self.hook = hook
        self.show_progress = show_progress

    # ------------------------------------------------------------------
    # Single track
    # ------------------------------------------------------------------

    def process_track(
        self,
        identifier: CatalogIdentifier,
        collection_name: str = ""
    ) -> TrackOutcome:
        """
        Run one track through the pipeline.

        Args:
            identifier: Track identifier as read from input.
            collection_name: Enclosing playlist name, "" for single tracks.

        Returns:
            TrackOutcome with status DOWNLOADED, RETAGGED, SKIPPED or PIPED.

        Raises:
            SpotRipperError: Any per-track failure. details['track_name']
                             is set once the track name is known.
        """
        track = resolve_playable_track(self.session, identifier)
        try:
            return self._process_resolved(identifier, track, collection_name)
        except SpotRipperError as e:
            e.details.setdefault("track_name", track.name)
            raise

    def _process_resolved(
        self,
        identifier: CatalogIdentifier,
        track: TrackRecord,
        collection_name: str
    ) -> TrackOutcome:
        artist_names = fetch_artist_names(self.session, track)
        choice = select_format(track)
        content = ContentKey(track.identifier, choice.file_key, choice.format_tag)

        if self.hook is not None:
            album = self.session.get_album(track.album_id)
            decoded = self.transfer.fetch(content, choice.bitrate)
            self.hook.run(track, album, artist_names, decoded)
            return TrackOutcome(identifier, TrackStatus.PIPED)

        resolved = self.placer.resolve(track, artist_names, collection_name)
        decision = self.placer.decide(resolved, self.force_tags)

        if decision is PlacementDecision.SKIP:
            logger.info(f"Skipped, already present: {resolved.final_path.name}")
            return TrackOutcome(identifier, TrackStatus.SKIPPED, path=resolved.final_path)

        album = self.session.get_album(track.album_id)

        if decision is PlacementDecision.RETAG:
            logger.info(f"Re-tagging {resolved.final_path.name}")
            tagged = self._write_tags(track, album, artist_names, resolved, choice)
            return TrackOutcome(
                identifier,
                TrackStatus.RETAGGED,
                path=resolved.final_path,
                tags_written=tagged,
            )

        self.placer.ensure_directory(resolved)
        decoded = self.transfer.fetch(content, choice.bitrate)
        self.placer.write_media(resolved, decoded)
        logger.info(f"Wrote file with filename: {resolved.media_path.name}")

        options = self.transcode_options
        transcode(
            resolved.media_path,
            resolved.final_path,
            ffmpeg_path=options.ffmpeg_path,
            timeout=options.timeout,
            id3_version=self.synthesizer.id3_version,
            keep_intermediate_on_failure=options.keep_intermediate_on_failure,
        )

        tagged = self._write_tags(track, album, artist_names, resolved, choice)
        return TrackOutcome(
            identifier,
            TrackStatus.DOWNLOADED,
            path=resolved.final_path,
            tags_written=tagged,
        )

    def _write_tags(
        self,
        track: TrackRecord,
        album: AlbumRecord,
        artist_names: list[str],
        resolved: ResolvedOutput,
        choice: FormatChoice
    ) -> bool:
        try:
            self.synthesizer.synthesize(
                track, album, artist_names, resolved.collection_name, choice, resolved.final_path
            )
        except MetadataError as e:
            logger.error(f"Error ID3: {e.message}")
            return False
        return True

    def run_item(
        self,
        identifier: CatalogIdentifier,
        collection_name: str = ""
    ) -> TrackOutcome:
        """
        Run one track, turning per-track failures into a FAILED outcome.

        Raises:
            CatalogError: Only authentication errors, which end the run.
        """
        try:
            return self.process_track(identifier, collection_name)
        except CatalogError as e:
            if e.is_auth_error:
                raise
            return self._failed(identifier, e)
        except SpotRipperError as e:
            return self._failed(identifier, e)

    def _failed(self, identifier: CatalogIdentifier, error: SpotRipperError) -> TrackOutcome:
        log_track_failure(
            logger,
            identifier.token,
            error.details.get("track_name", ""),
            error.message,
        )
        if error.details:
            logger.debug(f"Details: {error.details}")
        return TrackOutcome(identifier, TrackStatus.FAILED, error=error)

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def walk_collection(self, identifier: CatalogIdentifier) -> list[TrackOutcome]:
        """
        Run every member of a playlist, in order.

        A failing member never stops the walk. If the playlist itself
        cannot be fetched a single FAILED outcome is returned for it.
        """
        try:
            collection = self.session.get_collection(identifier)
        except CatalogError as e:
            if e.is_auth_error:
                raise
            logger.error(f"Cannot get playlist {identifier.token}: {e.message}")
            return [TrackOutcome(identifier, TrackStatus.FAILED, error=e)]

        name = collection.name or identifier.token
        logger.info(f"Playlist {name}: {len(collection.members)} tracks")

        outcomes = []
        with TrackProgressBar(
            total=len(collection.members),
            description=name,
            enabled=self.show_progress
        ) as progress:
            for member in collection.members:
                outcome = self.run_item(member, name)
                outcomes.append(outcome)
                progress.update(
                    success=not outcome.failed,
                    skipped=outcome.status is TrackStatus.SKIPPED,
                )
        return outcomes

    def run(self, identifiers: Iterable[CatalogIdentifier]) -> BatchStats:
        """
        Process every identifier in input order.

        Returns:
            BatchStats over all track outcomes.
        """
        stats = BatchStats()
        for identifier in identifiers:
            if identifier.kind is IdentifierKind.COLLECTION:
                outcomes = self.walk_collection(identifier)
            else:
                outcomes = [self.run_item(identifier)]
            for outcome in outcomes:
                stats.record(outcome)

        logger.info(f"Done. {stats.summary()}")
        return stats
