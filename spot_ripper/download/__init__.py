"""
Download module for spot-ripper.

From a playable track record to a tagged file on disk:
    - formats: Ogg Vorbis 320 -> 160 format ladder
    - transfer: Key request, stream read on a worker thread, decryption
    - transcode: ffmpeg conversion to MP3
    - metadata: ID3 tag synthesis and cover art
    - hook: Piping decoded tracks into an external helper instead
    - pipeline: Per-track pipeline and playlist walker

Usage:
    from spot_ripper.download import (
        TrackPipeline,
        TransferOrchestrator,
        MetadataSynthesizer,
        ArtworkFetcher,
        BatchStats,
    )
"""

from spot_ripper.download.formats import FORMAT_LADDER, FormatChoice, select_format
from spot_ripper.download.hook import HelperHook
from spot_ripper.download.metadata import (
    ArtworkFetcher,
    MetadataSynthesizer,
    TagRecord,
    build_tag_record,
    select_cover,
    write_tags,
)
from spot_ripper.download.outcome import BatchStats, TrackOutcome, TrackStatus
from spot_ripper.download.pipeline import TrackPipeline
from spot_ripper.download.transcode import transcode
from spot_ripper.download.transfer import TransferOrchestrator, decrypt_audio

__all__ = [
    # Formats
    "FORMAT_LADDER",
    "FormatChoice",
    "select_format",
    # Transfer
    "TransferOrchestrator",
    "decrypt_audio",
    # Transcode
    "transcode",
    # Metadata
    "TagRecord",
    "ArtworkFetcher",
    "MetadataSynthesizer",
    "build_tag_record",
    "select_cover",
    "write_tags",
    # Hook
    "HelperHook",
    # Pipeline
    "TrackPipeline",
    "TrackStatus",
    "TrackOutcome",
    "BatchStats",
]
