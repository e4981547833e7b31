"""
Per-item results of a batch run.

Every processed identifier produces exactly one TrackOutcome, whatever
happened to it. BatchStats aggregates the outcomes for the final summary
and for the progress bar.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from spot_ripper.catalog.models import CatalogIdentifier
from spot_ripper.core.exceptions import SpotRipperError


class TrackStatus(Enum):
    DOWNLOADED = "downloaded"
    RETAGGED = "retagged"
    SKIPPED = "skipped"
    PIPED = "piped"
    FAILED = "failed"


@dataclass(frozen=True)
class TrackOutcome:
    """
    What happened to one identifier.

    Attributes:
        identifier: The identifier as read from input (not the substitute).
        status: Final status.
        path: Final file, when one exists.
        error: The per-track error for FAILED outcomes.
        tags_written: False when the file is there but tagging failed.
    """
    identifier: CatalogIdentifier
    status: TrackStatus
    path: Path | None = None
    error: SpotRipperError | None = None
    tags_written: bool = True

    @property
    def failed(self) -> bool:
        return self.status is TrackStatus.FAILED


@dataclass
class BatchStats:
    """Counters over all outcomes of a run."""
    total: int = 0
    downloaded: int = 0
    retagged: int = 0
    skipped: int = 0
    piped: int = 0
    failed: int = 0
    tag_failures: int = 0

    def record(self, outcome: TrackOutcome) -> None:
        self.total += 1
        if outcome.status is TrackStatus.DOWNLOADED:
            self.downloaded += 1
        elif outcome.status is TrackStatus.RETAGGED:
            self.retagged += 1
        elif outcome.status is TrackStatus.SKIPPED:
            self.skipped += 1
        elif outcome.status is TrackStatus.PIPED:
            self.piped += 1
        else:
            self.failed += 1
        if not outcome.tags_written:
            self.tag_failures += 1

    def summary(self) -> str:
        parts = [
            f"{self.downloaded} downloaded",
            f"{self.skipped} skipped",
            f"{self.failed} failed",
        ]
        if self.retagged:
            parts.append(f"{self.retagged} re-tagged")
        if self.piped:
            parts.append(f"{self.piped} piped")
        if self.tag_failures:
            parts.append(f"{self.tag_failures} without tags")
        return f"{self.total} tracks: " + ", ".join(parts)
