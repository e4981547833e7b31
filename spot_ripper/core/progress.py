"""
Progress bar handling for spot-ripper using Rich library.

Collection walks can take a long time (one full transfer plus one ffmpeg
run per member), so they show a progress bar. Single-track input does
not: each line is reported through the logger instead.

Usage:
    from spot_ripper.core.progress import TrackProgressBar

    with TrackProgressBar(total=len(members), description=playlist.name) as progress:
        for member in members:
            outcome = pipeline.run_item(member, playlist.name)
            progress.update(success=not outcome.failed, skipped=outcome.status is TrackStatus.SKIPPED)

    # Disabled (e.g. --no-progress): same interface, nothing is drawn
    with TrackProgressBar(total=10, enabled=False) as progress:
        ...
"""

from typing import Optional

from rich import get_console
from rich.progress import BarColumn, Progress, TaskID, TextColumn
from rich.table import Column
from rich.theme import Theme


PROGRESS_THEME = Theme({
    "bar.back": "grey23",
    "bar.complete": "rgb(30,215,96)",
    "bar.finished": "rgb(114,156,31)",
    "bar.pulse": "rgb(30,215,96)",
    "progress.percentage": "white",
})

DESCRIPTION_WIDTH = 20
STATUS_WIDTH = 30


class TrackProgressBar:
    """
    Progress bar for a collection walk.

    Displays:
    - Description (the collection name, cut with an ellipsis)
    - Status: ✓ done (downloaded, re-tagged or piped), ✗ failed, ⊘ skipped
    - Progress bar
    - Percentage

    Example:
        Road Trip Mix       ✓ 12  ✗ 1  ⊘ 30        ━━━━━━━━━━━━━━━━━  64%

    When disabled the counters are still kept, only drawing is skipped.
    """

    def __init__(self, total: int, description: str = "Ripping", enabled: bool = True):
        self.total = total
        self.description = description
        self.enabled = enabled
        self.completed = 0
        self.done = 0
        self.failed = 0
        self.skipped = 0

        self.progress: Optional[Progress] = None
        if enabled:
            self.progress = Progress(
                TextColumn(
                    "[white]{task.description}",
                    table_column=Column(width=DESCRIPTION_WIDTH, no_wrap=True, overflow="ellipsis"),
                ),
                TextColumn(
                    "{task.fields[status]}",
                    style="white",
                    table_column=Column(width=STATUS_WIDTH, no_wrap=True),
                ),
                BarColumn(bar_width=40, finished_style="green"),
                "[progress.percentage]{task.percentage:>3.0f}%",
                console=get_console(),
                transient=False,
                refresh_per_second=10,
            )

        self.task_id: Optional[TaskID] = None
        self._started = False

    def __enter__(self) -> "TrackProgressBar":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def start(self) -> None:
        if self._started or self.progress is None:
            return
        self.progress.console.push_theme(PROGRESS_THEME)
        self.progress.start()
        self.task_id = self.progress.add_task(
            description=self.description,
            total=self.total,
            status=self.status_text(),
        )
        self._started = True

    def stop(self) -> None:
        if self._started and self.progress is not None:
            self.progress.stop()
            self.progress.console.pop_theme()
            self._started = False

    def status_text(self) -> str:
        """Counters as Rich markup; the skipped count only once non-zero."""
        parts = [
            f"[green]✓ {self.done}[/green]",
            f"[red]✗ {self.failed}[/red]",
        ]
        if self.skipped > 0:
            parts.append(f"[yellow]⊘ {self.skipped}[/yellow]")
        return "  ".join(parts)

    def update(self, success: bool, skipped: bool = False) -> None:
        """
        Record one finished member.

        Args:
            success: Whether the member was downloaded, re-tagged or piped.
            skipped: Whether the member was already present.
        """
        self.completed += 1
        if skipped:
            self.skipped += 1
        elif success:
            self.done += 1
        else:
            self.failed += 1

        if self.progress is not None and self.task_id is not None:
            self.progress.update(
                self.task_id,
                completed=self.completed,
                status=self.status_text(),
            )


__all__ = [
    "PROGRESS_THEME",
    "TrackProgressBar",
]
