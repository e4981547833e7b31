# tests/test_progress.py
"""Test the playlist progress bar"""

from spot_ripper.core.progress import TrackProgressBar


class TestTrackProgressBar:
    """Test counters and the disabled mode"""

    def test_counters(self):
        with TrackProgressBar(total=4, enabled=False) as progress:
            progress.update(success=True)
            progress.update(success=False)
            progress.update(success=True, skipped=True)
            progress.update(success=True)

        assert progress.completed == 4
        assert (progress.done, progress.failed, progress.skipped) == (2, 1, 1)

    def test_status_text(self):
        """Test the skipped count only shows once something was skipped"""
        progress = TrackProgressBar(total=2, enabled=False)
        progress.update(success=True)
        assert progress.status_text() == "[green]✓ 1[/green]  [red]✗ 0[/red]"

        progress.update(success=True, skipped=True)
        assert progress.status_text().endswith("[yellow]⊘ 1[/yellow]")

    def test_disabled_draws_nothing(self):
        progress = TrackProgressBar(total=1, enabled=False)
        progress.start()
        assert progress.progress is None
        assert progress.task_id is None
        progress.stop()

    def test_enabled_tracks_task(self):
        """Test the rich task follows the counters"""
        progress = TrackProgressBar(total=2, description="A very long playlist name indeed")
        with progress:
            progress.update(success=True)
            task = progress.progress.tasks[0]
            assert task.completed == 1
            assert task.fields["status"] == progress.status_text()
