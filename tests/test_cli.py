# tests/test_cli.py
"""Test the command-line driver"""

import functools

import pytest
from click.testing import CliRunner
from mutagen.id3 import ID3

from spot_ripper import __version__
from spot_ripper.cli import cli
from spot_ripper.core.exceptions import CatalogError
from spot_ripper.download.transfer import TransferOrchestrator

TRACK_A = "4cOdK2wGLETKBW3PvgPWqT"
TRACK_B = "3n3Ppam7vgaVa1iaRUc9Lp"
PLAYLIST = "37i9dQZF1DXcBWIGoYBM5M"


@pytest.fixture
def runner(tmp_path, monkeypatch):
    """CLI runner in an empty working directory without credentials"""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SPOT_RIPPER_USERNAME", raising=False)
    monkeypatch.delenv("SPOT_RIPPER_PASSWORD", raising=False)
    return CliRunner()


@pytest.fixture
def connected(session, monkeypatch, fake_transcoder):
    """Make the CLI log into the in-memory catalog"""
    logins = []

    def connect(username, password):
        logins.append((username, password))
        return session

    monkeypatch.setattr("spot_ripper.cli.LibrespotSession.connect", connect)
    monkeypatch.setattr(
        "spot_ripper.cli.TransferOrchestrator",
        functools.partial(TransferOrchestrator, decrypt=lambda raw, key: raw),
    )
    return logins


class TestCli:
    """Test options, exit codes and a full run"""

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_helper_and_force_tags_conflict(self, runner, tmp_path):
        helper = tmp_path / "helper.sh"
        helper.write_text("#!/bin/sh\n")
        result = runner.invoke(cli, ["--helper", str(helper), "--force-tags"], input="")
        assert result.exit_code == 2

    def test_missing_credentials(self, runner):
        result = runner.invoke(cli, [], input=f"spotify:track:{TRACK_A}\n")
        assert result.exit_code == 1
        assert "Missing credentials" in result.output

    def test_bad_config(self, runner, tmp_path):
        (tmp_path / "config.yaml").write_text("metadata:\n  id3_version: 9\n")
        result = runner.invoke(cli, ["--username", "u", "--password", "p"], input="")
        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_login_failure(self, runner, monkeypatch):
        def connect(username, password):
            raise CatalogError("Could not log in as u", is_auth_error=True)

        monkeypatch.setattr("spot_ripper.cli.LibrespotSession.connect", connect)

        result = runner.invoke(cli, ["--username", "u", "--password", "p"], input="")
        assert result.exit_code == 3

    def test_tracks_from_stdin(self, runner, tmp_path, session, connected):
        """Test a full run with one good and one unknown track"""
        session.add_track(TRACK_A, "Bohemian Rhapsody")
        output = tmp_path / "out"

        result = runner.invoke(
            cli,
            ["--username", "u", "--password", "p", "--output", str(output), "--no-progress"],
            input=f"spotify:track:{TRACK_A}\n# comment\nspotify:track:{TRACK_B}\n",
        )

        assert result.exit_code == 0
        assert connected == [("u", "p")]
        assert ID3(output / "Queen - Bohemian Rhapsody.mp3")["TIT2"].text == ["Bohemian Rhapsody"]
        assert session.closed
        failures = next((output / "logs").glob("download_failures_*.log")).read_text()
        assert f"https://open.spotify.com/track/{TRACK_B}" in failures

    def test_credentials_from_environment(self, runner, tmp_path, session, connected, monkeypatch):
        monkeypatch.setenv("SPOT_RIPPER_USERNAME", "env-user")
        monkeypatch.setenv("SPOT_RIPPER_PASSWORD", "env-pass")

        result = runner.invoke(cli, ["--output", str(tmp_path / "out")], input="")

        assert result.exit_code == 0
        assert connected == [("env-user", "env-pass")]

    def test_playlist_mode(self, runner, tmp_path, session, connected):
        session.add_track(TRACK_A, "One")
        session.add_collection(PLAYLIST, "Road Trip", [TRACK_A])
        input_file = tmp_path / "playlists.txt"
        input_file.write_text(f"https://open.spotify.com/playlist/{PLAYLIST}\n")

        result = runner.invoke(cli, [
            "--username", "u", "--password", "p",
            "--output", str(tmp_path / "out"),
            "--playlist", "--no-progress",
            "--input", str(input_file),
        ])

        assert result.exit_code == 0
        assert (tmp_path / "out" / "Road Trip" / "Queen - One.mp3").exists()
