# tests/test_config.py
"""Test configuration loading and validation"""

from pathlib import Path

import pytest

from spot_ripper.core.config import load_config
from spot_ripper.core.exceptions import ConfigError


def write_config(directory: Path, text: str) -> Path:
    path = directory / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    """Test config.yaml parsing"""

    def test_defaults_without_file(self, tmp_path, monkeypatch):
        """Test a missing default config.yaml is not an error"""
        monkeypatch.chdir(tmp_path)
        config = load_config()

        assert config.output.directory == (tmp_path / "music").resolve()
        assert config.account.is_complete is False
        assert config.download.allow_missing_key is False
        assert config.transcode.ffmpeg_path == "ffmpeg"
        assert config.transcode.timeout is None
        assert config.metadata.artwork is True
        assert config.metadata.id3_version == 4
        assert config.log_directory == config.output.directory / "logs"

    def test_explicit_file_missing(self, tmp_path):
        """Test an explicit --config path must exist"""
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path / "nope.yaml")
        assert "not found" in exc_info.value.message

    def test_full_file(self, tmp_path):
        """Test every section"""
        path = write_config(tmp_path, f"""
account:
  username: "user@example.com"
  password: "hunter2"
output:
  directory: "{tmp_path / 'out'}"
download:
  allow_missing_key: true
  read_chunk_size: 4096
transcode:
  ffmpeg_path: "/opt/ffmpeg/bin/ffmpeg"
  timeout: 120
  keep_intermediate_on_failure: true
metadata:
  artwork: false
  id3_version: 3
logging:
  directory: "{tmp_path / 'logs'}"
""")
        config = load_config(path)

        assert config.account.username == "user@example.com"
        assert config.account.is_complete is True
        assert config.output.directory == (tmp_path / "out").resolve()
        assert config.download.allow_missing_key is True
        assert config.download.read_chunk_size == 4096
        assert config.transcode.ffmpeg_path == "/opt/ffmpeg/bin/ffmpeg"
        assert config.transcode.timeout == 120.0
        assert config.transcode.keep_intermediate_on_failure is True
        assert config.metadata.artwork is False
        assert config.metadata.id3_version == 3
        assert config.log_directory == (tmp_path / "logs").resolve()

    def test_empty_file(self, tmp_path):
        """Test an empty file means defaults"""
        config = load_config(write_config(tmp_path, ""))
        assert config.metadata.id3_version == 4

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            load_config(write_config(tmp_path, "output: [unclosed\n"))
        assert "Invalid YAML" in exc_info.value.message

    def test_not_a_mapping(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(write_config(tmp_path, "- a\n- b\n"))

    def test_section_not_a_mapping(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            load_config(write_config(tmp_path, "output: music\n"))
        assert exc_info.value.details["section"] == "output"

    @pytest.mark.parametrize("text, field", [
        ("metadata:\n  id3_version: 5\n", "metadata.id3_version"),
        ("transcode:\n  timeout: -1\n", "transcode.timeout"),
        ("download:\n  read_chunk_size: 0\n", "download.read_chunk_size"),
        ("download:\n  allow_missing_key: \"yes\"\n", "download.allow_missing_key"),
        ("metadata:\n  artwork_url_template: \"https://img/\"\n", "metadata.artwork_url_template"),
        ("output:\n  directory: \"\"\n", "output.directory"),
    ])
    def test_invalid_values(self, tmp_path, text, field):
        """Test field validation names the offending field"""
        with pytest.raises(ConfigError) as exc_info:
            load_config(write_config(tmp_path, text))
        assert exc_info.value.details["field"] == field


class TestOverrides:
    """Test command-line overrides"""

    def test_overrides_applied(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = load_config().with_overrides(
            username="cli-user",
            password="cli-pass",
            output_directory=tmp_path / "elsewhere",
        )
        assert config.account.username == "cli-user"
        assert config.account.password == "cli-pass"
        assert config.output.directory == (tmp_path / "elsewhere").resolve()

    def test_none_keeps_file_values(self, tmp_path):
        path = write_config(tmp_path, "account:\n  username: file-user\n  password: file-pass\n")
        config = load_config(path).with_overrides(username=None, password="cli-pass")
        assert config.account.username == "file-user"
        assert config.account.password == "cli-pass"
