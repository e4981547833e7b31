"""
Configuration management for spot-ripper.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - Account credentials (optional, usually passed on the command line)
    - Output directory for the ripped files
    - Transfer behaviour (missing-key policy, read chunk size)
    - ffmpeg location and timeout
    - Metadata options (artwork, image host template, ID3 version)
    - Log directory

Configuration File Location:
    By default config.yaml is looked up in the current working directory.
    Unlike an explicit --config path, the default file is optional: when it
    is missing every section falls back to its defaults.

Example config.yaml:
    account:
      username: "user@example.com"
      password: "hunter2"

    output:
      directory: "~/Music/ripped"

    download:
      allow_missing_key: false

    transcode:
      ffmpeg_path: "ffmpeg"
      timeout: null

    metadata:
      artwork: true
      id3_version: 4
"""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

from spot_ripper.core.exceptions import ConfigError


# Default configuration file name (looked up in current working directory)
CONFIG_FILENAME = "config.yaml"

DEFAULT_OUTPUT_DIRECTORY = "music"
DEFAULT_ARTWORK_URL_TEMPLATE = "https://i.scdn.co/image/{image_id}"
DEFAULT_READ_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class AccountConfig:
    """
    Catalog account credentials.

    Attributes:
        username: Account user name or e-mail. Empty if not configured.
        password: Account password. Empty if not configured.
    """
    username: str = ""
    password: str = ""

    @property
    def is_complete(self) -> bool:
        """True when both username and password are set."""
        return bool(self.username) and bool(self.password)


@dataclass(frozen=True)
class OutputConfig:
    """
    Output directory configuration.

    Attributes:
        directory: Absolute path of the output root. Single tracks land
                   directly in it, playlist members in a sub-directory
                   named after the playlist.
    """
    directory: Path


@dataclass(frozen=True)
class DownloadConfig:
    """
    Transfer behaviour.

    Attributes:
        allow_missing_key: If True, pass the content through undecrypted
                           when the session refuses to issue a key instead
                           of failing the track.
        read_chunk_size: Size of each read from the content stream.
    """
    allow_missing_key: bool = False
    read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE


@dataclass(frozen=True)
class TranscodeConfig:
    """
    External conversion process settings.

    Attributes:
        ffmpeg_path: Executable name or path of ffmpeg.
        timeout: Seconds before the conversion is killed. None disables it.
        keep_intermediate_on_failure: Leave the .ogg in place when the
                                      conversion fails (for debugging).
    """
    ffmpeg_path: str = "ffmpeg"
    timeout: float | None = None
    keep_intermediate_on_failure: bool = False


@dataclass(frozen=True)
class MetadataConfig:
    """
    Tagging settings.

    Attributes:
        artwork: Whether to fetch and embed cover art.
        artwork_url_template: Image host URL with an {image_id} placeholder.
        request_timeout: Timeout in seconds for the artwork GET.
        id3_version: ID3v2 minor version used when saving tags (3 or 4).
    """
    artwork: bool = True
    artwork_url_template: str = DEFAULT_ARTWORK_URL_TEMPLATE
    request_timeout: float = 10
    id3_version: int = 4


@dataclass(frozen=True)
class LoggingConfig:
    """
    Attributes:
        directory: Where log files go. None means <output.directory>/logs.
    """
    directory: Path | None = None


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    This is the main configuration object that aggregates all configuration
    sections. It is created by load_config() and should be treated as
    immutable (frozen dataclass). Command-line overrides are applied with
    Config.with_overrides(), which returns a new instance.

    Example:
        config = load_config()
        print(f"Saving to: {config.output.directory}")
    """
    account: AccountConfig
    output: OutputConfig
    download: DownloadConfig
    transcode: TranscodeConfig
    metadata: MetadataConfig
    logging: LoggingConfig

    @property
    def log_directory(self) -> Path:
        """Directory for log files, defaulting to <output>/logs."""
        return self.logging.directory or self.output.directory / "logs"

    def with_overrides(
        self,
        username: str | None = None,
        password: str | None = None,
        output_directory: Path | None = None
    ) -> "Config":
        """
        Return a copy with command-line values applied on top.

        Args:
            username: Overrides account.username when not None.
            password: Overrides account.password when not None.
            output_directory: Overrides output.directory when not None.

        Returns:
            A new Config instance.
        """
        account = replace(
            self.account,
            username=username if username is not None else self.account.username,
            password=password if password is not None else self.account.password,
        )
        output = self.output
        if output_directory is not None:
            output = OutputConfig(directory=Path(output_directory).expanduser().resolve())
        return replace(self, account=account, output=output)


def default_config() -> Config:
    """Build a Config with every section at its defaults."""
    return _build_config({})


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in the current working
                     directory and falls back to defaults if it is absent.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If an explicit config file is not found, the file has
                     invalid YAML syntax, or contains invalid values.
                     The error message will indicate the specific problem.
    """
    explicit = config_path is not None
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        if explicit:
            raise ConfigError(
                f"Configuration file not found: {config_path}",
                details={"file_path": str(config_path)}
            )
        return default_config()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    # An empty file parses to None
    if raw_config is None:
        raw_config = {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return _build_config(raw_config)


def _build_config(raw_config: dict[str, Any]) -> Config:
    """Validate every section of the raw dictionary and assemble a Config."""
    return Config(
        account=_parse_account_config(_section(raw_config, "account")),
        output=_parse_output_config(_section(raw_config, "output")),
        download=_parse_download_config(_section(raw_config, "download")),
        transcode=_parse_transcode_config(_section(raw_config, "transcode")),
        metadata=_parse_metadata_config(_section(raw_config, "metadata")),
        logging=_parse_logging_config(_section(raw_config, "logging")),
    )


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    """
    Fetch an optional section, checking that it is a dictionary.

    Raises:
        ConfigError: If the section exists but is not a mapping.
    """
    section = raw_config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def _optional_string(section: dict[str, Any], key: str, field_name: str) -> str:
    value = section.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigError(
            f"'{field_name}' must be a string",
            details={"field": field_name}
        )
    return value.strip()


def _parse_account_config(section: dict[str, Any]) -> AccountConfig:
    return AccountConfig(
        username=_optional_string(section, "username", "account.username"),
        password=_optional_string(section, "password", "account.password"),
    )


def _parse_output_config(section: dict[str, Any]) -> OutputConfig:
    """
    Parse the output section.

    Expands ~ to home directory and converts to absolute Path.
    Does NOT create the directory (that happens at placement time).
    """
    directory = section.get("directory", DEFAULT_OUTPUT_DIRECTORY)

    if not isinstance(directory, str) or not directory.strip():
        raise ConfigError(
            "'output.directory' must be a non-empty string",
            details={"field": "output.directory"}
        )

    return OutputConfig(directory=Path(directory.strip()).expanduser().resolve())


def _parse_download_config(section: dict[str, Any]) -> DownloadConfig:
    allow_missing_key = section.get("allow_missing_key", False)
    if not isinstance(allow_missing_key, bool):
        raise ConfigError(
            "'download.allow_missing_key' must be true or false",
            details={"field": "download.allow_missing_key", "value": allow_missing_key}
        )

    chunk_size = section.get("read_chunk_size", DEFAULT_READ_CHUNK_SIZE)
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size < 1:
        raise ConfigError(
            "'download.read_chunk_size' must be a positive integer",
            details={"field": "download.read_chunk_size", "value": chunk_size}
        )

    return DownloadConfig(allow_missing_key=allow_missing_key, read_chunk_size=chunk_size)


def _parse_transcode_config(section: dict[str, Any]) -> TranscodeConfig:
    ffmpeg_path = section.get("ffmpeg_path", "ffmpeg")
    if not isinstance(ffmpeg_path, str) or not ffmpeg_path.strip():
        raise ConfigError(
            "'transcode.ffmpeg_path' must be a non-empty string",
            details={"field": "transcode.ffmpeg_path"}
        )

    timeout = section.get("timeout")
    if timeout is not None:
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigError(
                "'transcode.timeout' must be a positive number or null",
                details={"field": "transcode.timeout", "value": timeout}
            )
        timeout = float(timeout)

    keep = section.get("keep_intermediate_on_failure", False)
    if not isinstance(keep, bool):
        raise ConfigError(
            "'transcode.keep_intermediate_on_failure' must be true or false",
            details={"field": "transcode.keep_intermediate_on_failure"}
        )

    return TranscodeConfig(
        ffmpeg_path=ffmpeg_path.strip(),
        timeout=timeout,
        keep_intermediate_on_failure=keep,
    )


def _parse_metadata_config(section: dict[str, Any]) -> MetadataConfig:
    artwork = section.get("artwork", True)
    if not isinstance(artwork, bool):
        raise ConfigError(
            "'metadata.artwork' must be true or false",
            details={"field": "metadata.artwork"}
        )

    template = section.get("artwork_url_template", DEFAULT_ARTWORK_URL_TEMPLATE)
    if not isinstance(template, str) or "{image_id}" not in template:
        raise ConfigError(
            "'metadata.artwork_url_template' must contain an {image_id} placeholder",
            details={"field": "metadata.artwork_url_template", "value": template}
        )

    timeout = section.get("request_timeout", 10)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError(
            "'metadata.request_timeout' must be a positive number",
            details={"field": "metadata.request_timeout", "value": timeout}
        )

    id3_version = section.get("id3_version", 4)
    if id3_version not in (3, 4) or isinstance(id3_version, bool):
        raise ConfigError(
            "'metadata.id3_version' must be 3 or 4",
            details={"field": "metadata.id3_version", "value": id3_version}
        )

    return MetadataConfig(
        artwork=artwork,
        artwork_url_template=template,
        request_timeout=float(timeout),
        id3_version=id3_version,
    )


def _parse_logging_config(section: dict[str, Any]) -> LoggingConfig:
    directory = section.get("directory")
    if directory is None:
        return LoggingConfig()
    if not isinstance(directory, str) or not directory.strip():
        raise ConfigError(
            "'logging.directory' must be a non-empty string or null",
            details={"field": "logging.directory"}
        )
    return LoggingConfig(directory=Path(directory.strip()).expanduser().resolve())
