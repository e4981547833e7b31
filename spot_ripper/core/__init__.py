"""
Core module for spot-ripper.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - logger: Logging system with multiple outputs
    - progress: Rich progress bars for playlist walks
    - file_manager: Output placement (imported directly, it depends on
      spot_ripper.catalog)

Usage:
    from spot_ripper.core import (
        Config, load_config,
        setup_logging, get_logger,
        SpotRipperError, ConfigError, CatalogError
    )
"""

from spot_ripper.core.config import (
    AccountConfig,
    Config,
    DownloadConfig,
    LoggingConfig,
    MetadataConfig,
    OutputConfig,
    TranscodeConfig,
    load_config,
)
from spot_ripper.core.exceptions import (
    CatalogError,
    ConfigError,
    DecryptionError,
    FormatUnavailableError,
    HelperError,
    IdentifierError,
    MetadataError,
    OutputError,
    PathCollisionError,
    SpotRipperError,
    TranscodeError,
    TransferError,
    UnauthorizedContentError,
    UnavailableTrackError,
)
from spot_ripper.core.logger import (
    get_logger,
    log_track_failure,
    setup_logging,
    shutdown_logging,
)
from spot_ripper.core.progress import TrackProgressBar

__all__ = [
    # Config
    "Config",
    "AccountConfig",
    "OutputConfig",
    "DownloadConfig",
    "TranscodeConfig",
    "MetadataConfig",
    "LoggingConfig",
    "load_config",
    # Exceptions
    "SpotRipperError",
    "ConfigError",
    "CatalogError",
    "IdentifierError",
    "UnavailableTrackError",
    "FormatUnavailableError",
    "TransferError",
    "DecryptionError",
    "UnauthorizedContentError",
    "TranscodeError",
    "PathCollisionError",
    "OutputError",
    "MetadataError",
    "HelperError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_track_failure",
    "shutdown_logging",
    # Progress
    "TrackProgressBar",
]
