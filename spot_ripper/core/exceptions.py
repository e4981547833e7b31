"""
Exception classes for spot-ripper.

This module defines all custom exceptions used throughout the application.
Each exception is designed to provide clear, actionable error messages
and to distinguish between the failure classes of the batch:

    - Setup-fatal: stops the whole run (ConfigError, CatalogError with
      is_auth_error=True).
    - Parse-skip: an input line is dropped (IdentifierError, never
      propagated out of the extractor).
    - Per-track-fatal: one track is abandoned, the batch continues
      (everything else except MetadataError).
    - Degraded: logged, processing continues (MetadataError).

Exception Hierarchy:
    SpotRipperError (base)
        ConfigError - Configuration file or option issues
        CatalogError - Session / catalog service issues
        IdentifierError - Undecodable catalog reference
        UnavailableTrackError - Track and all alternatives region-restricted
        FormatUnavailableError - No acceptable encoded format
        TransferError - Content stream read failure
        DecryptionError - Decryption primitive failure
            UnauthorizedContentError - No decryption key was issued
        TranscodeError - ffmpeg conversion failure
        PathCollisionError - Two tracks claimed the same output path
        OutputError - Output directory or file system failure
        MetadataError - ID3 tag write failure
        HelperError - External post-processing hook failure
"""


class SpotRipperError(Exception):
    """
    Base exception for all spot-ripper errors.

    All custom exceptions in this project inherit from this class,
    allowing the pipeline to catch every per-track failure with a single
    except clause at the per-item boundary.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., track id, path).

    Example:
        try:
            pipeline.process_track(identifier)
        except SpotRipperError as e:
            logger.error(f"Track failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'track_id': Catalog track token involved in the error
                     - 'path': Filesystem path involved in the error
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(SpotRipperError):
    """
    Raised when there's an issue with the configuration file or options.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - Explicit --config path does not exist
        - config.yaml has invalid YAML syntax
        - Invalid field values (e.g., id3_version not 3 or 4)

    Example:
        raise ConfigError(
            "'metadata.id3_version' must be 3 or 4",
            details={'field': 'metadata.id3_version', 'value': 5}
        )
    """
    pass


class CatalogError(SpotRipperError):
    """
    Raised when there's an issue with the catalog session.

    Can be CRITICAL (auth failure) or NON-CRITICAL (single record fetch failure).

    Common causes:
        - Bad credentials or connection refused (CRITICAL)
        - Track, album, artist or playlist not found
        - Network error while fetching metadata

    Attributes:
        is_auth_error: True if this is an authentication/connection error (CRITICAL).
        is_not_found: True if the requested record does not exist.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        is_auth_error: bool = False,
        is_not_found: bool = False
    ) -> None:
        """
        Initialize catalog error with additional flags.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context.
            is_auth_error: Set to True if this is an authentication failure.
                          Authentication errors are CRITICAL and abort the run.
            is_not_found: Set to True if the record does not exist.
        """
        super().__init__(message, details)
        self.is_auth_error = is_auth_error
        self.is_not_found = is_not_found


class IdentifierError(SpotRipperError):
    """
    Raised when a catalog token cannot be decoded.

    The identifier extractor catches this, logs a warning and drops the
    input line. It never aborts the run.
    """
    pass


class UnavailableTrackError(SpotRipperError):
    """
    Raised when a track is restricted in the session's region and none
    of its listed alternatives is playable.

    This is a NON-CRITICAL error - the batch continues with the next item.

    Example:
        raise UnavailableTrackError(
            "No playable alternative for track 4cOdK2wGLETKBW3PvgPWqT",
            details={'track_id': '4cOdK2wGLETKBW3PvgPWqT', 'alternatives_tried': 2}
        )
    """
    pass


class FormatUnavailableError(SpotRipperError):
    """
    Raised when none of the accepted encodings is in the track's format table.

    This is a NON-CRITICAL error. details['available'] lists the format
    tags the catalog did offer, to aid diagnosis.
    """
    pass


class TransferError(SpotRipperError):
    """
    Raised when reading the encrypted content stream fails.

    This is a NON-CRITICAL error - the track is abandoned.

    Common causes:
        - CDN URL could not be resolved
        - HTTP error or dropped connection while reading
    """
    pass


class DecryptionError(SpotRipperError):
    """
    Raised when the decryption primitive fails on the fetched bytes.

    This is a NON-CRITICAL error - the track is abandoned.
    """
    pass


class UnauthorizedContentError(DecryptionError):
    """
    Raised when the session issued no decryption key for a content file.

    Decoding without a key only produces noise for encrypted content, so
    this is reported as its own failure unless download.allow_missing_key
    is enabled in the configuration.
    """
    pass


class TranscodeError(SpotRipperError):
    """
    Raised when the external conversion process fails.

    This is a NON-CRITICAL error - the track is abandoned and any partial
    output file is removed so the next run retries it.

    Common causes:
        - ffmpeg is not installed or not on PATH
        - ffmpeg exited with a non-zero status
        - Conversion exceeded the configured timeout

    Example:
        raise TranscodeError(
            "ffmpeg exited with status 1",
            details={'input': '/music/A - B.ogg', 'stderr': '...'}
        )
    """
    pass


class PathCollisionError(SpotRipperError):
    """
    Raised when two distinct tracks resolve to the same output path
    and the placer is not allowed to disambiguate them.
    """
    pass


class OutputError(SpotRipperError):
    """
    Raised when the output directory or a track's files can't be used.

    This is a NON-CRITICAL error - only the current track is abandoned.

    Common causes:
        - File name longer than the filesystem allows
        - Permission denied on the output directory
        - Disk full while writing the decoded stream

    Example:
        raise OutputError(
            "Couldn't write /music/A - B.ogg: [Errno 28] No space left on device",
            details={'path': '/music/A - B.ogg', 'errno': 28}
        )
    """
    pass


class MetadataError(SpotRipperError):
    """
    Raised when there's an issue writing tags into the final file.

    This is a DEGRADED condition - the audio file is still usable
    without tags, so the pipeline logs it and moves on.

    Common causes:
        - Final file missing or not an MP3
        - Permission denied on write
        - Disk full during write
    """
    pass


class HelperError(SpotRipperError):
    """
    Raised when the external post-processing helper fails.

    This is a NON-CRITICAL error for the track that was being piped.

    Common causes:
        - Helper executable not found or not executable
        - Helper closed its stdin early
        - Helper exited with a non-zero status
    """
    pass
