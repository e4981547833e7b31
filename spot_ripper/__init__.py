"""
spot-ripper: Rip Spotify tracks and playlists to tagged MP3 files.

This package reads Spotify track or playlist references from a text
stream, logs into the catalog with a user account, downloads the Ogg
Vorbis stream of every track, converts it to MP3 with ffmpeg and writes
ID3 tags (title, album, artists, playlist, cover art).

Architecture:
    catalog/    - Identifiers, records, the librespot session adapter
                  and region-availability fallback
    download/   - Format selection, fetch-and-decrypt, ffmpeg conversion,
                  ID3 tagging, helper hook and the per-track pipeline
    core/       - Configuration, logging, exceptions, progress bars and
                  output placement
    cli.py      - Command-line interface

Usage:
    Command Line:
        spot-ripper --username USER --password PASS < tracks.txt
        spot-ripper --playlist < playlists.txt
        spot-ripper --force-tags < tracks.txt
        spot-ripper --helper ./upload.sh < tracks.txt

    Python API:
        from spot_ripper.catalog import LibrespotSession, IdentifierKind, extract_identifiers
        from spot_ripper.core.file_manager import OutputPlacer
        from spot_ripper.download import (
            MetadataSynthesizer, TrackPipeline, TransferOrchestrator
        )

        session = LibrespotSession.connect(username, password)
        with TransferOrchestrator(session) as transfer:
            pipeline = TrackPipeline(
                session, OutputPlacer(Path("music")), transfer, MetadataSynthesizer()
            )
            stats = pipeline.run(extract_identifiers(lines, IdentifierKind.TRACK))

Dependencies:
    - librespot: Spotify catalog session, audio keys, decryption
    - requests: CDN content and cover art downloads
    - mutagen: ID3 tags
    - Pillow: Cover art validation
    - rich-click / rich: CLI and progress bars
    - tqdm: Progress-bar-safe console logging
    - pyyaml: Configuration file parsing
    - python-dotenv: Credentials from .env
"""

__version__ = "0.1.0"
__author__ = "spot-ripper"
__license__ = "MIT"

from spot_ripper.core import (
    Config,
    ConfigError,
    SpotRipperError,
    get_logger,
    load_config,
    setup_logging,
)

__all__ = [
    "__version__",
    "Config",
    "load_config",
    "setup_logging",
    "get_logger",
    "SpotRipperError",
    "ConfigError",
]
