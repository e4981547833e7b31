"""
Command-line interface for spot-ripper.

This module implements the CLI using Click; rich-click is used for the
help formatting and colors.

Input:
    One reference per line on stdin (or --input FILE). Blank lines and
    lines starting with '#' are ignored. Accepted forms:

        spotify:track:4cOdK2wGLETKBW3PvgPWqT
        https://open.spotify.com/track/4cOdK2wGLETKBW3PvgPWqT?si=...
        spotify:playlist:37i9dQZF1DXcBWIGoYBM5M          (with --playlist)
        https://open.spotify.com/playlist/37i9dQZF1DXcBWIGoYBM5M

Usage:
    # Rip tracks listed in a file
    spot-ripper --username USER --password PASS < tracks.txt

    # Rip whole playlists
    spot-ripper --playlist < playlists.txt

    # Rewrite tags of files that already exist
    spot-ripper --force-tags < tracks.txt

    # Hand every decoded track to a helper instead of saving it
    spot-ripper --helper ./upload.sh < tracks.txt

Credentials:
    --username/--password, or SPOT_RIPPER_USERNAME / SPOT_RIPPER_PASSWORD
    (a .env file in the working directory is loaded), or the account
    section of config.yaml, in that order of precedence.

Exit Codes:
    0    Run completed (individual tracks may have failed, see the
         download_failures log)
    1    Configuration error or missing credentials
    2    Invalid command-line options
    3    Login or catalog session failure
    4    Other tool error
    130  Interrupted
"""

import sys
from pathlib import Path
from typing import Optional, TextIO

import rich_click as click
from dotenv import load_dotenv

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100
click.rich_click.OPTION_GROUPS = {
    "cli": [
        {
            "name": "Account",
            "options": ["--username", "--password"],
        },
        {
            "name": "Input",
            "options": ["--input", "--playlist"],
        },
        {
            "name": "Output",
            "options": ["--output", "--force-tags", "--helper"],
        },
        {
            "name": "Advanced Options",
            "options": ["--config", "--verbose", "--no-progress"],
        },
        {
            "name": "Info",
            "options": ["--version", "--help"],
        },
    ],
}

from spot_ripper import __version__
from spot_ripper.catalog import IdentifierKind, LibrespotSession, extract_identifiers
from spot_ripper.core import (
    CatalogError,
    Config,
    ConfigError,
    SpotRipperError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from spot_ripper.core.file_manager import OutputPlacer
from spot_ripper.download import (
    ArtworkFetcher,
    BatchStats,
    HelperHook,
    MetadataSynthesizer,
    TrackPipeline,
    TransferOrchestrator,
)

logger = get_logger(__name__)


@click.command()
@click.option(
    "--username",
    type=str,
    default=None,
    envvar="SPOT_RIPPER_USERNAME",
    metavar="<user>",
    help="Spotify account username"
)
@click.option(
    "--password",
    type=str,
    default=None,
    envvar="SPOT_RIPPER_PASSWORD",
    metavar="<password>",
    help="Spotify account password"
)
@click.option(
    "--playlist",
    is_flag=True,
    help="Input lines are playlists instead of tracks"
)
@click.option(
    "--force-tags",
    is_flag=True,
    help="Rewrite tags of files that already exist"
)
@click.option(
    "--helper",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    metavar="<program>",
    help="Pipe decoded tracks to this program instead of saving them"
)
@click.option(
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    metavar="<dir>",
    help="Output directory (overrides config.yaml)"
)
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml if present)"
)
@click.option(
    "--input", "input_file",
    type=click.File("r", encoding="utf-8"),
    default="-",
    metavar="<file>",
    help="Read references from this file instead of stdin"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Show debug messages on the console"
)
@click.option(
    "--no-progress",
    is_flag=True,
    help="Disable the playlist progress bar"
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit."
)
@click.pass_context
def cli(
    ctx: click.Context,
    username: Optional[str],
    password: Optional[str],
    playlist: bool,
    force_tags: bool,
    helper: Optional[Path],
    output: Optional[Path],
    config_path: Optional[Path],
    input_file: TextIO,
    verbose: bool,
    no_progress: bool,
    version: bool
) -> None:
    """
    spot-ripper: Rip Spotify tracks and playlists to tagged MP3 files.

    Reads track (or, with --playlist, playlist) references from stdin,
    one per line, and saves every track as
    <output>/<playlist>/<artists> - <title>.mp3. Files that already
    exist are skipped.

    \b
    BASIC USAGE:
        spot-ripper < tracks.txt                   # Rip tracks
        spot-ripper --playlist < playlists.txt     # Rip playlists
        spot-ripper --force-tags < tracks.txt      # Re-tag existing files

    \b
    ADVANCED:
        spot-ripper --helper ./upload.sh < tracks.txt
        spot-ripper --config other.yaml --output ~/Music < tracks.txt
    """
    # Handle --version
    if version:
        click.echo(f"spot-ripper {__version__}")
        ctx.exit(0)

    if helper and force_tags:
        raise click.UsageError("Cannot use both --helper and --force-tags")

    options = {
        "username": username,
        "password": password,
        "mode": IdentifierKind.COLLECTION if playlist else IdentifierKind.TRACK,
        "force_tags": force_tags,
        "helper": helper,
        "output": output,
        "config_path": config_path,
        "input_file": input_file,
        "verbose": verbose,
        "show_progress": not no_progress,
    }

    _run_rip(options)


def _run_rip(options: dict) -> None:
    """
    Execute the rip workflow based on CLI options.

    This is the main orchestration function that:
    1. Loads configuration and applies command-line overrides
    2. Sets up logging
    3. Logs into the catalog
    4. Runs every input reference through the pipeline
    5. Reports results

    Args:
        options: Dictionary with CLI options.

    Raises:
        SystemExit: On fatal errors (with appropriate exit code).
    """
    try:
        config = _load_configuration(options)

        if not config.account.is_complete:
            click.echo(
                "Missing credentials: pass --username and --password, set "
                "SPOT_RIPPER_USERNAME and SPOT_RIPPER_PASSWORD, or fill the "
                "account section of config.yaml",
                err=True
            )
            sys.exit(1)

        failures_path = setup_logging(config.log_directory, options["verbose"])
        logger.info(f"spot-ripper {__version__} starting")
        logger.debug(f"Output directory: {config.output.directory}")

        with LibrespotSession.connect(
            config.account.username, config.account.password
        ) as session, TransferOrchestrator(
            session,
            allow_missing_key=config.download.allow_missing_key,
            chunk_size=config.download.read_chunk_size,
        ) as transfer:
            pipeline = _build_pipeline(config, options, session, transfer)
            identifiers = extract_identifiers(options["input_file"], options["mode"])
            stats = pipeline.run(identifiers)

        _print_final_stats(stats)
        if stats.failed:
            logger.info(f"Failed tracks are listed in {failures_path}")
        logger.info("spot-ripper completed")

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except CatalogError as e:
        click.echo(f"Catalog error: {e.message}", err=True)
        if e.is_auth_error:
            click.echo("Check your username and password", err=True)
        logger.error(f"Catalog error: {e.message}", exc_info=True)
        sys.exit(3)

    except SpotRipperError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(4)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(1)

    finally:
        shutdown_logging()


def _load_configuration(options: dict) -> Config:
    """
    Load config.yaml and apply command-line overrides.

    Raises:
        ConfigError: If the configuration file is invalid.
    """
    config = load_config(options["config_path"])
    return config.with_overrides(
        username=options["username"],
        password=options["password"],
        output_directory=options["output"],
    )


def _build_pipeline(
    config: Config,
    options: dict,
    session: LibrespotSession,
    transfer: TransferOrchestrator
) -> TrackPipeline:
    """Wire the placer, tag writer and optional helper into a pipeline."""
    artwork_fetcher = None
    if config.metadata.artwork:
        artwork_fetcher = ArtworkFetcher(
            http=session.http,
            url_template=config.metadata.artwork_url_template,
            timeout=config.metadata.request_timeout,
        )

    hook = HelperHook(options["helper"]) if options["helper"] else None
    if hook is not None:
        logger.info(f"Piping tracks to {hook.executable}")

    return TrackPipeline(
        session,
        OutputPlacer(config.output.directory),
        transfer,
        MetadataSynthesizer(artwork_fetcher, id3_version=config.metadata.id3_version),
        transcode_options=config.transcode,
        force_tags=options["force_tags"],
        hook=hook,
        show_progress=options["show_progress"],
    )


def _print_final_stats(stats: BatchStats) -> None:
    """
    Print final statistics of the run.

    Args:
        stats: Counters collected by the pipeline.
    """
    logger.info("=" * 60)
    logger.info("FINAL STATISTICS")
    logger.info("=" * 60)
    logger.info(f"Total tracks:      {stats.total}")
    logger.info(f"Downloaded:        {stats.downloaded}")
    logger.info(f"Skipped:           {stats.skipped}")
    if stats.retagged:
        logger.info(f"Re-tagged:         {stats.retagged}")
    if stats.piped:
        logger.info(f"Piped to helper:   {stats.piped}")
    logger.info(f"Failed:            {stats.failed}")
    if stats.tag_failures:
        logger.info(f"Without tags:      {stats.tag_failures}")
    logger.info("=" * 60)


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `spot-ripper` from the command
    line. A .env file in the working directory is loaded first so its
    variables can feed --username and --password.
    """
    load_dotenv()
    cli()


if __name__ == "__main__":
    main()
