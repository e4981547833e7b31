"""
Identifier extraction from free-text input lines.

Each input line may contain one catalog reference in one of two forms:

    spotify:track:4cOdK2wGLETKBW3PvgPWqT
    https://open.spotify.com/track/4cOdK2wGLETKBW3PvgPWqT?si=...

In collection mode the same two forms are matched with "playlist" in
place of "track". The reference can appear anywhere in the line, so
pasted text like "Listen: https://open.spotify.com/..." works.

Lines that are blank or start with "#" are skipped silently. Lines that
match nothing, or whose token does not decode, are logged as warnings
and dropped; extraction never aborts the run.

Usage:
    from spot_ripper.catalog.identifiers import extract_identifiers

    for identifier in extract_identifiers(sys.stdin, IdentifierKind.TRACK):
        ...
"""

import re
from typing import Iterable, Iterator

from spot_ripper.catalog.models import CatalogIdentifier, IdentifierKind, decode_base62
from spot_ripper.core.exceptions import IdentifierError
from spot_ripper.core.logger import get_logger


logger = get_logger(__name__)

COMMENT_MARKER = "#"

_TOKEN = r"([0-9A-Za-z]+)"

PATTERNS: dict[IdentifierKind, tuple[re.Pattern, ...]] = {
    IdentifierKind.TRACK: (
        re.compile(r"spotify:track:" + _TOKEN),
        re.compile(r"open\.spotify\.com/(?:intl-[A-Za-z-]+/)?track/" + _TOKEN),
    ),
    IdentifierKind.COLLECTION: (
        re.compile(r"spotify:playlist:" + _TOKEN),
        re.compile(r"open\.spotify\.com/(?:intl-[A-Za-z-]+/)?playlist/" + _TOKEN),
    ),
}

__all__ = ["extract_identifiers", "parse_line", "decode_base62"]


def parse_line(line: str, mode: IdentifierKind) -> CatalogIdentifier | None:
    """
    Parse one input line.

    Args:
        line: Raw input line, trailing newline allowed.
        mode: Which kind of reference to look for.

    Returns:
        The identifier, or None if the line is blank, a comment, or
        unparseable. Unparseable lines are logged as warnings.
    """
    text = line.strip()
    if not text or text.startswith(COMMENT_MARKER):
        return None

    for pattern in PATTERNS[mode]:
        match = pattern.search(text)
        if match:
            break
    else:
        logger.warning(f"Cannot parse {mode.value} from string {text}")
        return None

    token = match.group(1)
    try:
        decode_base62(token)
    except IdentifierError as e:
        logger.warning(f"Cannot decode {mode.value} id in {text}: {e.message}")
        return None

    return CatalogIdentifier(mode, token)


def extract_identifiers(lines: Iterable[str], mode: IdentifierKind) -> Iterator[CatalogIdentifier]:
    """
    Lazily turn input lines into identifiers.

    Each call returns a fresh generator over the given lines. Nothing is
    read from lines until the generator is advanced.

    Args:
        lines: Any iterable of text lines (a file, sys.stdin, a list).
        mode: IdentifierKind.TRACK or IdentifierKind.COLLECTION.

    Yields:
        CatalogIdentifier for every line that holds a valid reference.
    """
    for line in lines:
        identifier = parse_line(line, mode)
        if identifier is not None:
            yield identifier
