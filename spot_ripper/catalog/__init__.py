"""
Catalog module for spot-ripper.

Everything between an input line and a playable track record:
    - models: Immutable identifiers and records
    - identifiers: Parsing input lines into identifiers
    - session: The CatalogSession contract and its librespot adapter
    - resolver: Region-availability fallback to alternative releases

Usage:
    from spot_ripper.catalog import (
        IdentifierKind,
        LibrespotSession,
        extract_identifiers,
        resolve_playable_track,
    )
"""

from spot_ripper.catalog.identifiers import extract_identifiers, parse_line
from spot_ripper.catalog.models import (
    AlbumRecord,
    ArtistRecord,
    CatalogIdentifier,
    CollectionRecord,
    ContentKey,
    CoverImage,
    IdentifierKind,
    ImageSize,
    TrackRecord,
    decode_base62,
    encode_base62,
)
from spot_ripper.catalog.resolver import fetch_artist_names, resolve_playable_track
from spot_ripper.catalog.session import CatalogSession, LibrespotSession

__all__ = [
    # Models
    "IdentifierKind",
    "CatalogIdentifier",
    "TrackRecord",
    "ArtistRecord",
    "AlbumRecord",
    "CollectionRecord",
    "CoverImage",
    "ImageSize",
    "ContentKey",
    "decode_base62",
    "encode_base62",
    # Parsing
    "extract_identifiers",
    "parse_line",
    # Session
    "CatalogSession",
    "LibrespotSession",
    # Resolution
    "resolve_playable_track",
    "fetch_artist_names",
]
