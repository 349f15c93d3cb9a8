"""Supplementary track metadata from the public catalogue API."""

from folio.enrich.http_client import RetryableHTTPClient
from folio.enrich.metadata import (
    AUDIO_FEATURE_COLUMNS,
    EnrichmentOutput,
    TrackMetadataClient,
    enrich_tracks,
    track_id_from_uri,
)

__all__ = [
    "AUDIO_FEATURE_COLUMNS",
    "EnrichmentOutput",
    "RetryableHTTPClient",
    "TrackMetadataClient",
    "enrich_tracks",
    "track_id_from_uri",
]
