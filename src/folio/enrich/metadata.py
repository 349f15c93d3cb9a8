"""Track metadata client for the public music catalogue API.

Tokens use the client-credentials flow: the id and secret are read from the
environment variables named by :class:`~folio.config.models.EnrichmentConfig`.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import pandas as pd

from folio.api.exceptions import FolioAPIError, FolioValidationError
from folio.config.models import EnrichmentConfig
from folio.enrich.http_client import RetryableHTTPClient

LOGGER = logging.getLogger("folio.enrich")

AUDIO_FEATURE_COLUMNS = [
    "danceability",
    "energy",
    "key",
    "loudness",
    "mode",
    "speechiness",
    "acousticness",
    "instrumentalness",
    "liveness",
    "valence",
    "tempo",
    "duration_ms",
    "time_signature",
]
_TRACK_URI_PREFIX = "spotify:track:"
# Refresh slightly before the advertised expiry.
_TOKEN_EXPIRY_MARGIN = 30.0


@dataclass(slots=True)
class EnrichmentOutput:
    features: pd.DataFrame
    n_fetched: int
    n_skipped: int
    n_unresolved: int


class TrackMetadataClient:
    """Resolve track ids and fetch audio features, one token per client."""

    def __init__(
        self,
        config: EnrichmentConfig,
        http: RetryableHTTPClient | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        self.config = config
        self.http = http or RetryableHTTPClient(
            rps=config.rps,
            max_retries=config.max_retries,
            timeout=config.timeout,
        )
        self._environ = environ if environ is not None else os.environ
        self._access_token: str | None = None
        self._expires_at = 0.0

    def _credentials(self) -> tuple[str, str]:
        client_id = self._environ.get(self.config.client_id_env)
        client_secret = self._environ.get(self.config.client_secret_env)
        if not client_id or not client_secret:
            raise FolioAPIError(
                "Missing API credentials. Set environment variables "
                f"{self.config.client_id_env} and {self.config.client_secret_env}."
            )
        return client_id, client_secret

    def _token(self) -> str:
        if self._access_token is not None and time.monotonic() < self._expires_at:
            return self._access_token
        payload = self.http.post_form(
            self.config.token_url,
            {"grant_type": "client_credentials"},
            auth=self._credentials(),
        )
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise FolioAPIError(
                "Token endpoint response has no access_token.", url=self.config.token_url
            )
        expires_in = float(payload.get("expires_in", 3600))
        self._access_token = str(token)
        self._expires_at = time.monotonic() + max(0.0, expires_in - _TOKEN_EXPIRY_MARGIN)
        return self._access_token

    def _get(self, path: str, params: dict[str, Any]) -> Any:
        url = f"{self.config.api_base_url.rstrip('/')}/{path.lstrip('/')}"
        try:
            return self.http.get_json(
                url, headers={"Authorization": f"Bearer {self._token()}"}, params=params
            )
        except FolioAPIError as exc:
            if exc.status_code != 401:
                raise
        # Token revoked or expired early: fetch a new one and retry once.
        self._access_token = None
        return self.http.get_json(
            url, headers={"Authorization": f"Bearer {self._token()}"}, params=params
        )

    def search_track(self, artist: str, track: str) -> str | None:
        params: dict[str, Any] = {
            "q": f'track:"{track}" artist:"{artist}"',
            "type": "track",
            "limit": 1,
        }
        if self.config.market:
            params["market"] = self.config.market
        payload = self._get("search", params)
        items = (payload or {}).get("tracks", {}).get("items") or []
        if not items:
            return None
        return items[0].get("id")

    def audio_features(self, ids: Iterable[str]) -> list[dict[str, Any]]:
        id_list = list(dict.fromkeys(ids))
        features: list[dict[str, Any]] = []
        for start in range(0, len(id_list), self.config.batch_size):
            batch = id_list[start : start + self.config.batch_size]
            payload = self._get("audio-features", {"ids": ",".join(batch)})
            for item in (payload or {}).get("audio_features") or []:
                if item:
                    features.append(item)
        return features

    def close(self) -> None:
        self.http.close()


def track_id_from_uri(uri: Any) -> str | None:
    if isinstance(uri, str) and uri.startswith(_TRACK_URI_PREFIX):
        return uri[len(_TRACK_URI_PREFIX) :] or None
    return None


def _row_key(values: Iterable[Any]) -> tuple[str, ...]:
    return tuple(str(value).strip().casefold() for value in values)


def _require_keys(frame: pd.DataFrame, keys: Sequence[str], label: str) -> None:
    missing = [key for key in keys if key not in frame.columns]
    if missing:
        raise FolioValidationError(f"{label} is missing join key column(s): {missing}")


def enrich_tracks(
    tracks: pd.DataFrame,
    client: TrackMetadataClient,
    existing: pd.DataFrame | None = None,
    on_batch: Callable[[dict[str, Any]], None] | None = None,
    keys: Sequence[str] = ("artist", "track"),
    on_checkpoint: Callable[[pd.DataFrame], None] | None = None,
) -> EnrichmentOutput:
    """Fetch audio features for tracks that are not in ``existing`` yet.

    Notes
    -----
    - Tracks are matched against ``existing`` on ``keys`` with trimmed,
      case-insensitive values.
    - Track ids come from ``track_uri`` when present, otherwise from a search.
    - Unresolved tracks are counted, not raised, so a partial catalogue still
      produces a usable table.
    - ``on_checkpoint`` receives the combined table after every audio-features
      batch. Persisting it lets a run that fails mid-way resume from the last
      completed batch.
    """
    keys = list(keys)
    _require_keys(tracks, keys, "Track table")
    has_existing = existing is not None and not existing.empty
    known: set[tuple[str, ...]] = set()
    if has_existing:
        _require_keys(existing, keys, "Existing feature table")
        known = {_row_key(values) for values in existing[keys].itertuples(index=False)}

    pending: list[tuple[dict[str, Any], str]] = []
    n_skipped = 0
    n_unresolved = 0
    seen: set[tuple[str, ...]] = set()
    for record in tracks.to_dict("records"):
        key = _row_key(record[name] for name in keys)
        if key in seen:
            continue
        seen.add(key)
        if key in known:
            n_skipped += 1
            continue
        track_id = track_id_from_uri(record.get("track_uri"))
        if track_id is None:
            track_id = client.search_track(str(record["artist"]), str(record["track"]))
        if track_id is None:
            n_unresolved += 1
            LOGGER.info("no catalogue match for %s - %s", record["artist"], record["track"])
            continue
        pending.append((record, track_id))

    extra_keys = [key for key in keys if key not in ("artist", "track")]
    columns = ["artist", "track", *extra_keys, "track_id", *AUDIO_FEATURE_COLUMNS]
    rows: list[dict[str, Any]] = []

    def _combined() -> pd.DataFrame:
        fetched = pd.DataFrame(rows, columns=columns)
        if has_existing:
            combined = pd.concat([existing, fetched], ignore_index=True) if rows else existing
        else:
            combined = fetched
        return combined.reset_index(drop=True)

    batch_size = client.config.batch_size
    for start in range(0, len(pending), batch_size):
        batch = pending[start : start + batch_size]
        by_id = {
            str(item["id"]): item
            for item in client.audio_features([track_id for _, track_id in batch])
            if item.get("id")
        }
        for record, track_id in batch:
            item = by_id.get(track_id)
            if item is None:
                n_unresolved += 1
                continue
            row: dict[str, Any] = {name: record[name] for name in ("artist", "track", *extra_keys)}
            row["track_id"] = track_id
            row.update({col: item.get(col) for col in AUDIO_FEATURE_COLUMNS})
            rows.append(row)
        if on_batch is not None:
            on_batch(
                {
                    "batch_start": start,
                    "batch_size": len(batch),
                    "fetched_total": len(rows),
                }
            )
        if on_checkpoint is not None:
            on_checkpoint(_combined())

    return EnrichmentOutput(
        features=_combined(),
        n_fetched=len(rows),
        n_skipped=n_skipped,
        n_unresolved=n_unresolved,
    )
