#!/usr/bin/env python3
"""
fetch.py - Boundary and Results Retrieval

Fetches the district boundary polygons and the tabular results of one load
cycle. Both downloads are issued concurrently and awaited together; either
failing fails the whole cycle, and nothing is published until both succeed.

Sources come from an explicit DataSources object built by the caller (see
ops.config_loader.Config.get_sources), so selecting production or a mirror is
a parameter rather than something detected at import time.
"""

import json
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
from loguru import logger

from .data_utils import extract_rows, merge_feature_collections, normalize_rows
from .field_registry import FieldRegistry

DEFAULT_TIMEOUT = 60
DEFAULT_MAX_PAGES = 50


class TransportError(Exception):
    """A source could not be retrieved; fatal to the current load cycle."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PaginationLimitError(TransportError):
    """The results API kept returning pages past the configured bound."""


@dataclass
class DataSources:
    """Where one environment's boundaries and results live."""

    geojson_urls: List[str]
    results_url: str
    max_pages: int = DEFAULT_MAX_PAGES
    timeout: float = DEFAULT_TIMEOUT
    name: str = "production"


def _is_remote(source: str) -> bool:
    return source.startswith(("http://", "https://"))


class DataSourceClient:
    """
    HTTP client for the boundary GeoJSON and the results tabular API.

    Without an injected session, each thread gets its own ``requests.Session``:
    the loader runs both fetches at once.
    """

    def __init__(
        self,
        sources: DataSources,
        session: Optional[requests.Session] = None,
        registry: Optional[FieldRegistry] = None,
    ):
        self.sources = sources
        self.registry = registry
        self._shared_session = session
        self._local = threading.local()
        if session is not None:
            session.headers.update({"Accept": "application/json"})

    @property
    def session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update({"Accept": "application/json"})
            self._local.session = session
        return session

    def _get_json(self, source: str, label: str) -> Any:
        """Fetch one JSON document from a URL or a local file."""
        if not _is_remote(source):
            path = Path(source)
            if not path.exists():
                raise TransportError(f"Erreur lors du chargement des {label} : fichier introuvable {path}")
            try:
                with open(path, "r", encoding="utf-8") as f:
                    return json.load(f)
            except (OSError, ValueError) as e:
                logger.error(f"Could not read {label} from {path}: {e}")
                raise TransportError(f"Erreur lors du chargement des {label} : {e}") from e

        try:
            response = self.session.get(source, timeout=self.sources.timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.error(f"HTTP error fetching {label} from {source}: {status}")
            raise TransportError(f"Erreur lors du chargement des {label} ({status})", status) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Request exception fetching {label} from {source}: {e}")
            raise TransportError(f"Erreur lors du chargement des {label} : {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Réponse invalide pour les {label} : {e}", response.status_code) from e

    def fetch_boundaries(self) -> Dict[str, Any]:
        """Fetch every boundary collection and merge their features."""
        collections = []
        for url in self.sources.geojson_urls:
            logger.debug(f"  📍 Fetching boundaries from {url}")
            collections.append(self._get_json(url, "contours"))

        merged = merge_feature_collections(collections)
        logger.info(f"  ✓ Loaded {len(merged['features']):,} boundary features")
        return merged

    def fetch_results(self) -> List[Dict[str, Any]]:
        """Fetch every page of results, following ``links.next``."""
        rows: List[Dict[str, Any]] = []
        next_url: Optional[str] = self.sources.results_url
        pages = 0

        while next_url:
            if pages >= self.sources.max_pages:
                raise PaginationLimitError(
                    f"Pagination des résultats interrompue après {pages} pages "
                    f"(limite {self.sources.max_pages})"
                )
            logger.debug(f"  📥 Fetching results page {pages + 1}: {next_url}")
            payload = self._get_json(next_url, "résultats")
            pages += 1
            rows.extend(extract_rows(payload))

            next_url = None
            if isinstance(payload, dict):
                links = payload.get("links") or {}
                if isinstance(links, dict):
                    next_url = links.get("next") or None

        logger.info(f"  ✓ Loaded {len(rows):,} result rows from {pages} page(s)")
        return normalize_rows(rows, self.registry)


class LoadState(Enum):
    LOADING = "loading"
    ERROR = "error"
    SUCCESS = "success"


@dataclass
class LoadSnapshot:
    """Published outcome of a load cycle: exactly one of the three states."""

    state: LoadState = LoadState.LOADING
    boundaries: Optional[Dict[str, Any]] = None
    rows: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None


class MapDataLoader:
    """
    Runs one load cycle: both fetches concurrently, joint failure, single commit.

    ``cancel()`` marks the loader as torn down; a cycle finishing afterwards
    discards its responses instead of publishing them.
    """

    def __init__(self, client: DataSourceClient):
        self.client = client
        self.snapshot = LoadSnapshot()
        self._alive = True

    @property
    def alive(self) -> bool:
        return self._alive

    def cancel(self) -> None:
        self._alive = False
        logger.debug("Load cycle cancelled; pending responses will be discarded")

    def load(self) -> LoadSnapshot:
        if self._alive:
            self.snapshot = LoadSnapshot(state=LoadState.LOADING)

        try:
            with ThreadPoolExecutor(max_workers=2) as executor:
                boundaries_future = executor.submit(self.client.fetch_boundaries)
                results_future = executor.submit(self.client.fetch_results)
                boundaries = boundaries_future.result()
                rows = results_future.result()
        except TransportError as e:
            if self._alive:
                logger.error(f"❌ {e}")
                self.snapshot = LoadSnapshot(state=LoadState.ERROR, error=str(e))
            return self.snapshot

        if self._alive:
            self.snapshot = LoadSnapshot(state=LoadState.SUCCESS, boundaries=boundaries, rows=rows)
        else:
            logger.debug("Discarding responses of a cancelled load cycle")
        return self.snapshot
