"""Catalog package — in-memory store, best-effort sync and relational backing store."""

from __future__ import annotations

import logging
import os
import sqlite3

from planmap.catalog.backend import SCHEMA, CatalogBackend, NullBackend, SQLiteBackend
from planmap.catalog.defaults import default_snapshot
from planmap.catalog.store import CatalogEvent, CatalogStore
from planmap.catalog.sync import CatalogSync, PendingWrite

log = logging.getLogger(__name__)

__all__ = [
    "CatalogBackend",
    "CatalogEvent",
    "CatalogStore",
    "CatalogSync",
    "NullBackend",
    "PendingWrite",
    "SCHEMA",
    "SQLiteBackend",
    "default_snapshot",
    "open_store",
]


def open_store(db_path: str | None = None) -> CatalogStore:
    """Open the catalog backed by db_path or $PLANMAP_DB; with neither, run in memory only."""
    path = db_path or os.environ.get("PLANMAP_DB")
    backend: CatalogBackend = NullBackend()
    if path:
        try:
            backend = SQLiteBackend(path)
        except (sqlite3.Error, OSError) as exc:
            log.warning("Backing store %s unavailable, running in memory: %s", path, exc)
    return CatalogStore.open(backend)
