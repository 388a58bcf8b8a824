"""Built-in default catalog shipped with the package."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from planmap.models import CatalogSnapshot

_BUNDLED_CATALOG = Path(__file__).parent.parent / "data" / "catalog.yaml"


@lru_cache(maxsize=1)
def _load_bundled() -> CatalogSnapshot:
    return CatalogSnapshot.from_file(_BUNDLED_CATALOG)


def default_snapshot() -> CatalogSnapshot:
    """Return a fresh deep copy of the bundled catalog."""
    return _load_bundled().model_copy(deep=True)
