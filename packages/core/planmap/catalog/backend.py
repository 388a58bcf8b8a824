"""Backing stores for the catalog — a relational SQLite schema, or nothing at all."""

from __future__ import annotations

import json
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path

from planmap.models import Bundle, Capability, CatalogSnapshot, Tier, TierStructure

SCHEMA = """
CREATE TABLE IF NOT EXISTS capabilities (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    category TEXT NOT NULL,
    documentation_link TEXT,
    tier_title TEXT,
    position INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS capability_tiers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    capability_id TEXT NOT NULL REFERENCES capabilities(id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    name TEXT NOT NULL,
    capability_statements TEXT NOT NULL DEFAULT '[]',
    UNIQUE(capability_id, position)
);

CREATE TABLE IF NOT EXISTS tier_bundles (
    tier_id INTEGER NOT NULL REFERENCES capability_tiers(id) ON DELETE CASCADE,
    bundle_id TEXT NOT NULL,
    position INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (tier_id, bundle_id)
);

CREATE TABLE IF NOT EXISTS bundles (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    type TEXT NOT NULL,
    monthly_price_usd TEXT NOT NULL DEFAULT '',
    monthly_price_inr TEXT NOT NULL DEFAULT '',
    annual_price_usd TEXT NOT NULL DEFAULT '',
    annual_price_inr TEXT NOT NULL DEFAULT '',
    accent_color TEXT NOT NULL DEFAULT '#000000',
    position INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS bundle_capabilities (
    bundle_id TEXT NOT NULL REFERENCES bundles(id) ON DELETE CASCADE,
    capability_id TEXT NOT NULL,
    position INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (bundle_id, capability_id)
);

CREATE TABLE IF NOT EXISTS tenant_metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_tier_capability ON capability_tiers(capability_id);
CREATE INDEX IF NOT EXISTS idx_bundle_caps_capability ON bundle_capabilities(capability_id);
CREATE INDEX IF NOT EXISTS idx_tier_bundles_bundle ON tier_bundles(bundle_id);
"""


class CatalogBackend(ABC):
    """Persistence target for the catalog. Writes are upserts keyed by id."""

    @abstractmethod
    def load(self) -> CatalogSnapshot | None:
        """Return the persisted catalog, or None when nothing has been stored."""

    @abstractmethod
    def upsert_capability(self, capability: Capability, position: int = 0) -> None: ...

    @abstractmethod
    def delete_capability(self, capability_id: str) -> None: ...

    @abstractmethod
    def upsert_bundle(self, bundle: Bundle, position: int = 0) -> None: ...

    @abstractmethod
    def delete_bundle(self, bundle_id: str) -> None: ...

    def replace_all(self, snapshot: CatalogSnapshot) -> None:
        """Replace everything persisted with the given snapshot, metadata included."""
        for cap in self._stored_capability_ids():
            self.delete_capability(cap)
        for bundle in self._stored_bundle_ids():
            self.delete_bundle(bundle)
        for i, cap in enumerate(snapshot.capabilities):
            self.upsert_capability(cap, position=i)
        for i, bundle in enumerate(snapshot.bundles):
            self.upsert_bundle(bundle, position=i)
        self._clear_metadata()
        for key, value in snapshot.metadata.items():
            self.set_metadata(key, str(value))

    def set_metadata(self, key: str, value: str) -> None:
        """Store one tenant metadata entry. Backends without a metadata table ignore it."""

    def _clear_metadata(self) -> None:
        pass

    def _stored_capability_ids(self) -> list[str]:
        return []

    def _stored_bundle_ids(self) -> list[str]:
        return []


class NullBackend(CatalogBackend):
    """No backing store: the in-memory catalog lives only for the session."""

    def load(self) -> CatalogSnapshot | None:
        return None

    def upsert_capability(self, capability: Capability, position: int = 0) -> None:
        pass

    def delete_capability(self, capability_id: str) -> None:
        pass

    def upsert_bundle(self, bundle: Bundle, position: int = 0) -> None:
        pass

    def delete_bundle(self, bundle_id: str) -> None:
        pass


class SQLiteBackend(CatalogBackend):
    """Relational catalog storage in a SQLite database file."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(SCHEMA)

    @contextmanager
    def _connect(self):
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def load(self) -> CatalogSnapshot | None:
        with self._connect() as conn:
            cap_rows = conn.execute("SELECT * FROM capabilities ORDER BY position, rowid").fetchall()
            bundle_rows = conn.execute("SELECT * FROM bundles ORDER BY position, rowid").fetchall()
            if not cap_rows and not bundle_rows:
                return None
            capabilities = [self._capability_from_row(conn, row) for row in cap_rows]
            bundles = [self._bundle_from_row(conn, row) for row in bundle_rows]
            metadata = {r["key"]: r["value"] for r in conn.execute("SELECT key, value FROM tenant_metadata")}
        return CatalogSnapshot(capabilities=capabilities, bundles=bundles, metadata=metadata)

    def _capability_from_row(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Capability:
        tier_rows = conn.execute(
            "SELECT id, name, capability_statements FROM capability_tiers WHERE capability_id = ? ORDER BY position",
            (row["id"],),
        ).fetchall()
        structure = None
        if row["tier_title"] is not None:
            tiers = []
            for t in tier_rows:
                bundle_ids = [
                    r["bundle_id"]
                    for r in conn.execute(
                        "SELECT bundle_id FROM tier_bundles WHERE tier_id = ? ORDER BY position", (t["id"],)
                    )
                ]
                tiers.append(
                    Tier(
                        name=t["name"],
                        capability_statements=json.loads(t["capability_statements"] or "[]"),
                        included_in_bundle_ids=bundle_ids,
                    )
                )
            structure = TierStructure(title=row["tier_title"], tiers=tiers)
        return Capability(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            category=row["category"],
            documentation_link=row["documentation_link"],
            tier_structure=structure,
        )

    def _bundle_from_row(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Bundle:
        cap_ids = [
            r["capability_id"]
            for r in conn.execute(
                "SELECT capability_id FROM bundle_capabilities WHERE bundle_id = ? ORDER BY position", (row["id"],)
            )
        ]
        return Bundle(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            type=row["type"],
            monthly_price_usd=row["monthly_price_usd"],
            monthly_price_inr=row["monthly_price_inr"],
            annual_price_usd=row["annual_price_usd"],
            annual_price_inr=row["annual_price_inr"],
            accent_color=row["accent_color"],
            capability_ids=cap_ids,
        )

    def upsert_capability(self, capability: Capability, position: int = 0) -> None:
        structure = capability.tier_structure
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO capabilities
                (id, name, description, category, documentation_link, tier_title, position)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    description = excluded.description,
                    category = excluded.category,
                    documentation_link = excluded.documentation_link,
                    tier_title = excluded.tier_title,
                    position = excluded.position""",
                (
                    capability.id,
                    capability.name,
                    capability.description,
                    capability.category,
                    capability.documentation_link,
                    structure.title if structure else None,
                    position,
                ),
            )
            # Tier lists are replaced wholesale
            conn.execute("DELETE FROM capability_tiers WHERE capability_id = ?", (capability.id,))
            if structure is None:
                return
            for i, tier in enumerate(structure.tiers):
                cur = conn.execute(
                    "INSERT INTO capability_tiers (capability_id, position, name, capability_statements) "
                    "VALUES (?, ?, ?, ?)",
                    (capability.id, i, tier.name, json.dumps(tier.capability_statements)),
                )
                for j, bundle_id in enumerate(dict.fromkeys(tier.included_in_bundle_ids)):
                    conn.execute(
                        "INSERT INTO tier_bundles (tier_id, bundle_id, position) VALUES (?, ?, ?)",
                        (cur.lastrowid, bundle_id, j),
                    )

    def delete_capability(self, capability_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM capabilities WHERE id = ?", (capability_id,))
            conn.execute("DELETE FROM bundle_capabilities WHERE capability_id = ?", (capability_id,))

    def upsert_bundle(self, bundle: Bundle, position: int = 0) -> None:
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO bundles
                (id, name, description, type, monthly_price_usd, monthly_price_inr,
                 annual_price_usd, annual_price_inr, accent_color, position)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    description = excluded.description,
                    type = excluded.type,
                    monthly_price_usd = excluded.monthly_price_usd,
                    monthly_price_inr = excluded.monthly_price_inr,
                    annual_price_usd = excluded.annual_price_usd,
                    annual_price_inr = excluded.annual_price_inr,
                    accent_color = excluded.accent_color,
                    position = excluded.position""",
                (
                    bundle.id,
                    bundle.name,
                    bundle.description,
                    bundle.type,
                    bundle.monthly_price_usd,
                    bundle.monthly_price_inr,
                    bundle.annual_price_usd,
                    bundle.annual_price_inr,
                    bundle.accent_color,
                    position,
                ),
            )
            conn.execute("DELETE FROM bundle_capabilities WHERE bundle_id = ?", (bundle.id,))
            for i, cap_id in enumerate(dict.fromkeys(bundle.capability_ids)):
                conn.execute(
                    "INSERT INTO bundle_capabilities (bundle_id, capability_id, position) VALUES (?, ?, ?)",
                    (bundle.id, cap_id, i),
                )

    def delete_bundle(self, bundle_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM bundles WHERE id = ?", (bundle_id,))
            conn.execute("DELETE FROM tier_bundles WHERE bundle_id = ?", (bundle_id,))

    def set_metadata(self, key: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO tenant_metadata (key, value, updated_at) VALUES (?, ?, datetime('now'))",
                (key, value),
            )

    def _clear_metadata(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM tenant_metadata")

    def get_stats(self) -> dict:
        with self._connect() as conn:
            return {
                "capability_count": conn.execute("SELECT COUNT(*) FROM capabilities").fetchone()[0],
                "tier_count": conn.execute("SELECT COUNT(*) FROM capability_tiers").fetchone()[0],
                "bundle_count": conn.execute("SELECT COUNT(*) FROM bundles").fetchone()[0],
                "link_count": conn.execute("SELECT COUNT(*) FROM bundle_capabilities").fetchone()[0],
            }

    def _stored_capability_ids(self) -> list[str]:
        with self._connect() as conn:
            return [r[0] for r in conn.execute("SELECT id FROM capabilities")]

    def _stored_bundle_ids(self) -> list[str]:
        with self._connect() as conn:
            return [r[0] for r in conn.execute("SELECT id FROM bundles")]
