"""Catalog store — the single owner of the capability and bundle collections."""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from planmap.catalog.backend import CatalogBackend
from planmap.catalog.defaults import default_snapshot
from planmap.catalog.sync import CatalogSync
from planmap.errors import DuplicateIdError, NotFoundError
from planmap.models import Bundle, Capability, CatalogSnapshot

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogEvent:
    kind: str  # "capability_created", "bundle_deleted", "reset", ...
    entity_id: str | None = None


Subscriber = Callable[[CatalogEvent], None]


class CatalogStore:
    """In-memory catalog with explicit read, subscribe and write operations.

    Every read hands out deep copies and every write stores a deep copy, so a
    caller's working draft can never leak into the committed catalog. Writes
    update memory first, then go to the backing store through a best-effort
    sync; backing store failures never reach the caller.
    """

    def __init__(self, snapshot: CatalogSnapshot | None = None, sync: CatalogSync | None = None):
        initial = snapshot if snapshot is not None else default_snapshot()
        self._capabilities: list[Capability] = [c.model_copy(deep=True) for c in initial.capabilities]
        self._bundles: list[Bundle] = [b.model_copy(deep=True) for b in initial.bundles]
        self._metadata = dict(initial.metadata)
        self.sync = sync or CatalogSync()
        self._subscribers: list[Subscriber] = []
        # Guards the collections and keeps each write ordered with its outbox entry
        self._lock = threading.RLock()

    @classmethod
    def open(cls, backend: CatalogBackend | None = None) -> CatalogStore:
        """Hydrate from a backing store, falling back to the built-in defaults."""
        sync = CatalogSync(backend)
        snapshot: CatalogSnapshot | None = None
        try:
            snapshot = sync.backend.load()
        except Exception as exc:
            log.warning("Could not load catalog from backing store, using defaults: %s", exc)
            return cls(default_snapshot(), sync)

        if snapshot is None:
            store = cls(default_snapshot(), sync)
            # Seed an empty backing store so the next session hydrates from it
            store.sync.submit("replace_all", store.snapshot())
            return store
        return cls(snapshot, sync)

    # --- reads ---

    def capabilities(self) -> list[Capability]:
        with self._lock:
            return [c.model_copy(deep=True) for c in self._capabilities]

    def bundles(self) -> list[Bundle]:
        with self._lock:
            return [b.model_copy(deep=True) for b in self._bundles]

    def get_capability(self, capability_id: str) -> Capability | None:
        with self._lock:
            cap = self._find_capability(capability_id)
            return cap.model_copy(deep=True) if cap else None

    def get_bundle(self, bundle_id: str) -> Bundle | None:
        with self._lock:
            bundle = self._find_bundle(bundle_id)
            return bundle.model_copy(deep=True) if bundle else None

    def bundles_by_ids(self, bundle_ids: list[str]) -> list[Bundle]:
        """Bundles matching the given ids, in catalog order. Unknown ids are ignored."""
        wanted = set(bundle_ids)
        with self._lock:
            return [b.model_copy(deep=True) for b in self._bundles if b.id in wanted]

    def snapshot(self) -> CatalogSnapshot:
        with self._lock:
            return CatalogSnapshot(
                capabilities=self.capabilities(),
                bundles=self.bundles(),
                metadata=dict(self._metadata),
            )

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a change observer. Returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # --- capability writes ---

    def create_capability(self, draft: Capability) -> Capability:
        cap = draft.model_copy(deep=True)
        if not cap.id:
            cap.id = f"feat-{uuid.uuid4().hex[:12]}"
        with self._lock:
            if self._find_capability(cap.id):
                raise DuplicateIdError("Capability", cap.id)
            self._capabilities.append(cap)
            self.sync.submit("upsert_capability", cap.model_copy(deep=True), position=len(self._capabilities) - 1)
        self._emit(CatalogEvent("capability_created", cap.id))
        return cap.model_copy(deep=True)

    def update_capability(self, capability: Capability) -> Capability:
        cap = capability.model_copy(deep=True)
        with self._lock:
            idx = self._capability_index(capability.id)
            self._capabilities[idx] = cap
            self.sync.submit("upsert_capability", cap.model_copy(deep=True), position=idx)
        self._emit(CatalogEvent("capability_updated", cap.id))
        return cap.model_copy(deep=True)

    def delete_capability(self, capability_id: str) -> None:
        """Remove a capability and every bundle's reference to it."""
        with self._lock:
            idx = self._capability_index(capability_id)
            del self._capabilities[idx]
            self.sync.submit("delete_capability", capability_id)
            for pos, bundle in enumerate(self._bundles):
                if capability_id in bundle.capability_ids:
                    bundle.capability_ids = [cid for cid in bundle.capability_ids if cid != capability_id]
                    self.sync.submit("upsert_bundle", bundle.model_copy(deep=True), position=pos)
        self._emit(CatalogEvent("capability_deleted", capability_id))

    # --- bundle writes ---

    def create_bundle(self, draft: Bundle) -> Bundle:
        bundle = draft.model_copy(deep=True)
        if not bundle.id:
            bundle.id = f"plan-{uuid.uuid4().hex[:12]}"
        with self._lock:
            if self._find_bundle(bundle.id):
                raise DuplicateIdError("Bundle", bundle.id)
            self._bundles.append(bundle)
            self.sync.submit("upsert_bundle", bundle.model_copy(deep=True), position=len(self._bundles) - 1)
        self._emit(CatalogEvent("bundle_created", bundle.id))
        return bundle.model_copy(deep=True)

    def update_bundle(self, bundle: Bundle) -> Bundle:
        stored = bundle.model_copy(deep=True)
        with self._lock:
            idx = self._bundle_index(bundle.id)
            self._bundles[idx] = stored
            self.sync.submit("upsert_bundle", stored.model_copy(deep=True), position=idx)
        self._emit(CatalogEvent("bundle_updated", stored.id))
        return stored.model_copy(deep=True)

    def delete_bundle(self, bundle_id: str) -> None:
        """Remove a bundle and drop it from every tier that lists it."""
        with self._lock:
            idx = self._bundle_index(bundle_id)
            del self._bundles[idx]
            self.sync.submit("delete_bundle", bundle_id)
            for pos, cap in enumerate(self._capabilities):
                if cap.tier_structure is None:
                    continue
                touched = False
                for tier in cap.tier_structure.tiers:
                    if bundle_id in tier.included_in_bundle_ids:
                        tier.included_in_bundle_ids = [bid for bid in tier.included_in_bundle_ids if bid != bundle_id]
                        touched = True
                if touched:
                    self.sync.submit("upsert_capability", cap.model_copy(deep=True), position=pos)
        self._emit(CatalogEvent("bundle_deleted", bundle_id))

    # --- whole catalog ---

    def reset(self, snapshot: CatalogSnapshot | None = None) -> None:
        """Discard all edits and load the built-in defaults (or the given snapshot)."""
        fresh = snapshot if snapshot is not None else default_snapshot()
        with self._lock:
            self._capabilities = [c.model_copy(deep=True) for c in fresh.capabilities]
            self._bundles = [b.model_copy(deep=True) for b in fresh.bundles]
            self._metadata = dict(fresh.metadata)
            self.sync.submit("replace_all", self.snapshot())
        self._emit(CatalogEvent("reset"))

    # --- internals ---

    def _emit(self, event: CatalogEvent) -> None:
        for callback in list(self._subscribers):
            callback(event)

    def _find_capability(self, capability_id: str) -> Capability | None:
        return next((c for c in self._capabilities if c.id == capability_id), None)

    def _find_bundle(self, bundle_id: str) -> Bundle | None:
        return next((b for b in self._bundles if b.id == bundle_id), None)

    def _capability_index(self, capability_id: str) -> int:
        for i, cap in enumerate(self._capabilities):
            if cap.id == capability_id:
                return i
        raise NotFoundError("Capability", capability_id)

    def _bundle_index(self, bundle_id: str) -> int:
        for i, bundle in enumerate(self._bundles):
            if bundle.id == bundle_id:
                return i
        raise NotFoundError("Bundle", bundle_id)
