"""Catalog editor — draft-based editing of capabilities and bundles.

Draft operations are pure functions: each takes a Capability or Bundle and
returns a modified deep copy, leaving its input untouched. CatalogEditor runs
one edit session at a time (Idle -> Editing -> Saved | Discarded) and is the
only place drafts are committed to the store.
"""

from __future__ import annotations

import logging
import time
from typing import Literal

from planmap.auth import UserAccount, require_admin
from planmap.catalog.store import CatalogStore
from planmap.errors import EditSessionError, NotFoundError
from planmap.models import Bundle, Capability, Tier, TierStructure

log = logging.getLogger(__name__)

BulkMode = Literal["ADD", "REMOVE"]

DEFAULT_TIER_TITLE = "Standard vs Premium"
DEFAULT_TIER_STATEMENT = "New feature capability"


# --- draft operations on a capability ---


def _tier(cap: Capability, index: int) -> Tier:
    if cap.tier_structure is None:
        raise EditSessionError(f"Capability {cap.id!r} has no tiers")
    if not 0 <= index < len(cap.tier_structure.tiers):
        raise EditSessionError(f"No tier at index {index}")
    return cap.tier_structure.tiers[index]


def add_tier(cap: Capability, name: str | None = None) -> Capability:
    updated = cap.model_copy(deep=True)
    if updated.tier_structure is None:
        updated.tier_structure = TierStructure(title=DEFAULT_TIER_TITLE)
    tiers = updated.tier_structure.tiers
    tiers.append(
        Tier(
            name=name or f"Plan {len(tiers) + 1}",
            capability_statements=[DEFAULT_TIER_STATEMENT],
        )
    )
    return updated


def remove_tier(cap: Capability, index: int) -> Capability:
    """Drop one tier; removing the last tier removes the tier structure."""
    updated = cap.model_copy(deep=True)
    _tier(updated, index)
    del updated.tier_structure.tiers[index]
    if not updated.tier_structure.tiers:
        updated.tier_structure = None
    return updated


def move_tier(cap: Capability, index: int, direction: Literal["up", "down"]) -> Capability:
    """Swap a tier with its neighbour. Moving past either end is a no-op."""
    updated = cap.model_copy(deep=True)
    _tier(updated, index)
    target = index - 1 if direction == "up" else index + 1
    tiers = updated.tier_structure.tiers
    if 0 <= target < len(tiers):
        tiers[index], tiers[target] = tiers[target], tiers[index]
    return updated


def rename_tier(cap: Capability, index: int, name: str) -> Capability:
    updated = cap.model_copy(deep=True)
    _tier(updated, index).name = name
    return updated


def set_tier_title(cap: Capability, title: str) -> Capability:
    updated = cap.model_copy(deep=True)
    if updated.tier_structure is None:
        raise EditSessionError(f"Capability {cap.id!r} has no tiers")
    updated.tier_structure.title = title
    return updated


def toggle_bundle_in_tier(cap: Capability, index: int, bundle_id: str) -> Capability:
    updated = cap.model_copy(deep=True)
    tier = _tier(updated, index)
    if bundle_id in tier.included_in_bundle_ids:
        tier.included_in_bundle_ids = [bid for bid in tier.included_in_bundle_ids if bid != bundle_id]
    else:
        tier.included_in_bundle_ids.append(bundle_id)
    return updated


def add_statement(cap: Capability, index: int, text: str = "") -> Capability:
    updated = cap.model_copy(deep=True)
    _tier(updated, index).capability_statements.append(text)
    return updated


def update_statement(cap: Capability, index: int, statement_index: int, text: str) -> Capability:
    updated = cap.model_copy(deep=True)
    statements = _tier(updated, index).capability_statements
    if not 0 <= statement_index < len(statements):
        raise EditSessionError(f"No capability statement at index {statement_index}")
    statements[statement_index] = text
    return updated


def remove_statement(cap: Capability, index: int, statement_index: int) -> Capability:
    updated = cap.model_copy(deep=True)
    statements = _tier(updated, index).capability_statements
    if not 0 <= statement_index < len(statements):
        raise EditSessionError(f"No capability statement at index {statement_index}")
    del statements[statement_index]
    return updated


def parse_statement_list(statements: str | list[str]) -> list[str]:
    """Split a comma-separated statement list, dropping blanks."""
    items = statements.split(",") if isinstance(statements, str) else statements
    return [s.strip() for s in items if s and s.strip()]


def bulk_update_statements(
    cap: Capability,
    tier_indices: list[int],
    statements: str | list[str],
    mode: BulkMode = "ADD",
) -> Capability:
    """Add or remove capability statements across several tiers at once.

    ADD appends statements not already present; REMOVE deletes matching
    statements. Both compare case-insensitively.
    """
    if mode not in ("ADD", "REMOVE"):
        raise EditSessionError(f"Unknown bulk mode {mode!r}. Use ADD or REMOVE.")
    items = parse_statement_list(statements)
    updated = cap.model_copy(deep=True)
    for index in dict.fromkeys(tier_indices):
        tier = _tier(updated, index)
        if mode == "ADD":
            present = {s.lower() for s in tier.capability_statements}
            for item in items:
                if item.lower() not in present:
                    tier.capability_statements.append(item)
                    present.add(item.lower())
        else:
            doomed = {s.lower() for s in items}
            tier.capability_statements = [s for s in tier.capability_statements if s.lower() not in doomed]
    return updated


# --- draft operations on a bundle ---


def toggle_capability_in_bundle(bundle: Bundle, capability_id: str) -> Bundle:
    updated = bundle.model_copy(deep=True)
    if capability_id in updated.capability_ids:
        updated.capability_ids = [cid for cid in updated.capability_ids if cid != capability_id]
    else:
        updated.capability_ids.append(capability_id)
    return updated


def new_capability_draft() -> Capability:
    return Capability(id=f"feat-{int(time.time() * 1000)}", category="Productivity", documentation_link="")


def new_bundle_draft() -> Bundle:
    return Bundle(id=f"plan-{int(time.time() * 1000)}", type="Enterprise")


# --- edit sessions ---


class CatalogEditor:
    """Administrative editing surface over a CatalogStore.

    Holds at most one open draft. Closing a draft with unsaved changes
    requires confirm=True; saving commits it and returns to idle.
    """

    def __init__(self, store: CatalogStore, account: UserAccount | None):
        self.account = require_admin(account)
        self.store = store
        self.draft: Capability | Bundle | None = None
        self.is_new = False
        self._original: Capability | Bundle | None = None

    @property
    def state(self) -> str:
        return "idle" if self.draft is None else "editing"

    @property
    def dirty(self) -> bool:
        return self.draft is not None and self.draft != self._original

    # --- opening drafts ---

    def start_new_capability(self) -> Capability:
        draft = new_capability_draft()
        while self.store.get_capability(draft.id) is not None:
            draft.id = f"{draft.id}-1"
        return self._open(draft, is_new=True)

    def start_new_bundle(self) -> Bundle:
        draft = new_bundle_draft()
        while self.store.get_bundle(draft.id) is not None:
            draft.id = f"{draft.id}-1"
        return self._open(draft, is_new=True)

    def edit_capability(self, capability_id: str) -> Capability:
        cap = self.store.get_capability(capability_id)
        if cap is None:
            raise NotFoundError("Capability", capability_id)
        return self._open(cap, is_new=False)

    def edit_bundle(self, bundle_id: str) -> Bundle:
        bundle = self.store.get_bundle(bundle_id)
        if bundle is None:
            raise NotFoundError("Bundle", bundle_id)
        return self._open(bundle, is_new=False)

    def _open(self, draft, is_new: bool):
        if self.draft is not None:
            raise EditSessionError("Another draft is already open. Save or discard it first.")
        self.draft = draft
        self._original = draft.model_copy(deep=True)
        self.is_new = is_new
        return draft.model_copy(deep=True)

    # --- mutating the open draft ---

    def apply(self, operation, *args, **kwargs):
        """Run a draft operation against the open draft and keep its result."""
        if self.draft is None:
            raise EditSessionError("No draft is open")
        self.draft = operation(self.draft, *args, **kwargs)
        return self.draft.model_copy(deep=True)

    def update_fields(self, **fields):
        """Replace plain fields on the open draft (name, description, prices, ...)."""
        if self.draft is None:
            raise EditSessionError("No draft is open")
        data = self.draft.model_dump()
        unknown = set(fields) - set(data)
        if unknown:
            raise EditSessionError(f"Unknown field(s): {', '.join(sorted(unknown))}")
        data.update(fields)
        self.draft = type(self.draft).model_validate(data)
        return self.draft.model_copy(deep=True)

    # --- closing drafts ---

    def save(self) -> Capability | Bundle:
        if self.draft is None:
            raise EditSessionError("No draft is open")
        draft = self.draft
        if isinstance(draft, Capability):
            duplicates = draft.duplicate_tier_memberships()
            if duplicates:
                log.warning("Capability %s lists bundles in several tiers: %s", draft.id, duplicates)
            saved = self.store.create_capability(draft) if self.is_new else self.store.update_capability(draft)
        else:
            saved = self.store.create_bundle(draft) if self.is_new else self.store.update_bundle(draft)
        self._close()
        return saved

    def discard(self, confirm: bool = False) -> None:
        """Drop the open draft. Unsaved changes are only dropped with confirm=True."""
        if self.dirty and not confirm:
            raise EditSessionError("You have unsaved changes. Confirm to discard them.")
        self._close()

    def _close(self) -> None:
        self.draft = None
        self._original = None
        self.is_new = False

    # --- direct catalog operations ---

    def create_capability(self, draft: Capability) -> Capability:
        return self.store.create_capability(draft)

    def update_capability(self, capability: Capability) -> Capability:
        return self.store.update_capability(capability)

    def delete_capability(self, capability_id: str) -> None:
        self.store.delete_capability(capability_id)

    def create_bundle(self, draft: Bundle) -> Bundle:
        return self.store.create_bundle(draft)

    def update_bundle(self, bundle: Bundle) -> Bundle:
        return self.store.update_bundle(bundle)

    def delete_bundle(self, bundle_id: str) -> None:
        self.store.delete_bundle(bundle_id)

    def reset_catalog(self) -> None:
        if self.draft is not None:
            raise EditSessionError("Close the open draft before resetting the catalog.")
        self.store.reset()
