"""Exception types raised by the catalog, editor and account layers."""

from __future__ import annotations

ACCESS_RESTRICTED = (
    "Access Restricted: this area is reserved for verified administrators only. "
    "Please sign in with appropriate credentials to continue."
)


class CatalogError(ValueError):
    """Base class for catalog mutation errors."""


class NotFoundError(CatalogError):
    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind} {entity_id!r} not found")
        self.kind = kind
        self.entity_id = entity_id


class DuplicateIdError(CatalogError):
    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind} {entity_id!r} already exists")
        self.kind = kind
        self.entity_id = entity_id


class EditSessionError(CatalogError):
    """Invalid transition of the editor's draft state machine."""


class LoginError(ValueError):
    pass


class AccessDenied(PermissionError):
    def __init__(self, message: str = ACCESS_RESTRICTED):
        super().__init__(message)
