"""FastAPI backend wrapping the planmap core package."""

from __future__ import annotations

import asyncio
import logging
import secrets
import threading

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from planmap.advisor import LicensingAdvisor, build_context
from planmap.aggregate import aggregate
from planmap.auth import UserAccount, is_admin
from planmap.catalog import CatalogStore, open_store
from planmap.entitlement import resolve
from planmap.errors import ACCESS_RESTRICTED, AccessDenied, CatalogError, DuplicateIdError, LoginError, NotFoundError
from planmap.exporter import FORMATS, default_filename, render_matrix
from planmap.matrix import build_matrix, matches, toggle_selection
from planmap.models import BillingFrequency, Bundle, Capability
from planmap.session import Session
from pydantic import BaseModel, Field
from starlette.middleware.base import BaseHTTPMiddleware

log = logging.getLogger(__name__)

app = FastAPI(title="planmap", version="0.1.0", description="Compare licensing bundles capability by capability")


class PathTraversalMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        raw_path = request.scope.get("path", "") or request.url.path
        if ".." in raw_path:
            return JSONResponse(status_code=404, content={"detail": "Not found"})
        return await call_next(request)


app.add_middleware(PathTraversalMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Lazy singletons
_store: CatalogStore | None = None
_session: Session | None = None
_advisor: LicensingAdvisor | None = None

# Login tokens issued by /api/login, mapped to account ids
_tokens: dict[str, str] = {}
_tokens_lock = threading.Lock()


def get_store() -> CatalogStore:
    global _store
    if _store is None:
        _store = open_store()
    return _store


def get_session() -> Session:
    global _session
    if _session is None:
        _session = Session()
    return _session


def get_advisor() -> LicensingAdvisor:
    global _advisor
    if _advisor is None:
        _advisor = LicensingAdvisor()
    return _advisor


# --- Request models ---


class SelectionRequest(BaseModel):
    bundle_ids: list[str] = Field(default_factory=list)
    frequency: BillingFrequency = "monthly"


class CompareRequest(SelectionRequest):
    search: str | None = None
    category: str | None = None


class ExportRequest(SelectionRequest):
    format: str = "csv"


class ToggleRequest(BaseModel):
    bundle_ids: list[str] = Field(default_factory=list)
    bundle_id: str


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)
    context: str | None = None


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    passcode: str


# --- Helpers ---


def _selected(bundle_ids: list[str]) -> list[Bundle]:
    store = get_store()
    known = {b.id for b in store.bundles()}
    missing = [bid for bid in bundle_ids if bid not in known]
    if missing:
        raise HTTPException(status_code=404, detail=f"Unknown bundle id(s): {', '.join(missing)}")
    return store.bundles_by_ids(bundle_ids)


def _issue_token(account: UserAccount) -> str:
    token = secrets.token_urlsafe(32)
    with _tokens_lock:
        _tokens[token] = account.id
    return token


def _require_admin(token: str | None) -> UserAccount:
    """Resolve the X-Planmap-Token header to an approved admin account, or 403.

    The account is looked up in the registry on every call, so deleting an
    account revokes its outstanding tokens.
    """
    with _tokens_lock:
        user_id = _tokens.get(token) if token else None
    registry = get_session().load_registry()
    account = next((a for a in registry.accounts if a.id == user_id), None) if user_id else None
    if account is None or not account.is_approved or not is_admin(account):
        raise HTTPException(status_code=403, detail=ACCESS_RESTRICTED)
    return account


def _catalog_error(e: CatalogError, endpoint: str) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, DuplicateIdError):
        return HTTPException(status_code=409, detail=str(e))
    log.warning("%s rejected: %s", endpoint, e)
    return HTTPException(status_code=400, detail=str(e))


# --- Public endpoints ---


@app.get("/api/health")
def health():
    try:
        store = get_store()
        return {
            "status": "ok",
            "catalog_loaded": True,
            "capabilities": len(store.capabilities()),
            "bundles": len(store.bundles()),
            "pending_writes": store.sync.pending,
        }
    except Exception:
        log.exception("Health check could not load the catalog")
        return {"status": "ok", "catalog_loaded": False}


@app.get("/api/bundles")
def list_bundles():
    return {"bundles": [b.model_dump() for b in get_store().bundles()]}


@app.get("/api/capabilities")
def list_capabilities(search: str | None = None, category: str | None = None):
    caps = [c for c in get_store().capabilities() if matches(c, search, category)]
    return {"capabilities": [c.model_dump() for c in caps]}


@app.get("/api/capabilities/{capability_id}")
def get_capability(capability_id: str):
    store = get_store()
    cap = store.get_capability(capability_id)
    if cap is None:
        raise HTTPException(status_code=404, detail=f"Capability {capability_id!r} not found")
    entitlements = {b.id: resolve(b, cap).model_dump() for b in store.bundles()}
    return {"capability": cap.model_dump(), "entitlements": entitlements}


@app.post("/api/aggregate")
def totals(req: SelectionRequest):
    return {"totals": aggregate(_selected(req.bundle_ids), req.frequency).model_dump()}


@app.post("/api/compare")
def compare(req: CompareRequest):
    selected = _selected(req.bundle_ids)
    matrix = build_matrix(get_store().capabilities(), selected, term=req.search, category=req.category)
    return {
        "bundles": [b.model_dump() for b in selected],
        "categories": matrix.categories(),
        "rows": [
            {
                "category": row.category,
                "capability": row.capability.model_dump(),
                "cells": [cell.model_dump() for cell in row.cells],
                "labels": row.labels(),
            }
            for row in matrix.rows
        ],
        "totals": aggregate(selected, req.frequency).model_dump(),
    }


@app.post("/api/selection/toggle")
def toggle(req: ToggleRequest):
    """Add or remove one bundle from a comparison selection, keeping at least one."""
    _selected([req.bundle_id])
    return {"bundle_ids": toggle_selection(req.bundle_ids, req.bundle_id)}


@app.post("/api/export")
def export(req: ExportRequest):
    if req.format not in FORMATS:
        raise HTTPException(status_code=400, detail=f"Unknown format: {req.format}. Supported: {', '.join(FORMATS)}")
    try:
        selected = _selected(req.bundle_ids)
        content = render_matrix(build_matrix(get_store().capabilities(), selected), req.format)
        return {"content": content, "format": req.format, "filename": default_filename(req.format)}
    except HTTPException:
        raise
    except Exception as e:
        log.exception("Export endpoint failed")
        raise HTTPException(status_code=500, detail="Internal server error") from e


@app.post("/api/download")
def download(req: ExportRequest):
    if req.format not in FORMATS:
        raise HTTPException(status_code=400, detail=f"Unknown format: {req.format}. Supported: {', '.join(FORMATS)}")
    selected = _selected(req.bundle_ids)
    content = render_matrix(build_matrix(get_store().capabilities(), selected), req.format)
    media_types = {"csv": "text/csv", "markdown": "text/markdown", "json": "application/json"}
    return Response(
        content=content,
        media_type=media_types[req.format],
        headers={"Content-Disposition": f"attachment; filename={default_filename(req.format)}"},
    )


@app.post("/api/chat")
async def chat(req: ChatRequest):
    # The advisor turns provider failures into an apology reply, so this never errors
    advisor = get_advisor()
    context = req.context or build_context(get_store().bundles())
    reply = await asyncio.to_thread(advisor.ask, req.message, context)
    return {"reply": reply}


@app.post("/api/login")
def login(req: LoginRequest):
    session = get_session()
    try:
        registry = session.load_registry()
        try:
            account = registry.login(req.username, req.passcode)
        finally:
            session.save_registry(registry)
    except LoginError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    return {"user": account.model_dump(), "token": _issue_token(account)}


@app.post("/api/logout")
def logout(x_planmap_token: str | None = Header(default=None)):
    if not x_planmap_token:
        return {"logged_out": False}
    with _tokens_lock:
        revoked = _tokens.pop(x_planmap_token, None) is not None
    return {"logged_out": revoked}


# --- Admin endpoints (X-Planmap-Token: <login token>) ---


@app.post("/api/admin/capabilities", status_code=201)
def create_capability(cap: Capability, x_planmap_token: str | None = Header(default=None)):
    _require_admin(x_planmap_token)
    try:
        return {"capability": get_store().create_capability(cap).model_dump()}
    except CatalogError as e:
        raise _catalog_error(e, "Create capability") from e


@app.put("/api/admin/capabilities/{capability_id}")
def update_capability(capability_id: str, cap: Capability, x_planmap_token: str | None = Header(default=None)):
    _require_admin(x_planmap_token)
    try:
        saved = get_store().update_capability(cap.model_copy(update={"id": capability_id}))
        return {"capability": saved.model_dump()}
    except CatalogError as e:
        raise _catalog_error(e, "Update capability") from e


@app.delete("/api/admin/capabilities/{capability_id}")
def delete_capability(capability_id: str, x_planmap_token: str | None = Header(default=None)):
    _require_admin(x_planmap_token)
    try:
        get_store().delete_capability(capability_id)
    except CatalogError as e:
        raise _catalog_error(e, "Delete capability") from e
    return {"deleted": capability_id}


@app.post("/api/admin/bundles", status_code=201)
def create_bundle(bundle: Bundle, x_planmap_token: str | None = Header(default=None)):
    _require_admin(x_planmap_token)
    try:
        return {"bundle": get_store().create_bundle(bundle).model_dump()}
    except CatalogError as e:
        raise _catalog_error(e, "Create bundle") from e


@app.put("/api/admin/bundles/{bundle_id}")
def update_bundle(bundle_id: str, bundle: Bundle, x_planmap_token: str | None = Header(default=None)):
    _require_admin(x_planmap_token)
    try:
        saved = get_store().update_bundle(bundle.model_copy(update={"id": bundle_id}))
        return {"bundle": saved.model_dump()}
    except CatalogError as e:
        raise _catalog_error(e, "Update bundle") from e


@app.delete("/api/admin/bundles/{bundle_id}")
def delete_bundle(bundle_id: str, x_planmap_token: str | None = Header(default=None)):
    _require_admin(x_planmap_token)
    try:
        get_store().delete_bundle(bundle_id)
    except CatalogError as e:
        raise _catalog_error(e, "Delete bundle") from e
    return {"deleted": bundle_id}


@app.post("/api/admin/reset")
def reset_catalog(x_planmap_token: str | None = Header(default=None)):
    _require_admin(x_planmap_token)
    store = get_store()
    store.reset()
    return {"capabilities": len(store.capabilities()), "bundles": len(store.bundles())}


@app.get("/api/admin/users")
def list_users(x_planmap_token: str | None = Header(default=None)):
    _require_admin(x_planmap_token)
    return {"users": [a.model_dump() for a in get_session().load_registry().accounts]}


@app.post("/api/admin/users/{user_id}/approve")
def approve_user(user_id: str, x_planmap_token: str | None = Header(default=None)):
    actor = _require_admin(x_planmap_token)
    session = get_session()
    registry = session.load_registry()
    try:
        account = registry.approve(user_id, actor)
    except AccessDenied as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except LoginError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    session.save_registry(registry)
    return {"user": account.model_dump()}


@app.delete("/api/admin/users/{user_id}")
def delete_user(user_id: str, x_planmap_token: str | None = Header(default=None)):
    actor = _require_admin(x_planmap_token)
    session = get_session()
    registry = session.load_registry()
    try:
        registry.delete(user_id, actor)
    except AccessDenied as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except LoginError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    session.save_registry(registry)
    return {"deleted": user_id}


def serve(host: str = "127.0.0.1", port: int = 8000):
    """Start the planmap web server."""
    import uvicorn

    uvicorn.run("planmap_web.app:app", host=host, port=port)
