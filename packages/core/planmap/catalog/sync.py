"""Best-effort write-through from the in-memory catalog to a backing store.

Writes are queued in an outbox and applied in order. A failed write is logged
and stays at the head of the outbox until a later flush succeeds; the
in-memory catalog remains authoritative for the session either way.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from planmap.catalog.backend import CatalogBackend, NullBackend

log = logging.getLogger(__name__)


@dataclass
class PendingWrite:
    op: str
    args: tuple[Any, ...]
    kwargs: dict[str, Any] = field(default_factory=dict)
    attempts: int = 0
    last_error: str = ""

    def describe(self) -> str:
        target = self.args[0] if self.args else None
        target_id = getattr(target, "id", target)
        return f"{self.op}({target_id!r})"


class CatalogSync:
    """Ordered outbox in front of a backend; safe to share between threads."""

    def __init__(self, backend: CatalogBackend | None = None):
        self.backend = backend or NullBackend()
        self.outbox: list[PendingWrite] = []
        self._lock = threading.RLock()

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self.outbox)

    def submit(self, op: str, *args: Any, **kwargs: Any) -> None:
        """Queue a backend write and try to drain the outbox. Never raises."""
        with self._lock:
            self.outbox.append(PendingWrite(op=op, args=args, kwargs=kwargs))
            self.flush()

    def flush(self) -> int:
        """Apply queued writes in order, stopping at the first failure. Returns the number still pending."""
        with self._lock:
            while self.outbox:
                write = self.outbox[0]
                write.attempts += 1
                try:
                    getattr(self.backend, write.op)(*write.args, **write.kwargs)
                except Exception as exc:
                    write.last_error = str(exc)
                    log.warning(
                        "Backing store write %s failed (attempt %d): %s", write.describe(), write.attempts, exc
                    )
                    break
                if self.outbox and self.outbox[0] is write:
                    self.outbox.pop(0)
            return len(self.outbox)
