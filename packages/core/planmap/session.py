"""Session state kept in a small local JSON key-value file.

Holds the signed-in user, the chosen billing frequency, the remembered
comparison selection and the account list with its passcode configuration.
The catalog itself is never stored here.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from planmap.auth import AccountRegistry, AuthConfig, UserAccount, default_accounts
from planmap.models import BillingFrequency

log = logging.getLogger(__name__)

KEYS = {
    "current_user": "pm_curr_user",
    "billing_frequency": "pm_billing_frequency",
    "accounts": "pm_users",
    "auth_config": "pm_auth_config",
    "selected_bundles": "pm_selected_bundles",
}


def default_home() -> Path:
    return Path(os.environ.get("PLANMAP_HOME", str(Path.home() / ".planmap")))


class LocalStorage:
    """Synchronous key-value storage persisted as one JSON file."""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path else default_home() / "session.json"
        self._data: dict[str, Any] = self._read()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            log.warning("Ignoring unreadable session file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._write()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._write()


class Session:
    """Typed view over LocalStorage for the values the dashboard remembers."""

    def __init__(self, storage: LocalStorage | None = None):
        self.storage = storage or LocalStorage()

    @property
    def current_user(self) -> UserAccount | None:
        raw = self.storage.get(KEYS["current_user"])
        return UserAccount.model_validate(raw) if raw else None

    @current_user.setter
    def current_user(self, account: UserAccount | None) -> None:
        if account is None:
            self.storage.remove(KEYS["current_user"])
        else:
            self.storage.set(KEYS["current_user"], account.model_dump())

    @property
    def billing_frequency(self) -> BillingFrequency:
        value = self.storage.get(KEYS["billing_frequency"], "monthly")
        return "annual" if value == "annual" else "monthly"

    @billing_frequency.setter
    def billing_frequency(self, value: BillingFrequency) -> None:
        if value not in ("monthly", "annual"):
            raise ValueError(f"Unknown billing frequency: {value!r}. Use monthly or annual.")
        self.storage.set(KEYS["billing_frequency"], value)

    @property
    def selected_bundles(self) -> list[str]:
        """Bundle ids remembered for the comparison view; empty means use the defaults."""
        return list(self.storage.get(KEYS["selected_bundles"]) or [])

    @selected_bundles.setter
    def selected_bundles(self, bundle_ids: list[str] | None) -> None:
        if bundle_ids:
            self.storage.set(KEYS["selected_bundles"], list(bundle_ids))
        else:
            self.storage.remove(KEYS["selected_bundles"])

    def load_registry(self) -> AccountRegistry:
        raw_accounts = self.storage.get(KEYS["accounts"])
        accounts = [UserAccount.model_validate(a) for a in raw_accounts] if raw_accounts else default_accounts()
        raw_config = self.storage.get(KEYS["auth_config"])
        config = AuthConfig.model_validate(raw_config) if raw_config else AuthConfig()
        return AccountRegistry(accounts, config)

    def save_registry(self, registry: AccountRegistry) -> None:
        self.storage.set(KEYS["accounts"], [a.model_dump() for a in registry.accounts])
        self.storage.set(KEYS["auth_config"], registry.config.model_dump())

    def verified_user(self) -> UserAccount | None:
        """The signed-in account as the registry holds it now.

        None when nobody is signed in, or the remembered account has since been
        deleted or is no longer approved.
        """
        remembered = self.current_user
        if remembered is None:
            return None
        account = next((a for a in self.load_registry().accounts if a.id == remembered.id), None)
        if account is None or not account.is_approved:
            return None
        return account

    def login(self, username: str, passcode: str) -> UserAccount:
        """Sign in through the stored registry and remember the account."""
        registry = self.load_registry()
        try:
            account = registry.login(username, passcode)
        finally:
            # Registrations are kept even when sign-in is refused
            self.save_registry(registry)
        self.current_user = account
        return account

    def logout(self) -> None:
        self.current_user = None
