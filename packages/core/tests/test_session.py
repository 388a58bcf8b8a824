"""Tests for session state in local storage."""

from __future__ import annotations

import pytest
from planmap.errors import LoginError
from planmap.session import KEYS, LocalStorage, Session


@pytest.fixture
def session(tmp_path) -> Session:
    return Session(LocalStorage(tmp_path / "session.json"))


class TestLocalStorage:
    def test_persists_between_instances(self, tmp_path):
        path = tmp_path / "s.json"
        LocalStorage(path).set("k", {"a": 1})
        assert LocalStorage(path).get("k") == {"a": 1}

    def test_corrupt_file_is_ignored(self, tmp_path):
        path = tmp_path / "s.json"
        path.write_text("{not json")
        assert LocalStorage(path).get("k", "default") == "default"

    def test_default_location(self, tmp_path):
        assert LocalStorage().path == tmp_path / "home" / "session.json"


class TestSession:
    def test_billing_frequency(self, session):
        assert session.billing_frequency == "monthly"
        session.billing_frequency = "annual"
        assert Session(LocalStorage(session.storage.path)).billing_frequency == "annual"
        with pytest.raises(ValueError):
            session.billing_frequency = "weekly"

    def test_login_logout(self, session):
        account = session.login("SuperAdmin", "SUPER")
        assert session.current_user == account
        session.logout()
        assert session.current_user is None

    def test_refused_registration_is_still_saved(self, session):
        with pytest.raises(LoginError):
            session.login("Alex", "ADMIN")
        assert session.current_user is None
        names = [a["username"] for a in session.storage.get(KEYS["accounts"])]
        assert names == ["SuperAdmin", "Alex"]

    def test_catalog_never_stored(self, session):
        session.login("SuperAdmin", "SUPER")
        assert set(session.storage._data) <= set(KEYS.values())

    def test_selected_bundles(self, session):
        assert session.selected_bundles == []
        session.selected_bundles = ["m365-e3", "m365-e5"]
        assert Session(LocalStorage(session.storage.path)).selected_bundles == ["m365-e3", "m365-e5"]
        session.selected_bundles = None
        assert KEYS["selected_bundles"] not in session.storage._data


class TestVerifiedUser:
    def _sign_in_alex(self, session):
        super_admin = session.login("SuperAdmin", "SUPER")
        with pytest.raises(LoginError):
            session.login("Alex", "ADMIN")
        registry = session.load_registry()
        alex = registry.approve(registry.find("Alex").id, super_admin)
        session.save_registry(registry)
        session.login("Alex", "ADMIN")
        return alex

    def test_signed_in_account(self, session):
        alex = self._sign_in_alex(session)
        assert session.verified_user().id == alex.id

    def test_nobody_signed_in(self, session):
        assert session.verified_user() is None

    def test_deleted_account_is_not_trusted(self, session):
        alex = self._sign_in_alex(session)
        registry = session.load_registry()
        registry.accounts = [a for a in registry.accounts if a.id != alex.id]
        session.save_registry(registry)
        assert session.current_user.id == alex.id
        assert session.verified_user() is None
