"""Tests for accounts and passcode login."""

from __future__ import annotations

import pytest
from planmap.auth import AccountRegistry, AuthConfig, UserAccount, is_admin, require_admin
from planmap.errors import ACCESS_RESTRICTED, AccessDenied, LoginError


class TestRoles:
    def test_is_admin(self, admin, super_admin):
        assert is_admin(admin)
        assert is_admin(super_admin)
        assert not is_admin(UserAccount(username="viewer"))
        assert not is_admin(None)

    def test_require_admin_message(self):
        with pytest.raises(AccessDenied, match="Access Restricted"):
            require_admin(None)
        assert str(AccessDenied()) == ACCESS_RESTRICTED


class TestLogin:
    def test_default_super_admin(self):
        account = AccountRegistry().login("superadmin", "SUPER")
        assert account.id == "sa-1"
        assert account.role == "SUPER_ADMIN"

    def test_invalid_passcode(self):
        with pytest.raises(LoginError, match="Invalid passcode"):
            AccountRegistry().login("someone", "nope")

    def test_new_admin_waits_for_approval(self):
        registry = AccountRegistry()
        with pytest.raises(LoginError, match="Registration successful"):
            registry.login("Alex", "ADMIN")
        assert [a.username for a in registry.pending()] == ["Alex"]
        with pytest.raises(LoginError, match="pending approval"):
            registry.login("alex", "ADMIN")

    def test_new_super_admin_approved_at_once(self):
        account = AccountRegistry().login("Root", "SUPER")
        assert account.is_approved

    def test_custom_passcodes(self):
        registry = AccountRegistry(config=AuthConfig(super_admin_passcode="s3cret", admin_passcode="adm"))
        assert registry.role_for_passcode("s3cret") == "SUPER_ADMIN"
        with pytest.raises(LoginError):
            registry.role_for_passcode("SUPER")


class TestApproval:
    def test_super_admin_approves(self, super_admin):
        registry = AccountRegistry()
        with pytest.raises(LoginError):
            registry.login("Alex", "ADMIN")
        pending = registry.pending()[0]
        registry.approve(pending.id, super_admin)
        assert registry.login("Alex", "ADMIN").is_approved

    def test_admin_cannot_approve(self, admin):
        registry = AccountRegistry()
        with pytest.raises(LoginError):
            registry.login("Sam", "ADMIN")
        with pytest.raises(AccessDenied):
            registry.approve(registry.pending()[0].id, admin)

    def test_delete(self, super_admin):
        registry = AccountRegistry()
        with pytest.raises(LoginError):
            registry.login("Sam", "ADMIN")
        registry.delete(registry.pending()[0].id, super_admin)
        assert registry.find("sam") is None
        with pytest.raises(LoginError):
            registry.delete("missing", super_admin)
