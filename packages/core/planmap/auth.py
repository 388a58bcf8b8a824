"""Accounts, roles and the passcode login used to gate catalog administration."""

from __future__ import annotations

import uuid
from typing import Literal

from pydantic import BaseModel, Field

from planmap.errors import AccessDenied, LoginError

Role = Literal["USER", "ADMIN", "SUPER_ADMIN"]

_ADMIN_ROLES = ("ADMIN", "SUPER_ADMIN")


class UserAccount(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:9])
    username: str
    role: Role = "USER"
    is_approved: bool = False


class AuthConfig(BaseModel):
    super_admin_passcode: str = "SUPER"
    admin_passcode: str = "ADMIN"


def default_accounts() -> list[UserAccount]:
    return [UserAccount(id="sa-1", username="SuperAdmin", role="SUPER_ADMIN", is_approved=True)]


def is_admin(account: UserAccount | None) -> bool:
    return account is not None and account.role in _ADMIN_ROLES


def require_admin(account: UserAccount | None) -> UserAccount:
    if not is_admin(account):
        raise AccessDenied()
    return account


def require_super_admin(account: UserAccount | None) -> UserAccount:
    if account is None or account.role != "SUPER_ADMIN":
        raise AccessDenied("Only the Super Admin can manage accounts.")
    return account


class AccountRegistry:
    """Known accounts plus the passcode rules for signing in."""

    def __init__(self, accounts: list[UserAccount] | None = None, config: AuthConfig | None = None):
        self.accounts = accounts if accounts is not None else default_accounts()
        self.config = config or AuthConfig()

    def find(self, username: str) -> UserAccount | None:
        name = username.strip().lower()
        return next((a for a in self.accounts if a.username.lower() == name), None)

    def role_for_passcode(self, passcode: str) -> Role:
        if passcode == self.config.super_admin_passcode:
            return "SUPER_ADMIN"
        if passcode == self.config.admin_passcode:
            return "ADMIN"
        raise LoginError(
            f"Invalid passcode. Use '{self.config.super_admin_passcode}' for Super Admin "
            f"or '{self.config.admin_passcode}' for standard Admin access."
        )

    def login(self, username: str, passcode: str) -> UserAccount:
        """Sign in, registering the account on first use.

        New admin accounts start unapproved and cannot sign in until a super
        admin approves them; new super admin accounts are approved at once.
        """
        role = self.role_for_passcode(passcode)
        existing = self.find(username)
        if existing is not None:
            if existing.is_approved or existing.role == "SUPER_ADMIN":
                return existing
            raise LoginError("Your admin account is pending approval from the Super Admin.")

        account = UserAccount(username=username.strip(), role=role, is_approved=role == "SUPER_ADMIN")
        self.accounts.append(account)
        if not account.is_approved:
            raise LoginError(
                "Registration successful. Access will be granted once the Super Admin approves your account."
            )
        return account

    def approve(self, user_id: str, actor: UserAccount | None) -> UserAccount:
        require_super_admin(actor)
        account = self._get(user_id)
        account.is_approved = True
        return account

    def delete(self, user_id: str, actor: UserAccount | None) -> None:
        require_super_admin(actor)
        account = self._get(user_id)
        self.accounts.remove(account)

    def pending(self) -> list[UserAccount]:
        return [a for a in self.accounts if not a.is_approved]

    def _get(self, user_id: str) -> UserAccount:
        for account in self.accounts:
            if account.id == user_id:
                return account
        raise LoginError(f"Unknown account {user_id!r}")
