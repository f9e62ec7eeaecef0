"""Access policies for the three password-gated group surfaces.

Each surface (judge scoring, public submission intake, public results) has
exactly one policy: open to everyone, gated by a password, or admin only.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

from showcase_judging.core.security import hash_password, verify_password


class OpenAccess(BaseModel):
    """Anyone may use the surface."""

    mode: Literal["open"] = "open"


class PasswordAccess(BaseModel):
    """The surface is gated by a shared password."""

    mode: Literal["password"] = "password"
    password_hash: str


class AdminOnlyAccess(BaseModel):
    """Only admins may use the surface."""

    mode: Literal["admin_only"] = "admin_only"


AccessPolicy = Annotated[
    OpenAccess | PasswordAccess | AdminOnlyAccess,
    Field(discriminator="mode"),
]

_policy_adapter: TypeAdapter[Any] = TypeAdapter(AccessPolicy)


def parse_policy(data: dict[str, Any] | None) -> OpenAccess | PasswordAccess | AdminOnlyAccess:
    """Parse a stored policy; missing data means admin only."""
    if not data:
        return AdminOnlyAccess()
    return _policy_adapter.validate_python(data)


def build_policy(
    is_public: bool, password: str | None = None
) -> OpenAccess | PasswordAccess | AdminOnlyAccess:
    """Build a policy from the flag and optional plain-text password used by admin forms."""
    if password:
        return PasswordAccess(password_hash=hash_password(password))
    if is_public:
        return OpenAccess()
    return AdminOnlyAccess()


def policy_allows(
    policy: OpenAccess | PasswordAccess | AdminOnlyAccess, password: str | None
) -> bool:
    """Whether an anonymous caller presenting ``password`` may use the surface."""
    if isinstance(policy, OpenAccess):
        return True
    if isinstance(policy, PasswordAccess):
        return password is not None and verify_password(password, policy.password_hash)
    return False


def describe_policy(policy: OpenAccess | PasswordAccess | AdminOnlyAccess) -> dict[str, Any]:
    """Public description of a policy, never including the hash."""
    return {
        "mode": policy.mode,
        "has_password": isinstance(policy, PasswordAccess),
    }
