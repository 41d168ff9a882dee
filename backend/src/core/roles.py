"""
Roles and capability checks.

Roles form a closed enumeration; handlers ask for a capability rather than comparing
role strings, so a misspelled role can never silently grant or deny access.
"""
from enum import StrEnum
from typing import TYPE_CHECKING

from services.exceptions import ForbiddenError

if TYPE_CHECKING:
    from core.token_codec import SessionClaims


class Role(StrEnum):
    """Role carried in session claims."""

    USER = "user"
    ADMIN = "admin"


class Capability(StrEnum):
    """Privileged operations gated by role."""

    MANAGE_USERS = "manage_users"
    MANAGE_CATALOG = "manage_catalog"
    MANAGE_DISCOUNTS = "manage_discounts"
    MANAGE_ORDERS = "manage_orders"
    MODERATE_REVIEWS = "moderate_reviews"
    VIEW_DIAGNOSTICS = "view_diagnostics"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.USER: frozenset(),
    Role.ADMIN: frozenset(Capability),
}


def parse_role(value: str) -> Role:
    """
    Parse a role string into a Role.

    Raises:
        ValueError: If the value is not a known role.
    """
    return Role(value.strip().lower())


def has_capability(role: Role, capability: Capability) -> bool:
    """Check whether a role grants a capability."""
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


def ensure_capability(
    claims: "SessionClaims | None",
    capability: Capability,
) -> "SessionClaims":
    """
    Verify the session may perform a privileged operation.

    Must be called before any data access in a privileged operation.

    Raises:
        ForbiddenError: If there is no session or its role lacks the capability.
    """
    if claims is None or not has_capability(claims.role, capability):
        raise ForbiddenError()
    return claims
