"""Service layer for user accounts."""
import hashlib
import hmac
import logging
from typing import Any

import bcrypt

from core.roles import Role
from db.stores import EntityKind, Record
from services.exceptions import ConflictError, MalformedInputError
from services.merge import normalize_email
from services.repository import FallbackRepository, RepositoryResult

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def hash_password(plain: str) -> str:
    """Hash a plaintext password using bcrypt."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(plain: str, hashed: str) -> bool:
    """
    Compare a plaintext password to a stored hash.

    Accepts bcrypt hashes and legacy unsalted SHA-256 hex digests.
    """
    if not plain or not hashed:
        return False
    if hashed.startswith("$2"):
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            # Malformed stored hash
            return False
    legacy = hashlib.sha256(plain.encode("utf-8")).hexdigest()
    return hmac.compare_digest(legacy, hashed)


def public_user(user: Record) -> dict[str, Any]:
    """Strip credential material from a user record."""
    return {k: v for k, v in user.items() if k != "password_hash"}


async def find_user_by_email(repo: FallbackRepository, email: str) -> Record | None:
    """Find a user by normalized email across both tiers."""
    result = await repo.list(EntityKind.USER, {"email": normalize_email(email)})
    return result.value[0] if result.value else None


async def register(
    repo: FallbackRepository,
    email: str,
    password: str,
    name: str | None = None,
    role: Role = Role.USER,
) -> RepositoryResult[Record]:
    """
    Create a user account.

    Raises:
        MalformedInputError: If the email or password is unusable.
        ConflictError: If the email is already registered in either tier.
    """
    normalized = normalize_email(email)
    if "@" not in normalized or normalized.startswith("@"):
        raise MalformedInputError("A valid email is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise MalformedInputError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )

    if await find_user_by_email(repo, normalized) is not None:
        raise ConflictError("User already exists")

    result = await repo.create(
        EntityKind.USER,
        {
            "email": normalized,
            "name": (name or "").strip() or normalized.split("@")[0],
            "password_hash": hash_password(password),
            "role": role.value,
        },
    )
    logger.info(
        "user_registered",
        extra={"user_id": result.value["id"], "primary_used": result.primary_used},
    )
    return RepositoryResult(public_user(result.value), result.primary_used)


async def authenticate(
    repo: FallbackRepository,
    email: str,
    password: str,
) -> Record | None:
    """Return the public user record for valid credentials, else None."""
    user = await find_user_by_email(repo, email)
    if user is None or not check_password(password, str(user.get("password_hash") or "")):
        return None
    return public_user(user)


async def list_users(repo: FallbackRepository) -> RepositoryResult[list[Record]]:
    """List users from both tiers, one per email (primary record wins)."""
    result = await repo.list(EntityKind.USER)
    return RepositoryResult([public_user(u) for u in result.value], result.primary_used)


async def update_role(
    repo: FallbackRepository,
    user_id: str,
    role: Role,
) -> RepositoryResult[Record]:
    """Change a user's role. Raises NotFoundError if the user does not exist."""
    result = await repo.update(EntityKind.USER, user_id, {"role": role.value})
    logger.info("user_role_updated", extra={"user_id": user_id, "role": role.value})
    return RepositoryResult(public_user(result.value), result.primary_used)


async def update_profile(
    repo: FallbackRepository,
    user_id: str,
    name: str | None = None,
    password: str | None = None,
) -> RepositoryResult[Record]:
    """Update a user's display name and/or password."""
    patch: Record = {}
    if name is not None:
        if not name.strip():
            raise MalformedInputError("Name cannot be empty")
        patch["name"] = name.strip()
    if password is not None:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise MalformedInputError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            )
        patch["password_hash"] = hash_password(password)
    if not patch:
        raise MalformedInputError("Nothing to update")
    result = await repo.update(EntityKind.USER, user_id, patch)
    return RepositoryResult(public_user(result.value), result.primary_used)


async def ensure_default_admin(
    repo: FallbackRepository,
    email: str,
    password: str,
) -> Record | None:
    """
    Seed an admin account if no user holds the email yet.

    Returns the created user, or None if it already existed or seeding is disabled.
    """
    if not email or not password:
        return None
    if await find_user_by_email(repo, email) is not None:
        return None
    try:
        result = await register(repo, email, password, name="Admin", role=Role.ADMIN)
    except ConflictError:
        # Created concurrently by another worker
        return None
    logger.info("default_admin_created", extra={"email": normalize_email(email)})
    return result.value
