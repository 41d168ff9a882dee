"""
Signed, stateless session tokens.

Token format (compatible with any other implementation reading the same cookie):

    <base64url(JSON claims + "exp")>.<hex HMAC-SHA256 of the base64url text>

The JSON body is compact (no whitespace), keys in the order id, email, name, role, exp,
and "exp" is an absolute expiry in epoch milliseconds. Base64url is unpadded.

Tokens are signed, not encrypted: claims are visible to the client holding them but
cannot be altered without the server secret.
"""
import base64
import binascii
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from typing import Any, Protocol

from core.config import SESSION_TTL_SECONDS
from core.roles import Role, parse_role

TOKEN_DELIMITER = "."
SESSION_TTL_MS = SESSION_TTL_SECONDS * 1000


class TokenError(Exception):
    """Base class for token rejections. Callers treat every subclass as 'no session'."""


class MalformedTokenError(TokenError):
    """Token is structurally invalid or its body cannot be parsed."""


class SignatureMismatchError(TokenError):
    """Token signature does not match its body."""


class TokenExpiredError(TokenError):
    """Token signature is valid but its expiry has passed."""


class Clock(Protocol):
    """Source of the current time in epoch milliseconds."""

    def now_ms(self) -> int:
        """Return the current time in epoch milliseconds."""
        ...


class SystemClock:
    """Wall-clock time."""

    def now_ms(self) -> int:
        """Return the current time in epoch milliseconds."""
        return int(time.time() * 1000)


@dataclass(frozen=True)
class SessionClaims:
    """
    Identity and role carried by a session token.

    Immutable: issuing a session with different claims creates a new value.
    """

    id: str
    email: str
    name: str
    role: Role

    def to_payload(self) -> dict[str, Any]:
        """Serialize claims in wire order (id, email, name, role)."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role.value,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "SessionClaims":
        """
        Build claims from a decoded token body.

        Raises:
            MalformedTokenError: If a required field is missing or has the wrong type.
        """
        try:
            values = {
                field: payload[field] for field in ("id", "email", "name", "role")
            }
        except KeyError as e:
            raise MalformedTokenError(f"Missing claim: {e.args[0]}") from e
        if not all(isinstance(v, str) for v in values.values()):
            raise MalformedTokenError("Claims must be strings")
        try:
            role = parse_role(values["role"])
        except ValueError as e:
            raise MalformedTokenError(f"Unknown role: {values['role']!r}") from e
        return cls(id=values["id"], email=values["email"], name=values["name"], role=role)

    @classmethod
    def from_user(cls, user: dict[str, Any]) -> "SessionClaims":
        """Build claims from a stored user record."""
        return cls(
            id=str(user["id"]),
            email=str(user.get("email") or ""),
            name=str(user.get("name") or ""),
            role=parse_role(str(user.get("role") or Role.USER.value)),
        )


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(text + padding)


def sign(body: str, secret: bytes) -> str:
    """Return the hex HMAC-SHA256 signature of an encoded token body."""
    return hmac.new(secret, body.encode("ascii"), hashlib.sha256).hexdigest()


def encode_token(
    claims: SessionClaims,
    secret: bytes,
    now_ms: int,
    ttl_ms: int = SESSION_TTL_MS,
) -> str:
    """Encode and sign claims, expiring ttl_ms after now_ms."""
    payload = {**claims.to_payload(), "exp": now_ms + ttl_ms}
    raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    body = _b64url_encode(raw)
    return f"{body}{TOKEN_DELIMITER}{sign(body, secret)}"


def decode_token(token: str, secret: bytes, now_ms: int) -> SessionClaims:
    """
    Verify a token and return its claims (without the expiry).

    The signature is checked before the body is parsed, using a constant-time
    comparison so response timing reveals nothing about partial matches.

    Raises:
        MalformedTokenError: If the token is not two non-empty parts or the body is invalid.
        SignatureMismatchError: If the signature does not match.
        TokenExpiredError: If the expiry has been reached.
    """
    if not isinstance(token, str):
        raise MalformedTokenError("Token must be a string")
    parts = token.split(TOKEN_DELIMITER)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise MalformedTokenError("Token must have a body and a signature")
    body, signature = parts

    try:
        expected = sign(body, secret)
    except UnicodeEncodeError as e:
        raise MalformedTokenError("Token body is not ASCII") from e
    if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("ascii")):
        raise SignatureMismatchError("Token signature mismatch")

    try:
        payload = json.loads(_b64url_decode(body))
    except (binascii.Error, ValueError) as e:
        raise MalformedTokenError("Token body is not valid base64url JSON") from e
    if not isinstance(payload, dict):
        raise MalformedTokenError("Token body must be a JSON object")

    exp = payload.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, int | float):
        raise MalformedTokenError("Token expiry must be a number")
    if exp <= now_ms:
        raise TokenExpiredError("Token has expired")

    return SessionClaims.from_payload(payload)


class TokenCodec:
    """Token encoding bound to a secret, a clock, and a lifetime."""

    def __init__(
        self,
        secret: str | bytes,
        ttl_seconds: int = SESSION_TTL_SECONDS,
        clock: Clock | None = None,
    ) -> None:
        self._secret = secret.encode("utf-8") if isinstance(secret, str) else secret
        self._ttl_ms = ttl_seconds * 1000
        self._clock = clock or SystemClock()

    @property
    def ttl_seconds(self) -> int:
        """Token lifetime in seconds (used as the cookie max-age)."""
        return self._ttl_ms // 1000

    def encode(self, claims: SessionClaims) -> str:
        """Issue a token for claims, expiring one TTL from now."""
        return encode_token(claims, self._secret, self._clock.now_ms(), self._ttl_ms)

    def decode(self, token: str) -> SessionClaims:
        """Verify a token against the current time. Raises TokenError subclasses."""
        return decode_token(token, self._secret, self._clock.now_ms())
