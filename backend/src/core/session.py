"""
Stateless cookie sessions.

The session lives entirely in a signed cookie; nothing is stored server side.
SessionManager is bound to one request/response exchange through a CredentialChannel.
"""
import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Literal, Protocol

from fastapi import Request, Response

from core.token_codec import SessionClaims, TokenCodec, TokenError

logger = logging.getLogger(__name__)

EXPIRED_AT = datetime(1970, 1, 1, tzinfo=UTC)


@dataclass(frozen=True)
class CookieAttributes:
    """Attributes attached to a credential when it is written or cleared."""

    path: str = "/"
    http_only: bool = True
    same_site: Literal["lax", "strict", "none"] = "lax"
    secure: bool = False
    max_age: int | None = None
    expires: datetime | None = None


class CredentialChannel(Protocol):
    """Opaque credential transport (cookies for HTTP)."""

    def read_credential(self, name: str) -> str | None:
        """Return the inbound credential value, or None if absent."""
        ...

    def write_credential(self, name: str, value: str, attributes: CookieAttributes) -> None:
        """Attach a credential to the outbound response."""
        ...

    def clear_credential(self, name: str, attributes: CookieAttributes) -> None:
        """Instruct the client to delete a credential."""
        ...


class StarletteCookieChannel:
    """
    Cookie channel over a Starlette request/response pair.

    Outbound writes are also remembered locally so that reads later in the same
    request observe them (e.g., current() after revoke() sees no session).
    """

    def __init__(self, request: Request, response: Response) -> None:
        self._request = request
        self._response = response
        self._outbound: dict[str, str] = {}

    def read_credential(self, name: str) -> str | None:
        """Return the cookie value, preferring values written during this request."""
        if name in self._outbound:
            return self._outbound[name] or None
        return self._request.cookies.get(name) or None

    def write_credential(self, name: str, value: str, attributes: CookieAttributes) -> None:
        """Set a cookie on the response."""
        self._outbound[name] = value
        self._response.set_cookie(
            key=name,
            value=value,
            max_age=attributes.max_age,
            expires=attributes.expires,
            path=attributes.path,
            secure=attributes.secure,
            httponly=attributes.http_only,
            samesite=attributes.same_site,
        )

    def clear_credential(self, name: str, attributes: CookieAttributes) -> None:
        """Delete a cookie on the response."""
        self._outbound[name] = ""
        self._response.delete_cookie(
            key=name,
            path=attributes.path,
            secure=attributes.secure,
            httponly=attributes.http_only,
            samesite=attributes.same_site,
        )


class SessionManager:
    """Issues, reads, and revokes the session for one request."""

    def __init__(
        self,
        codec: TokenCodec,
        channel: CredentialChannel,
        cookie_name: str = "ps_session",
        secure: bool = False,
        clear_paths: list[str] | None = None,
    ) -> None:
        self._codec = codec
        self._channel = channel
        self._cookie_name = cookie_name
        self._base_attributes = CookieAttributes(secure=secure)
        self._clear_paths = clear_paths or ["/"]

    def issue(self, claims: SessionClaims) -> str:
        """Sign claims into a token and attach it to the outbound channel."""
        token = self._codec.encode(claims)
        self._channel.write_credential(
            self._cookie_name,
            token,
            replace(self._base_attributes, max_age=self._codec.ttl_seconds),
        )
        logger.debug("session_issued user_id=%s role=%s", claims.id, claims.role.value)
        return token

    def current(self) -> SessionClaims | None:
        """
        Return the claims of the inbound session, or None.

        Absent, malformed, forged, and expired tokens all yield None; the reason
        is only logged.
        """
        token = self._channel.read_credential(self._cookie_name)
        if not token:
            return None
        try:
            return self._codec.decode(token)
        except TokenError as e:
            logger.debug("session_rejected reason=%s", type(e).__name__)
            return None

    def revoke(self) -> None:
        """
        Clear the session cookie on every path it may have been scoped to.

        Each path gets every clearing variant (bare delete, max-age 0, past expiry)
        because some clients only honor one of them.
        """
        for path in self._clear_paths:
            attributes = replace(self._base_attributes, path=path)
            self._channel.clear_credential(self._cookie_name, attributes)
            self._channel.write_credential(
                self._cookie_name, "", replace(attributes, max_age=0),
            )
            self._channel.write_credential(
                self._cookie_name, "", replace(attributes, max_age=0, expires=EXPIRED_AT),
            )
        logger.debug("session_revoked paths=%s", self._clear_paths)
