"""
Authentication dependencies for cookie sessions and capability checks.

Privileged endpoints declare require_capability(...) as a dependency, so the check
runs before the handler body and before any repository access.
"""
from collections.abc import Callable

from fastapi import Depends, Request, Response

from core.container import AppContainer
from core.roles import Capability, ensure_capability
from core.session import SessionManager, StarletteCookieChannel
from core.token_codec import SessionClaims
from services.exceptions import UnauthenticatedError


def get_container(request: Request) -> AppContainer:
    """Return the application's composition root."""
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise RuntimeError("Application container is not initialized")
    return container


def get_session_manager(
    request: Request,
    response: Response,
    container: AppContainer = Depends(get_container),
) -> SessionManager:
    """Session manager bound to this request's cookies."""
    settings = container.settings
    return SessionManager(
        codec=container.codec,
        channel=StarletteCookieChannel(request, response),
        cookie_name=settings.session_cookie_name,
        secure=settings.is_production,
        clear_paths=settings.session_clear_paths,
    )


def get_current_session(
    sessions: SessionManager = Depends(get_session_manager),
) -> SessionClaims | None:
    """Claims of the current session, or None when there is no valid session."""
    return sessions.current()


def get_current_user(
    claims: SessionClaims | None = Depends(get_current_session),
) -> SessionClaims:
    """
    Dependency for endpoints that require a signed-in user.

    Raises:
        UnauthenticatedError: If there is no valid session.
    """
    if claims is None:
        raise UnauthenticatedError()
    return claims


def require_capability(capability: Capability) -> Callable[..., SessionClaims]:
    """
    Build a dependency that admits only sessions whose role grants capability.

    A missing session is refused the same way as an insufficient role (403).
    """
    def _dependency(
        claims: SessionClaims | None = Depends(get_current_session),
    ) -> SessionClaims:
        return ensure_capability(claims, capability)

    _dependency.__name__ = f"require_{capability.value}"
    return _dependency
