"""Authentication endpoints: registration, sign-in, sign-out, and profile."""
import logging

from fastapi import APIRouter, Depends, status

from api.dependencies import get_current_user, get_repository, get_session_manager
from core.session import SessionManager
from core.token_codec import SessionClaims
from schemas.auth import LoginRequest, LogoutResponse, RegisterRequest, SessionResponse
from schemas.user import ProfileUpdate, UserResponse
from services import user_service
from services.cart_service import merge_guest_cart
from services.exceptions import UnauthenticatedError
from services.repository import FallbackRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    repo: FallbackRepository = Depends(get_repository),
    sessions: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    """
    Create an account and sign it in.

    Returns 409 if the email is already registered, 400 if the email or password
    is unusable.
    """
    result = await user_service.register(repo, data.email, data.password, data.name)
    sessions.issue(SessionClaims.from_user(result.value))
    return SessionResponse(
        user=UserResponse.model_validate(result.value),
        degraded=not result.primary_used,
    )


@router.post("/login", response_model=SessionResponse)
async def login(
    data: LoginRequest,
    repo: FallbackRepository = Depends(get_repository),
    sessions: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    """
    Sign in with email and password.

    Items in `guest_cart` are merged into the user's cart; a failed merge does not
    fail the sign-in.
    """
    user = await user_service.authenticate(repo, data.email, data.password)
    if user is None:
        logger.info("login_failed")
        raise UnauthenticatedError("Invalid email or password")
    await merge_guest_cart(repo, user["id"], data.guest_cart)
    sessions.issue(SessionClaims.from_user(user))
    logger.info("login_succeeded", extra={"user_id": user["id"]})
    return SessionResponse(user=UserResponse.model_validate(user))


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    sessions: SessionManager = Depends(get_session_manager),
) -> LogoutResponse:
    """Clear the session cookie. Succeeds whether or not a session exists."""
    sessions.revoke()
    return LogoutResponse()


@router.get("/me", response_model=UserResponse)
async def me(current_user: SessionClaims = Depends(get_current_user)) -> UserResponse:
    """Return the identity carried by the current session."""
    return UserResponse(**current_user.to_payload())


@router.patch("/me", response_model=SessionResponse)
async def update_me(
    data: ProfileUpdate,
    current_user: SessionClaims = Depends(get_current_user),
    repo: FallbackRepository = Depends(get_repository),
    sessions: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    """
    Update the signed-in user's name and/or password.

    The session is reissued so it carries the new name.
    """
    result = await user_service.update_profile(
        repo, current_user.id, name=data.name, password=data.password,
    )
    sessions.issue(SessionClaims.from_user(result.value))
    return SessionResponse(
        user=UserResponse.model_validate(result.value),
        degraded=not result.primary_used,
    )
