"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.routers import admin, auth, cart, discounts, health, orders, products, reviews
from core.config import Settings, get_settings
from core.container import AppContainer, build_container, close_container
from services.exceptions import (
    ConflictError,
    ForbiddenError,
    MalformedInputError,
    NotFoundError,
    ServiceError,
    UnauthenticatedError,
    UnavailableError,
)
from services.user_service import ensure_default_admin

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[ServiceError], int] = {
    UnauthenticatedError: status.HTTP_401_UNAUTHORIZED,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    MalformedInputError: status.HTTP_400_BAD_REQUEST,
    UnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        # HSTS: enforce HTTPS for 1 year, including subdomains
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response


async def service_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Map service-layer errors to HTTP responses."""
    status_code = next(
        (code for error_type, code in ERROR_STATUS_CODES.items() if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("request_failed", extra={"error": str(exc), "status": status_code})
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app(
    settings: Settings | None = None,
    container: AppContainer | None = None,
) -> FastAPI:
    """
    Build the application.

    Tests pass a prebuilt container; otherwise one is built from settings during
    startup.
    """
    app_settings = container.settings if container is not None else (settings or get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """Manage application lifespan - startup and shutdown."""
        if getattr(app.state, "container", None) is None:
            app.state.container = build_container(app_settings)
        active: AppContainer = app.state.container

        active.cache.start()
        await ensure_default_admin(
            active.repository,
            app_settings.bootstrap_admin_email,
            app_settings.bootstrap_admin_password,
        )
        logger.info(
            "app_started",
            extra={
                "environment": app_settings.environment,
                "fallback_enabled": app_settings.fallback_enabled,
            },
        )

        yield

        await close_container(active)

    app = FastAPI(
        title="Storefront API",
        description="Storefront backend with signed cookie sessions and a fallback store.",
        version="0.1.0",
        lifespan=lifespan,
    )
    # Set eagerly: ASGI test transports do not run the lifespan
    app.state.container = container

    app.add_exception_handler(ServiceError, service_error_handler)

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(cart.router)
    app.include_router(products.router)
    app.include_router(discounts.router)
    app.include_router(orders.router)
    app.include_router(reviews.router)
    app.include_router(admin.router)
    return app


app = create_app()
