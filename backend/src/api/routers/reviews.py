"""Public review endpoints."""
from fastapi import APIRouter, Depends, Query, status

from api.dependencies import get_current_session, get_repository
from core.roles import Capability, has_capability
from core.token_codec import SessionClaims
from schemas.review import (
    ReviewCreate,
    ReviewListResponse,
    ReviewResponse,
    ReviewStatsResponse,
)
from services import review_service
from services.repository import FallbackRepository

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get("/", response_model=ReviewListResponse)
async def list_reviews(
    review_status: str = Query(default="approved", alias="status"),
    limit: int = Query(default=50),
    page: int = Query(default=1),
    claims: SessionClaims | None = Depends(get_current_session),
    repo: FallbackRepository = Depends(get_repository),
) -> ReviewListResponse:
    """
    List reviews newest first.

    Anonymous callers and regular users only see approved reviews; moderators see
    every status.
    """
    if claims is None or not has_capability(claims.role, Capability.MODERATE_REVIEWS):
        review_status = "approved"
    result = await review_service.list_reviews(repo, review_status, limit, page)
    return ReviewListResponse(**result.value, degraded=not result.primary_used)


@router.get("/stats", response_model=ReviewStatsResponse)
async def get_review_stats(
    repo: FallbackRepository = Depends(get_repository),
) -> ReviewStatsResponse:
    """Average rating and distribution over approved reviews."""
    result = await review_service.review_stats(repo)
    return ReviewStatsResponse(**result.value, degraded=not result.primary_used)


@router.post("/", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def submit_review(
    data: ReviewCreate,
    claims: SessionClaims | None = Depends(get_current_session),
    repo: FallbackRepository = Depends(get_repository),
) -> ReviewResponse:
    """Submit a review. Signed-in users have it linked to their account."""
    result = await review_service.create_review(
        repo, claims.id if claims else None, data.model_dump(),
    )
    return ReviewResponse(review=result.value, degraded=not result.primary_used)
