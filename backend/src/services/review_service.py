"""Service layer for customer reviews."""
from typing import Any

from db.stores import EntityKind, Record
from services.exceptions import MalformedInputError
from services.repository import FallbackRepository, RepositoryResult

REVIEW_STATUSES = ("pending", "approved", "rejected")
ALL_STATUSES = "all"
MIN_CONTENT_LENGTH = 10
MIN_AUTHOR_NAME_LENGTH = 2


def validate_review(data: Record) -> Record:
    """
    Normalize and validate a review submission.

    Raises:
        MalformedInputError: If content, author name, or rating is invalid.
    """
    content = str(data.get("content") or "").strip()
    if len(content) < MIN_CONTENT_LENGTH:
        raise MalformedInputError(
            f"Review must contain at least {MIN_CONTENT_LENGTH} characters",
        )
    author_name = str(data.get("author_name") or "").strip()
    if len(author_name) < MIN_AUTHOR_NAME_LENGTH:
        raise MalformedInputError(
            f"Author name must be at least {MIN_AUTHOR_NAME_LENGTH} characters",
        )
    try:
        rating = int(data.get("rating"))
    except (TypeError, ValueError):
        rating = 0
    if not 1 <= rating <= 5:
        raise MalformedInputError("Rating must be between 1 and 5")

    media_urls = data.get("media_urls")
    return {
        "author_name": author_name,
        "author_email": str(data.get("author_email") or "").strip(),
        "rating": rating,
        "title": str(data.get("title") or "").strip(),
        "content": content,
        "media_urls": media_urls if isinstance(media_urls, list) else [],
    }


async def create_review(
    repo: FallbackRepository,
    user_id: str | None,
    data: Record,
    status: str = "approved",
) -> RepositoryResult[Record]:
    """Validate and store a review."""
    record = {**validate_review(data), "user_id": user_id, "status": status}
    return await repo.create(EntityKind.REVIEW, record)


async def list_reviews(
    repo: FallbackRepository,
    status: str = "approved",
    limit: int = 50,
    page: int = 1,
) -> RepositoryResult[dict[str, Any]]:
    """List reviews newest first with offset pagination; status 'all' disables filtering."""
    if limit < 1 or page < 1:
        raise MalformedInputError("Page and limit must be positive")
    filters = None if status == ALL_STATUSES else {"status": status}
    result = await repo.list(EntityKind.REVIEW, filters)
    offset = (page - 1) * limit
    reviews = result.value
    return RepositoryResult(
        {
            "reviews": reviews[offset:offset + limit],
            "total": len(reviews),
            "has_more": offset + limit < len(reviews),
        },
        result.primary_used,
    )


async def review_stats(repo: FallbackRepository) -> RepositoryResult[dict[str, Any]]:
    """Average rating and rating distribution over approved reviews."""
    result = await repo.list(EntityKind.REVIEW, {"status": "approved"})
    distribution = {str(r): 0 for r in range(1, 6)}
    ratings = [int(r.get("rating", 0)) for r in result.value]
    for rating in ratings:
        if str(rating) in distribution:
            distribution[str(rating)] += 1
    average = round(sum(ratings) / len(ratings), 1) if ratings else 0
    return RepositoryResult(
        {
            "total_reviews": len(ratings),
            "average_rating": average,
            "rating_distribution": distribution,
        },
        result.primary_used,
    )


async def moderate_review(
    repo: FallbackRepository,
    review_id: str,
    patch: Record,
) -> RepositoryResult[Record]:
    """Update a review (status, content corrections)."""
    status = patch.get("status")
    if status is not None and status not in REVIEW_STATUSES:
        raise MalformedInputError(f"Invalid review status: {status!r}")
    return await repo.update(EntityKind.REVIEW, review_id, patch)


async def delete_review(repo: FallbackRepository, review_id: str) -> RepositoryResult[bool]:
    """Delete a review."""
    return await repo.delete(EntityKind.REVIEW, review_id)
