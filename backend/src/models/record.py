"""Generic record model backing the primary store."""
from typing import Any

from sqlalchemy import JSON, BigInteger, Index, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""


class StoredRecord(Base):
    """
    One entity record (user, cart, product, discount, order, review).

    Records are schemaless JSON documents keyed by (kind, id). Timestamps are
    epoch milliseconds so both store tiers share one representation.
    """

    __tablename__ = "records"
    __table_args__ = (Index("ix_records_kind_created_at", "kind", "created_at"),)

    kind: Mapped[str] = mapped_column(String(32), primary_key=True)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
