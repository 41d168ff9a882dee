"""SQLAlchemy models."""
from models.record import Base, StoredRecord

__all__ = ["Base", "StoredRecord"]
