"""
SQLAlchemy ORM models for the local embedded store.

Every synchronized kind shares one table; a record is addressed by its
collection name and its per-kind integer identity.
"""

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import String, Integer, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from lineageweaver.database.connection import Base


class EntityRecordModel(Base):
    """
    Local entity record table.

    Attributes:
        kind: Collection name of the entity kind
        id: Identity assigned locally and reused as the remote document key
        payload: Opaque domain fields
    """
    __tablename__ = "entity_records"

    kind: Mapped[str] = mapped_column(String(64), primary_key=True)
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    def to_record(self) -> Dict[str, Any]:
        return {**(self.payload or {}), "id": self.id}

    def __repr__(self) -> str:
        return f"<EntityRecordModel(kind='{self.kind}', id={self.id})>"
