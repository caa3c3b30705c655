"""
Module: approval_kernel.db.base
Responsibility: Declarative base for the identity-store ORM models.
Architecture position: Kernel > DB.  Lowest import target of the ORM layer;
    model files import from here and nothing here imports them back.

Invariants enforced:
    - Every row is keyed by a uuid4 ``id`` (native UUID where the backend has
      one, CHAR(32) elsewhere).
    - Timestamps are timezone-aware.
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base: uuid4 primary key, tz-aware datetimes."""

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        UUID: Uuid(as_uuid=True),
    }

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)


class TrackedBase(Base):
    """Abstract base adding ``created_at`` / ``updated_at`` maintained by the database."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())
