"""
Module: settlement_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the string primary key convention, type annotation map for consistent column
    types, and the TrackedBase mixin for audit timestamps.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.

Invariants enforced:
    - Primary keys are uuid4 strings, generated client-side.
    - Decimal maps to Numeric(18, 4): money is persisted with two places of
      headroom beyond cents so rates such as 12.5% survive unchanged.
    - Audit timestamps: TrackedBase provides created_at and updated_at.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import uuid4

from sqlalchemy import Date, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def new_id() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is always a uuid4 string (String(36)).
        - Decimal maps to Numeric(18, 4).
        - datetime maps to DateTime(timezone=True).
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(18, 4, asdecimal=True),
        datetime: DateTime(timezone=True),
        date: Date(),
        str: String(255),
    }

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=new_id,
    )


class TrackedBase(Base):
    """
    Abstract base with audit timestamps.

    Guarantees:
        - created_at is set to server NOW() on INSERT and never changes.
        - updated_at auto-updates on every UPDATE.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
