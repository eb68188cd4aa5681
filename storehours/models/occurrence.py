"""
ORM model for materialized per-date overrides.

A row with ``exception_id`` set is a per-date edit of one of that rule's
occurrences; a row without it is a standalone one-off override.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import String, Date, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from . import Base, utcnow


class ExceptionOccurrence(Base):
    __tablename__ = "store_hours_occurrences"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    site_id: Mapped[str] = mapped_column(String(64), index=True)
    exception_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("store_hours_exception_rules.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    occurrence_date: Mapped[date] = mapped_column(Date)
    name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    open_time: Mapped[str | None] = mapped_column(String(8), nullable=True)
    close_time: Mapped[str | None] = mapped_column(String(8), nullable=True)
    is_closed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_by: Mapped[str | None] = mapped_column(String(256), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_store_hours_occurrences_site_date", "site_id", "occurrence_date"),
    )
