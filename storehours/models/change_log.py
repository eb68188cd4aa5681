"""
Append-only audit log for base hours, exception and comment activity.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import String, Date, DateTime, Boolean, Text, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from . import Base, utcnow


class StoreHoursChangeLog(Base):
    __tablename__ = "store_hours_change_log"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    site_id: Mapped[str] = mapped_column(String(64), index=True)
    org_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    source: Mapped[str] = mapped_column(String(32))  # base_hours | exception | comment
    action: Mapped[str] = mapped_column(String(16))  # insert | update | created | edited | deleted | comment
    message: Mapped[str] = mapped_column(Text, default="")
    changed_by: Mapped[str] = mapped_column(String(256), default="system")

    # Base hours diff
    store_hours_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    day_of_week: Mapped[str | None] = mapped_column(String(16), nullable=True)
    open_time_old: Mapped[str | None] = mapped_column(String(8), nullable=True)
    open_time_new: Mapped[str | None] = mapped_column(String(8), nullable=True)
    close_time_old: Mapped[str | None] = mapped_column(String(8), nullable=True)
    close_time_new: Mapped[str | None] = mapped_column(String(8), nullable=True)
    is_closed_old: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    is_closed_new: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    # Exception and comment context
    exception_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    occurrence_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    event_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    details: Mapped[dict] = mapped_column(JSON, default=dict)

    changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("ix_store_hours_change_log_site_changed", "site_id", "changed_at"),
    )
