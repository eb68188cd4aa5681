"""
ORM model for weekly base hours (one row per site and weekday).
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import String, DateTime, Boolean, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from . import Base, utcnow


class StoreHours(Base):
    __tablename__ = "store_hours"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    site_id: Mapped[str] = mapped_column(String(64), index=True)
    org_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    day_of_week: Mapped[str] = mapped_column(String(16))  # monday .. sunday
    open_time: Mapped[str | None] = mapped_column(String(8), nullable=True)  # HH:MM
    close_time: Mapped[str | None] = mapped_column(String(8), nullable=True)
    is_closed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("site_id", "day_of_week", name="uq_store_hours_site_day"),
    )
