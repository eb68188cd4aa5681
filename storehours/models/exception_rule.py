"""
ORM model for exception rules.

One wide row per rule, discriminated by ``rule_type``. Only the parameter
columns belonging to the row's rule type are populated; the service layer
converts rows into typed rule specs and enforces that invariant.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import String, Date, DateTime, Boolean, Integer, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from . import Base, utcnow


class ExceptionRule(Base):
    __tablename__ = "store_hours_exception_rules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    site_id: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(256))
    event_type: Mapped[str] = mapped_column(String(64), default="store_hours_schedule")
    # single_date | fixed_yearly | nth_weekday | weekly_days | interval | date_range_daily
    rule_type: Mapped[str] = mapped_column(String(32))
    effective_from_date: Mapped[date] = mapped_column(Date)
    effective_to_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    # Rules stop expanding on and after this date once deleted.
    retired_on: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Standard hours payload
    is_closed: Mapped[bool] = mapped_column(Boolean, default=False)
    open_time: Mapped[str | None] = mapped_column(String(8), nullable=True)
    close_time: Mapped[str | None] = mapped_column(String(8), nullable=True)

    # Hotel-style date range payload
    start_day_open: Mapped[str | None] = mapped_column(String(8), nullable=True)
    start_day_close: Mapped[str | None] = mapped_column(String(8), nullable=True)
    middle_days_closed: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    middle_days_open: Mapped[str | None] = mapped_column(String(8), nullable=True)
    middle_days_close: Mapped[str | None] = mapped_column(String(8), nullable=True)
    end_day_open: Mapped[str | None] = mapped_column(String(8), nullable=True)
    end_day_close: Mapped[str | None] = mapped_column(String(8), nullable=True)

    # Rule type parameters
    rule_date: Mapped[date | None] = mapped_column("date", Date, nullable=True)
    month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    day: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weekday: Mapped[str | None] = mapped_column(String(16), nullable=True)
    nth: Mapped[int | None] = mapped_column(Integer, nullable=True)  # 1..5, -1 = last
    days: Mapped[list | None] = mapped_column(JSON, nullable=True)
    interval: Mapped[int | None] = mapped_column(Integer, nullable=True)
    unit: Mapped[str | None] = mapped_column(String(16), nullable=True)  # day | week | month
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    created_by: Mapped[str | None] = mapped_column(String(256), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_store_hours_exception_rules_site_created", "site_id", "created_at"),
    )
