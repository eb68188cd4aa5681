"""
ORM model for named weekly hour templates.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import String, DateTime, Boolean, JSON
from sqlalchemy.orm import Mapped, mapped_column

from . import Base, utcnow


class StoreHoursTemplate(Base):
    __tablename__ = "store_hours_templates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    org_id: Mapped[str] = mapped_column(String(64), index=True)
    template_name: Mapped[str] = mapped_column(String(128))
    is_global: Mapped[bool] = mapped_column(Boolean, default=False)
    # {"monday": {"open_time": "09:00", "close_time": "17:00", "is_closed": false}, ...}
    days: Mapped[dict] = mapped_column(JSON, default=dict)
    created_by: Mapped[str | None] = mapped_column(String(256), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
