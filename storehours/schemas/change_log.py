"""
Pydantic schemas for change log entries and comments.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field


class ChangeLogEntryOut(BaseModel):
    id: str
    timestamp: Optional[dt.datetime] = None
    action: str
    source: str
    message: str
    changed_by: str
    event_date: Optional[dt.date] = None
    metadata: dict = Field(default_factory=dict)


class CommentCreate(BaseModel):
    site_id: Optional[str] = None
    date: Optional[dt.date] = None
    message: Optional[str] = None
