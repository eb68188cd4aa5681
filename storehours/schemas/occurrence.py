"""
Pydantic schemas for materialized occurrences.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class OccurrenceCreate(BaseModel):
    site_id: Optional[str] = None
    exception_id: Optional[str] = None
    occurrence_date: Optional[date] = None
    name: Optional[str] = None
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    is_closed: bool = False


class OccurrenceUpdate(BaseModel):
    occurrence_id: Optional[str] = None
    occurrence_date: Optional[date] = None
    name: Optional[str] = None
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    is_closed: Optional[bool] = None


class OccurrenceOut(BaseModel):
    occurrence_id: str = Field(validation_alias="id")
    site_id: str
    exception_id: Optional[str] = None
    occurrence_date: date
    name: Optional[str] = None
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    is_closed: bool
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
