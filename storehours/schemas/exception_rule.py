"""
Pydantic schemas for exception rules.

Request models accept every field as optional: required-ness depends on
``rule_type`` and is enforced by the service layer, which answers with a
field-level 400.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class RuleFields(BaseModel):
    name: Optional[str] = None
    event_type: Optional[str] = None
    rule_type: Optional[str] = None
    effective_from_date: Optional[dt.date] = None
    effective_to_date: Optional[dt.date] = None

    is_closed: Optional[bool] = None
    open_time: Optional[str] = None
    close_time: Optional[str] = None

    start_day_open: Optional[str] = None
    start_day_close: Optional[str] = None
    middle_days_closed: Optional[bool] = None
    middle_days_open: Optional[str] = None
    middle_days_close: Optional[str] = None
    end_day_open: Optional[str] = None
    end_day_close: Optional[str] = None

    date: Optional[dt.date] = None
    month: Optional[int] = None
    day: Optional[int] = None
    weekday: Optional[Union[str, int]] = None
    nth: Optional[int] = None
    days: Optional[list[str]] = None
    interval: Optional[int] = None
    unit: Optional[str] = None
    start_date: Optional[dt.date] = None


class RuleCreate(RuleFields):
    site_id: Optional[str] = None


class RuleUpdate(RuleFields):
    pass


class RuleOut(BaseModel):
    exception_id: str = Field(validation_alias="id")
    site_id: str
    name: str
    event_type: str
    rule_type: str
    effective_from_date: dt.date
    effective_to_date: Optional[dt.date] = None
    retired_on: Optional[dt.date] = None
    is_closed: bool
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    start_day_open: Optional[str] = None
    start_day_close: Optional[str] = None
    middle_days_closed: Optional[bool] = None
    middle_days_open: Optional[str] = None
    middle_days_close: Optional[str] = None
    end_day_open: Optional[str] = None
    end_day_close: Optional[str] = None
    date: Optional[dt.date] = Field(default=None, validation_alias="rule_date")
    month: Optional[int] = None
    day: Optional[int] = None
    weekday: Optional[str] = None
    nth: Optional[int] = None
    days: Optional[list[str]] = None
    interval: Optional[int] = None
    unit: Optional[str] = None
    start_date: Optional[dt.date] = None
    created_by: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True)
