"""
SQLAlchemy model base class for the store hours backend.

This package defines ORM models for weekly base hours, exception rules,
materialized per-date occurrences, the change log, and weekly templates.
All models should inherit from the declarative `Base` defined here.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


from .store_hours import StoreHours  # noqa: E402,F401
from .exception_rule import ExceptionRule  # noqa: E402,F401
from .occurrence import ExceptionOccurrence  # noqa: E402,F401
from .change_log import StoreHoursChangeLog  # noqa: E402,F401
from .template import StoreHoursTemplate  # noqa: E402,F401

__all__ = [
    "Base",
    "utcnow",

    # Weekly schedule
    "StoreHours",
    "StoreHoursTemplate",

    # Exceptions
    "ExceptionRule",
    "ExceptionOccurrence",

    # Audit
    "StoreHoursChangeLog",
]
