"""
Materialized per-date overrides.

A standalone override has no ``exception_id``. An override carrying an
``exception_id`` is a single-date edit of that rule's expansion and wins
over it on that date.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from ..core.errors import NotFoundError, ValidationError
from ..models.exception_rule import ExceptionRule
from ..models.occurrence import ExceptionOccurrence
from .change_log import ACTION_CREATED, ACTION_DELETED, ACTION_EDITED, diff_fields, record_occurrence_change
from .recurrence import Occurrence, hours_payload, parse_date


logger = logging.getLogger("store_hours.occurrences")

_SNAPSHOT_FIELDS = ("occurrence_date", "name", "open_time", "close_time", "is_closed")


def _snapshot(row: ExceptionOccurrence) -> dict:
    snap = {name: getattr(row, name) for name in _SNAPSHOT_FIELDS}
    snap["occurrence_date"] = row.occurrence_date.isoformat() if row.occurrence_date else None
    return snap


def _clean(data: Mapping[str, Any], current: Optional[ExceptionOccurrence] = None) -> dict:
    """Validate hour fields. Fields absent from ``data`` keep the stored value of ``current``."""

    def pick(name: str) -> Any:
        if name in data or current is None:
            return data.get(name)
        return getattr(current, name)

    is_closed = pick("is_closed")
    if "is_closed" not in data and (data.get("open_time") or data.get("close_time")):
        # New hours on a closed occurrence reopen it.
        is_closed = False
    hours = hours_payload(is_closed, pick("open_time"), pick("close_time"))
    values = {"is_closed": hours.is_closed, "open_time": hours.open_time, "close_time": hours.close_time}
    if "name" in data:
        values["name"] = (data.get("name") or "").strip() or None
    return values


def to_occurrence(row: ExceptionOccurrence, rule: Optional[ExceptionRule] = None) -> Occurrence:
    return Occurrence(
        resolved_date=row.occurrence_date,
        is_closed=bool(row.is_closed),
        open_time=row.open_time,
        close_time=row.close_time,
        name=row.name or (rule.name if rule is not None else ""),
        exception_id=row.exception_id,
        occurrence_id=row.id,
        rule_type=rule.rule_type if rule is not None else None,
        is_recurring=bool(rule is not None and rule.rule_type != "single_date"),
        created_at=row.created_at,
    )


def load_overrides(
    db: Session,
    site_id: str,
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[Occurrence]:
    q = (
        db.query(ExceptionOccurrence, ExceptionRule)
        .outerjoin(ExceptionRule, ExceptionRule.id == ExceptionOccurrence.exception_id)
        .filter(ExceptionOccurrence.site_id == site_id)
    )
    if start is not None:
        q = q.filter(ExceptionOccurrence.occurrence_date >= start)
    if end is not None:
        q = q.filter(ExceptionOccurrence.occurrence_date <= end)
    rows = q.order_by(ExceptionOccurrence.occurrence_date.asc()).all()
    return [to_occurrence(occ, rule) for occ, rule in rows]


def get_occurrence(db: Session, occurrence_id: str) -> ExceptionOccurrence:
    row = db.get(ExceptionOccurrence, occurrence_id)
    if row is None:
        raise NotFoundError("Occurrence", occurrence_id)
    return row


def create_occurrence(db: Session, data: Mapping[str, Any], *, changed_by: str) -> ExceptionOccurrence:
    site_id = data.get("site_id")
    if not site_id:
        raise ValidationError("site_id is required", field="site_id")
    if not data.get("occurrence_date"):
        raise ValidationError("occurrence_date is required", field="occurrence_date")
    values = _clean(data)
    exception_id = data.get("exception_id")
    if exception_id:
        rule = db.get(ExceptionRule, exception_id)
        if rule is None:
            raise NotFoundError("Exception rule", exception_id)
        if rule.site_id != site_id:
            raise ValidationError("exception_id belongs to another site", field="exception_id")
    row = ExceptionOccurrence(
        site_id=site_id,
        exception_id=exception_id or None,
        occurrence_date=parse_date(data["occurrence_date"], "occurrence_date"),
        created_by=changed_by,
        **values,
    )
    db.add(row)
    db.flush()
    record_occurrence_change(db, row, action=ACTION_CREATED, changed_by=changed_by)
    db.commit()
    db.refresh(row)
    logger.info("Occurrence created site=%s occurrence=%s date=%s", site_id, row.id, row.occurrence_date)
    return row


def update_occurrence(db: Session, data: Mapping[str, Any], *, changed_by: str) -> ExceptionOccurrence:
    occurrence_id = data.get("occurrence_id")
    occurrence_date = data.get("occurrence_date")
    if not occurrence_id or not occurrence_date:
        raise ValidationError("Missing occurrence_id or occurrence_date", field="occurrence_id" if not occurrence_id else "occurrence_date")
    row = get_occurrence(db, occurrence_id)
    values = _clean(data, row)
    before = _snapshot(row)
    row.occurrence_date = parse_date(occurrence_date, "occurrence_date")
    for key, value in values.items():
        setattr(row, key, value)
    db.flush()
    changes = diff_fields(before, _snapshot(row))
    record_occurrence_change(db, row, action=ACTION_EDITED, changed_by=changed_by, changes=changes)
    db.commit()
    db.refresh(row)
    logger.info("Occurrence edited site=%s occurrence=%s fields=%s", row.site_id, row.id, sorted(changes))
    return row


def delete_occurrence(db: Session, occurrence_id: str, *, changed_by: str) -> None:
    row = get_occurrence(db, occurrence_id)
    site_id = row.site_id
    db.delete(row)
    db.flush()
    record_occurrence_change(db, row, action=ACTION_DELETED, changed_by=changed_by)
    db.commit()
    logger.info("Occurrence deleted site=%s occurrence=%s", site_id, occurrence_id)
