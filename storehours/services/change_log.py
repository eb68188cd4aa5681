"""
Append-only change log for base hours, exceptions and comments.

Entries are only ever inserted. Audit rows that follow a mutation are
written inside a SAVEPOINT of the caller's transaction: if the insert
fails it is logged and skipped, and the mutation still commits.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import ValidationError, log_exception
from ..models.change_log import StoreHoursChangeLog
from ..models.exception_rule import ExceptionRule
from ..models.occurrence import ExceptionOccurrence
from ..models.store_hours import StoreHours


logger = logging.getLogger("store_hours.change_log")

SOURCE_BASE_HOURS = "base_hours"
SOURCE_EXCEPTION = "exception"
SOURCE_COMMENT = "comment"

ACTION_INSERT = "insert"
ACTION_UPDATE = "update"
ACTION_CREATED = "created"
ACTION_EDITED = "edited"
ACTION_DELETED = "deleted"
ACTION_COMMENT = "comment"


def format_time(value: Optional[str]) -> str:
    """Render ``HH:MM`` as ``9:00 AM``."""
    if not value:
        return "--"
    hour_raw, minute = value.split(":")[:2]
    hour = int(hour_raw)
    suffix = "PM" if hour >= 12 else "AM"
    hour12 = 12 if hour % 12 == 0 else hour % 12
    return f"{hour12}:{minute} {suffix}"


def base_hours_message(action: str, day_of_week: str, before: Optional[dict], after: dict) -> str:
    day = day_of_week.capitalize()
    if action == ACTION_INSERT:
        if after.get("is_closed"):
            return f"{day} base hours set to Closed"
        return f"{day} base hours set: {format_time(after.get('open_time'))}-{format_time(after.get('close_time'))}"
    before = before or {}
    if before.get("is_closed") != after.get("is_closed"):
        if after.get("is_closed"):
            return f"{day} set to Closed"
        return f"{day} opened: {format_time(after.get('open_time'))}-{format_time(after.get('close_time'))}"
    if after.get("is_closed"):
        return f"{day} updated"
    parts = []
    if before.get("open_time") != after.get("open_time"):
        parts.append(f"open {format_time(before.get('open_time'))} -> {format_time(after.get('open_time'))}")
    if before.get("close_time") != after.get("close_time"):
        parts.append(f"close {format_time(before.get('close_time'))} -> {format_time(after.get('close_time'))}")
    if parts:
        return f"{day} hours updated: {', '.join(parts)}"
    return f"{day} updated"


def hours_snapshot(row: Any) -> dict:
    return {"open_time": row.open_time, "close_time": row.close_time, "is_closed": bool(row.is_closed)}


def diff_fields(before: dict, after: dict) -> dict:
    changes = {}
    for key, before_val in before.items():
        after_val = after.get(key)
        if before_val != after_val:
            changes[key] = {"from": before_val, "to": after_val}
    return changes


def _append(db: Session, entry: StoreHoursChangeLog) -> Optional[StoreHoursChangeLog]:
    try:
        with db.begin_nested():
            db.add(entry)
    except SQLAlchemyError as exc:
        log_exception(
            logger,
            "Change log write failed",
            extra={"site_id": entry.site_id, "source": entry.source, "action": entry.action},
            exc=exc,
        )
        return None
    return entry


def record_base_hours_change(
    db: Session,
    row: StoreHours,
    *,
    action: str,
    before: Optional[dict],
    changed_by: str,
    org_id: Optional[str] = None,
) -> Optional[StoreHoursChangeLog]:
    """Record one base-hours insert or update with its before/after values.

    Call after the mutation has been flushed.
    """
    after = hours_snapshot(row)
    before = before or {}
    entry = StoreHoursChangeLog(
        site_id=row.site_id,
        org_id=org_id or row.org_id,
        source=SOURCE_BASE_HOURS,
        action=action,
        message=base_hours_message(action, row.day_of_week, before, after),
        changed_by=changed_by,
        store_hours_id=row.id,
        day_of_week=row.day_of_week,
        open_time_old=before.get("open_time"),
        open_time_new=after["open_time"],
        close_time_old=before.get("close_time"),
        close_time_new=after["close_time"],
        is_closed_old=before.get("is_closed"),
        is_closed_new=after["is_closed"],
        details={"changes": diff_fields(before, after)} if before else {},
    )
    return _append(db, entry)


def rule_message(action: str, rule: ExceptionRule) -> str:
    verb = {ACTION_CREATED: "created", ACTION_EDITED: "edited", ACTION_DELETED: "deleted"}.get(action, action)
    return f"Exception rule '{rule.name}' ({rule.rule_type}) {verb}"


def record_rule_change(
    db: Session,
    rule: ExceptionRule,
    *,
    action: str,
    changed_by: str,
    changes: Optional[dict] = None,
) -> Optional[StoreHoursChangeLog]:
    details: dict[str, Any] = {"rule_type": rule.rule_type, "event_type": rule.event_type, "name": rule.name}
    if changes:
        details["changes"] = changes
    entry = StoreHoursChangeLog(
        site_id=rule.site_id,
        source=SOURCE_EXCEPTION,
        action=action,
        message=rule_message(action, rule),
        changed_by=changed_by,
        exception_id=rule.id,
        event_date=rule.effective_from_date,
        details=details,
    )
    return _append(db, entry)


def record_occurrence_change(
    db: Session,
    occurrence: ExceptionOccurrence,
    *,
    action: str,
    changed_by: str,
    changes: Optional[dict] = None,
) -> Optional[StoreHoursChangeLog]:
    label = occurrence.name or "Exception"
    verb = {ACTION_CREATED: "added", ACTION_EDITED: "edited", ACTION_DELETED: "removed"}.get(action, action)
    details: dict[str, Any] = {"occurrence_date": occurrence.occurrence_date.isoformat()}
    if changes:
        details["changes"] = changes
    entry = StoreHoursChangeLog(
        site_id=occurrence.site_id,
        source=SOURCE_EXCEPTION,
        action=action,
        message=f"{label} on {occurrence.occurrence_date.isoformat()} {verb}",
        changed_by=changed_by,
        exception_id=occurrence.exception_id,
        occurrence_id=occurrence.id,
        event_date=occurrence.occurrence_date,
        details=details,
    )
    return _append(db, entry)


def add_comment(db: Session, *, site_id: str, event_date: date, message: str, changed_by: str) -> StoreHoursChangeLog:
    text = (message or "").strip()
    if not site_id:
        raise ValidationError("site_id is required", field="site_id")
    if event_date is None:
        raise ValidationError("date is required", field="date")
    if not text:
        raise ValidationError("message is required", field="message")
    entry = StoreHoursChangeLog(
        site_id=site_id,
        source=SOURCE_COMMENT,
        action=ACTION_COMMENT,
        message=text,
        changed_by=changed_by,
        event_date=event_date,
        details={},
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    logger.info("Comment added site=%s date=%s by=%s", site_id, event_date, changed_by)
    return entry


def list_change_log(db: Session, site_id: str, *, limit: int = 100) -> list[StoreHoursChangeLog]:
    if not site_id:
        raise ValidationError("site_id is required", field="site_id")
    return (
        db.query(StoreHoursChangeLog)
        .filter(StoreHoursChangeLog.site_id == site_id)
        .order_by(StoreHoursChangeLog.changed_at.desc(), StoreHoursChangeLog.id.desc())
        .limit(limit)
        .all()
    )


def list_comments(db: Session, site_id: str, *, event_date: Optional[date] = None, limit: int = 500) -> list[StoreHoursChangeLog]:
    if not site_id:
        raise ValidationError("site_id is required", field="site_id")
    q = db.query(StoreHoursChangeLog).filter(
        StoreHoursChangeLog.site_id == site_id,
        StoreHoursChangeLog.source == SOURCE_COMMENT,
    )
    if event_date is not None:
        q = q.filter(StoreHoursChangeLog.event_date == event_date)
    return q.order_by(StoreHoursChangeLog.changed_at.desc()).limit(limit).all()


def to_entry(row: StoreHoursChangeLog) -> dict:
    """Normalize a log row into the shape returned by the change log API."""
    metadata: dict[str, Any] = dict(row.details or {})
    if row.source == SOURCE_BASE_HOURS:
        metadata.update(
            {
                "store_hours_id": row.store_hours_id,
                "day_of_week": row.day_of_week,
                "open_time_old": row.open_time_old,
                "open_time_new": row.open_time_new,
                "close_time_old": row.close_time_old,
                "close_time_new": row.close_time_new,
                "is_closed_old": row.is_closed_old,
                "is_closed_new": row.is_closed_new,
            }
        )
    else:
        metadata.update({"exception_id": row.exception_id, "occurrence_id": row.occurrence_id})
    message = row.message
    if row.source == SOURCE_COMMENT and row.event_date is not None:
        message = f"{row.event_date.isoformat()}: {row.message}"
    return {
        "id": row.id,
        "timestamp": row.changed_at,
        "action": row.action,
        "source": row.source,
        "message": message,
        "changed_by": row.changed_by,
        "event_date": row.event_date,
        "metadata": metadata,
    }
