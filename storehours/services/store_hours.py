"""
Weekly base hours and weekly templates.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..core.errors import ForbiddenError, NotFoundError, ValidationError
from ..models.store_hours import StoreHours
from ..models.template import StoreHoursTemplate
from .change_log import ACTION_INSERT, ACTION_UPDATE, hours_snapshot, record_base_hours_change
from .manifest import BaseDay
from .recurrence import WEEKDAYS, normalize_time, normalize_weekday


logger = logging.getLogger("store_hours.base_hours")


def _day_order(row: StoreHours) -> int:
    try:
        return WEEKDAYS.index(row.day_of_week)
    except ValueError:
        return len(WEEKDAYS)


def list_base_hours(db: Session, site_id: str) -> list[StoreHours]:
    if not site_id:
        raise ValidationError("site_id is required", field="site_id")
    rows = db.query(StoreHours).filter(StoreHours.site_id == site_id).all()
    return sorted(rows, key=_day_order)


def load_base_days(db: Session, site_id: str) -> dict[str, BaseDay]:
    return {
        row.day_of_week: BaseDay(
            day_of_week=row.day_of_week,
            open_time=row.open_time,
            close_time=row.close_time,
            is_closed=bool(row.is_closed),
            store_hours_id=row.id,
        )
        for row in db.query(StoreHours).filter(StoreHours.site_id == site_id).all()
    }


def _clean_hours(data: Mapping[str, Any], prefix: str = "") -> dict:
    is_closed = bool(data.get("is_closed") or False)
    open_time = normalize_time(data.get("open_time"), f"{prefix}open_time")
    close_time = normalize_time(data.get("close_time"), f"{prefix}close_time")
    if not is_closed and (open_time is None or close_time is None):
        raise ValidationError(f"{prefix}open_time and close_time are required unless closed", field=f"{prefix}open_time")
    return {"open_time": open_time, "close_time": close_time, "is_closed": is_closed}


def _upsert_days(
    db: Session,
    site_id: str,
    org_id: Optional[str],
    days: Mapping[str, dict],
    changed_by: str,
) -> int:
    existing = {row.day_of_week: row for row in db.query(StoreHours).filter(StoreHours.site_id == site_id).all()}
    touched = 0
    for day_name in WEEKDAYS:
        values = days.get(day_name)
        if values is None:
            continue
        row = existing.get(day_name)
        if row is None:
            row = StoreHours(site_id=site_id, org_id=org_id, day_of_week=day_name, **values)
            db.add(row)
            db.flush()
            record_base_hours_change(db, row, action=ACTION_INSERT, before=None, changed_by=changed_by, org_id=org_id)
            touched += 1
            continue
        before = hours_snapshot(row)
        if before == values:
            continue
        for key, value in values.items():
            setattr(row, key, value)
        db.flush()
        record_base_hours_change(db, row, action=ACTION_UPDATE, before=before, changed_by=changed_by, org_id=org_id)
        touched += 1
    return touched


def initialize_base_hours(db: Session, site_id: str, org_id: Optional[str], changed_by: str) -> list[StoreHours]:
    """Create the seven weekday rows for a site, closed by default. Existing rows are kept."""
    if not site_id:
        raise ValidationError("site_id is required", field="site_id")
    present = {row.day_of_week for row in db.query(StoreHours.day_of_week).filter(StoreHours.site_id == site_id).all()}
    missing = {d: {"open_time": None, "close_time": None, "is_closed": True} for d in WEEKDAYS if d not in present}
    created = _upsert_days(db, site_id, org_id, missing, changed_by)
    db.commit()
    if created:
        logger.info("Initialized base hours site=%s created=%s", site_id, created)
    return list_base_hours(db, site_id)


def update_base_hours_batch(
    db: Session,
    site_id: str,
    org_id: Optional[str],
    rows: Iterable[Mapping[str, Any]],
    changed_by: str,
) -> int:
    """Apply a batch of base-hours edits in one transaction.

    Every row is validated before storage is touched. A row that cannot be
    found aborts the whole batch and nothing is applied. Each applied row
    gets exactly one ``update`` change log entry.
    """
    if not site_id:
        raise ValidationError("site_id is required", field="site_id")
    cleaned = []
    for index, item in enumerate(rows):
        store_hours_id = item.get("store_hours_id")
        if not store_hours_id:
            raise ValidationError(f"rows[{index}].store_hours_id is required", field="store_hours_id")
        if not item.get("day_of_week"):
            raise ValidationError(f"rows[{index}].day_of_week is required", field="day_of_week")
        day_name = normalize_weekday(item["day_of_week"], "day_of_week")
        cleaned.append((store_hours_id, day_name, _clean_hours(item)))

    try:
        for store_hours_id, day_name, values in cleaned:
            row = (
                db.query(StoreHours)
                .filter(StoreHours.id == store_hours_id, StoreHours.site_id == site_id)
                .first()
            )
            if row is None:
                raise NotFoundError("Store hours row", store_hours_id)
            if row.day_of_week != day_name:
                raise ValidationError(
                    f"day_of_week {day_name} does not match store hours row ({row.day_of_week})",
                    field="day_of_week",
                )
            before = hours_snapshot(row)
            for key, value in values.items():
                setattr(row, key, value)
            db.flush()
            record_base_hours_change(db, row, action=ACTION_UPDATE, before=before, changed_by=changed_by, org_id=org_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Base hours updated site=%s rows=%s by=%s", site_id, len(cleaned), changed_by)
    return len(cleaned)


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


def list_templates(db: Session, org_id: str) -> list[StoreHoursTemplate]:
    if not org_id:
        raise ValidationError("org_id is required", field="org_id")
    return (
        db.query(StoreHoursTemplate)
        .filter(or_(StoreHoursTemplate.org_id == org_id, StoreHoursTemplate.is_global.is_(True)))
        .order_by(StoreHoursTemplate.is_global.desc(), StoreHoursTemplate.created_at.desc())
        .all()
    )


def create_template(
    db: Session,
    *,
    org_id: str,
    template_name: str,
    days: Mapping[str, Mapping[str, Any]],
    is_global: bool = False,
    created_by: Optional[str] = None,
) -> StoreHoursTemplate:
    if not org_id:
        raise ValidationError("org_id is required", field="org_id")
    name = (template_name or "").strip()
    if not name:
        raise ValidationError("template_name is required", field="template_name")
    cleaned: dict[str, dict] = {}
    for raw_day, values in (days or {}).items():
        day_name = normalize_weekday(raw_day, "days")
        cleaned[day_name] = _clean_hours(values or {}, prefix=f"{day_name}.")
    missing = [d for d in WEEKDAYS if d not in cleaned]
    if missing:
        raise ValidationError(f"template is missing days: {', '.join(missing)}", field="days")
    template = StoreHoursTemplate(
        org_id=org_id,
        template_name=name,
        is_global=bool(is_global),
        days=cleaned,
        created_by=created_by,
    )
    db.add(template)
    db.commit()
    db.refresh(template)
    logger.info("Template created org=%s template=%s", org_id, template.id)
    return template


def _get_template(db: Session, template_id: str) -> StoreHoursTemplate:
    template = db.get(StoreHoursTemplate, template_id)
    if template is None:
        raise NotFoundError("Template", template_id)
    return template


def delete_template(db: Session, template_id: str, org_id: str) -> None:
    if not template_id or not org_id:
        raise ValidationError("template_id and org_id are required", field="org_id")
    template = _get_template(db, template_id)
    if template.is_global:
        raise ForbiddenError("Cannot delete a global template")
    if template.org_id != org_id:
        raise ForbiddenError("Template does not belong to this organization")
    db.delete(template)
    db.commit()
    logger.info("Template deleted org=%s template=%s", org_id, template_id)


def apply_template(db: Session, template_id: str, *, site_id: str, org_id: Optional[str], changed_by: str) -> int:
    """Upsert the site's seven base-hours rows from a template in one transaction."""
    if not site_id:
        raise ValidationError("site_id is required", field="site_id")
    template = _get_template(db, template_id)
    if not template.is_global and org_id and template.org_id != org_id:
        raise ForbiddenError("Template does not belong to this organization")
    try:
        touched = _upsert_days(db, site_id, org_id, template.days or {}, changed_by)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Template applied site=%s template=%s rows=%s", site_id, template_id, touched)
    return touched
