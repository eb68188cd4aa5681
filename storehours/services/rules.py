"""
Exception rule store: validation, persistence and audit of rule changes.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from ..core.errors import NotFoundError, ValidationError
from ..models.exception_rule import ExceptionRule
from ..models.occurrence import ExceptionOccurrence
from .change_log import ACTION_CREATED, ACTION_DELETED, ACTION_EDITED, record_rule_change
from .recurrence import (
    DATE_RANGE_DAILY,
    HOURS_FIELDS,
    PARAM_FIELDS,
    RANGE_FIELDS,
    WEEKDAYS,
    RuleDefinition,
    WeeklyDaysRule,
    build_rule_definition,
)


logger = logging.getLogger("store_hours.rules")

COMMON_FIELDS = ("name", "event_type", "rule_type", "effective_from_date", "effective_to_date", "is_closed")
EDITABLE_FIELDS = COMMON_FIELDS + HOURS_FIELDS + RANGE_FIELDS + PARAM_FIELDS

# Payload key -> ORM attribute where they differ.
_ATTR_NAMES = {"date": "rule_date"}


def _attr(name: str) -> str:
    return _ATTR_NAMES.get(name, name)


def rule_payload(rule: ExceptionRule) -> dict:
    """Return the rule as a flat payload dict keyed like the API fields."""
    payload: dict[str, Any] = {name: getattr(rule, _attr(name)) for name in EDITABLE_FIELDS}
    payload.update(
        {
            "exception_id": rule.id,
            "site_id": rule.site_id,
            "retired_on": rule.retired_on,
            "created_at": rule.created_at,
        }
    )
    return payload


def rule_definition(rule: ExceptionRule) -> RuleDefinition:
    return build_rule_definition(rule_payload(rule), partial_hours=True)


def _columns_for(definition: RuleDefinition, data: Mapping[str, Any]) -> dict:
    """Map a validated definition onto ORM columns, nulling foreign parameters."""
    columns: dict[str, Any] = {name: None for name in PARAM_FIELDS + RANGE_FIELDS + HOURS_FIELDS}
    columns["name"] = definition.name
    columns["event_type"] = data.get("event_type") or "store_hours_schedule"
    columns["rule_type"] = definition.rule_type
    columns["effective_from_date"] = definition.effective_from_date
    columns["effective_to_date"] = definition.effective_to_date
    columns["is_closed"] = definition.hours.is_closed
    spec = definition.spec
    if definition.rule_type == DATE_RANGE_DAILY:
        columns.update(
            {
                "start_day_open": spec.start_day.open_time,
                "start_day_close": spec.start_day.close_time,
                "middle_days_closed": spec.middle_days.is_closed,
                "middle_days_open": spec.middle_days.open_time,
                "middle_days_close": spec.middle_days.close_time,
                "end_day_open": spec.end_day.open_time,
                "end_day_close": spec.end_day.close_time,
            }
        )
    else:
        columns["open_time"] = definition.hours.open_time
        columns["close_time"] = definition.hours.close_time
        for name, value in vars(spec).items():
            if isinstance(spec, WeeklyDaysRule) and name == "days":
                value = sorted(value, key=WEEKDAYS.index)
            columns[name] = value
    return {_attr(name): value for name, value in columns.items()}


def _validate(data: Mapping[str, Any]) -> RuleDefinition:
    if not data.get("site_id"):
        raise ValidationError("site_id is required", field="site_id")
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required", field="name")
    return build_rule_definition({**data, "name": name})


def list_rules(db: Session, site_id: str, *, include_retired: bool = False) -> list[ExceptionRule]:
    if not site_id:
        raise ValidationError("site_id is required", field="site_id")
    q = db.query(ExceptionRule).filter(ExceptionRule.site_id == site_id)
    if not include_retired:
        q = q.filter(ExceptionRule.retired_on.is_(None))
    return q.order_by(ExceptionRule.created_at.desc(), ExceptionRule.id.desc()).all()


def load_rule_definitions(db: Session, site_id: str) -> list[RuleDefinition]:
    """All rules of a site, retired ones included, as expandable definitions."""
    rows = db.query(ExceptionRule).filter(ExceptionRule.site_id == site_id).all()
    return [rule_definition(row) for row in rows]


def get_rule(db: Session, exception_id: str) -> ExceptionRule:
    if not exception_id:
        raise ValidationError("exception_id is required", field="exception_id")
    rule = db.get(ExceptionRule, exception_id)
    if rule is None:
        raise NotFoundError("Exception rule", exception_id)
    return rule


def create_rule(db: Session, data: Mapping[str, Any], *, changed_by: str) -> ExceptionRule:
    definition = _validate(data)
    rule = ExceptionRule(site_id=data["site_id"], created_by=changed_by, **_columns_for(definition, data))
    db.add(rule)
    db.flush()
    record_rule_change(db, rule, action=ACTION_CREATED, changed_by=changed_by)
    db.commit()
    db.refresh(rule)
    logger.info("Rule created site=%s rule=%s type=%s by=%s", rule.site_id, rule.id, rule.rule_type, changed_by)
    return rule


def update_rule(db: Session, exception_id: str, data: Mapping[str, Any], *, changed_by: str) -> ExceptionRule:
    """Apply a partial edit. The merged rule is re-validated as a whole.

    Changing ``rule_type`` clears parameters the new type does not own
    unless they are supplied again.
    """
    rule = get_rule(db, exception_id)
    if rule.retired_on is not None:
        raise ValidationError("Retired rules cannot be edited", field="exception_id")
    before = rule_payload(rule)
    merged = {**before, **{k: v for k, v in data.items() if k in EDITABLE_FIELDS}}
    if data.get("rule_type") and data["rule_type"] != before["rule_type"]:
        for name in PARAM_FIELDS + RANGE_FIELDS + HOURS_FIELDS:
            if name not in data:
                merged[name] = None
    definition = _validate(merged)
    columns = _columns_for(definition, merged)
    changes = {}
    for attr, value in columns.items():
        current = getattr(rule, attr)
        if current != value:
            changes[attr] = {"from": _jsonable(current), "to": _jsonable(value)}
            setattr(rule, attr, value)
    if not changes:
        return rule
    db.flush()
    record_rule_change(db, rule, action=ACTION_EDITED, changed_by=changed_by, changes=changes)
    db.commit()
    db.refresh(rule)
    logger.info("Rule edited site=%s rule=%s fields=%s by=%s", rule.site_id, rule.id, sorted(changes), changed_by)
    return rule


def delete_rule(db: Session, exception_id: str, *, changed_by: str, today: Optional[date] = None) -> ExceptionRule:
    """Retire a rule from ``today`` on.

    Past occurrences keep resolving so history stays intact. Materialized
    occurrence rows of the rule dated today or later are removed.
    """
    today = today or date.today()
    rule = get_rule(db, exception_id)
    if rule.retired_on is not None:
        return rule
    rule.retired_on = today
    removed = (
        db.query(ExceptionOccurrence)
        .filter(ExceptionOccurrence.exception_id == rule.id, ExceptionOccurrence.occurrence_date >= today)
        .delete(synchronize_session=False)
    )
    db.flush()
    record_rule_change(
        db,
        rule,
        action=ACTION_DELETED,
        changed_by=changed_by,
        changes={"retired_on": {"from": None, "to": today.isoformat()}, "removed_occurrences": removed},
    )
    db.commit()
    db.refresh(rule)
    logger.info("Rule retired site=%s rule=%s removed_occurrences=%s by=%s", rule.site_id, rule.id, removed, changed_by)
    return rule


def _jsonable(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    return value
