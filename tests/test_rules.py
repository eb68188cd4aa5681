from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from storehours.core.errors import NotFoundError, ValidationError
from storehours.models import Base
from storehours.models.occurrence import ExceptionOccurrence
from storehours.services.change_log import list_change_log, to_entry
from storehours.services.occurrences import (
    create_occurrence,
    delete_occurrence,
    load_overrides,
    update_occurrence,
)
from storehours.services.manifest import BaseDay, build_manifest
from storehours.services.recurrence import WEEKDAYS, expand_between
from storehours.services.rules import (
    create_rule,
    delete_rule,
    list_rules,
    load_rule_definitions,
    update_rule,
)


SITE = "SITE_RULES"


def _make_session():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    return SessionLocal()


def _weekly_closed(db, **extra):
    data = {
        "site_id": SITE,
        "name": "Closed Mondays",
        "rule_type": "weekly_days",
        "days": ["monday"],
        "is_closed": True,
        "effective_from_date": date(2025, 7, 1),
    }
    data.update(extra)
    return create_rule(db, data, changed_by="manager@example.com")


def test_create_rule_persists_only_its_parameters():
    db = _make_session()
    rule = create_rule(
        db,
        {
            "site_id": SITE,
            "name": "Independence Day",
            "rule_type": "single_date",
            "date": "2025-07-04",
            "is_closed": True,
            "effective_from_date": "2025-07-04",
        },
        changed_by="manager@example.com",
    )
    assert rule.rule_date == date(2025, 7, 4)
    assert rule.month is None and rule.days is None and rule.start_day_open is None
    assert rule.event_type == "store_hours_schedule"
    assert rule.created_by == "manager@example.com"

    (entry,) = list_change_log(db, SITE)
    assert entry.action == "created"
    assert entry.source == "exception"
    assert entry.exception_id == rule.id
    assert "Independence Day" in entry.message


def test_create_rule_rejects_missing_fields():
    db = _make_session()
    with pytest.raises(ValidationError) as excinfo:
        create_rule(db, {"name": "x", "rule_type": "single_date"}, changed_by="system")
    assert excinfo.value.field == "site_id"
    with pytest.raises(ValidationError) as excinfo:
        create_rule(db, {"site_id": SITE, "name": "x", "rule_type": "single_date"}, changed_by="system")
    assert excinfo.value.field == "effective_from_date"
    assert list_rules(db, SITE) == []


def test_list_rules_newest_first():
    db = _make_session()
    first = _weekly_closed(db)
    second = _weekly_closed(db, name="Closed Tuesdays", days=["tuesday"])
    assert [r.id for r in list_rules(db, SITE)] == [second.id, first.id]


def test_update_rule_records_field_changes():
    db = _make_session()
    rule = _weekly_closed(db)
    updated = update_rule(
        db,
        rule.id,
        {"is_closed": False, "open_time": "12:00", "close_time": "16:00", "days": ["monday", "wednesday"]},
        changed_by="editor@example.com",
    )
    assert updated.is_closed is False
    assert updated.days == ["monday", "wednesday"]

    edited = [e for e in list_change_log(db, SITE) if e.action == "edited"]
    assert len(edited) == 1
    changes = edited[0].details["changes"]
    assert changes["is_closed"] == {"from": True, "to": False}
    assert changes["open_time"] == {"from": None, "to": "12:00"}
    assert edited[0].changed_by == "editor@example.com"


def test_update_rule_changing_type_clears_old_parameters():
    db = _make_session()
    rule = _weekly_closed(db)
    updated = update_rule(db, rule.id, {"rule_type": "fixed_yearly", "month": 12, "day": 25}, changed_by="system")
    assert updated.rule_type == "fixed_yearly"
    assert updated.days is None
    assert (updated.month, updated.day) == (12, 25)

    with pytest.raises(ValidationError):
        update_rule(db, rule.id, {"weekday": "monday"}, changed_by="system")


def test_delete_rule_retires_and_keeps_history():
    db = _make_session()
    rule = _weekly_closed(db)
    create_occurrence(
        db,
        {"site_id": SITE, "exception_id": rule.id, "occurrence_date": date(2025, 7, 7), "open_time": "10:00", "close_time": "12:00"},
        changed_by="system",
    )
    create_occurrence(
        db,
        {"site_id": SITE, "exception_id": rule.id, "occurrence_date": date(2025, 7, 21), "open_time": "10:00", "close_time": "12:00"},
        changed_by="system",
    )

    retired = delete_rule(db, rule.id, changed_by="system", today=date(2025, 7, 14))
    assert retired.retired_on == date(2025, 7, 14)
    assert list_rules(db, SITE) == []
    assert len(list_rules(db, SITE, include_retired=True)) == 1

    (definition,) = load_rule_definitions(db, SITE)
    dates = [o.resolved_date for o in expand_between(definition, date(2025, 7, 1), date(2025, 7, 31))]
    assert dates == [date(2025, 7, 7)]

    remaining = [o.resolved_date for o in load_overrides(db, SITE)]
    assert remaining == [date(2025, 7, 7)]

    with pytest.raises(ValidationError):
        update_rule(db, rule.id, {"name": "again"}, changed_by="system")
    assert [e.action for e in list_change_log(db, SITE)].count("deleted") == 1


def test_unknown_rule_is_not_found():
    db = _make_session()
    with pytest.raises(NotFoundError):
        update_rule(db, "missing", {"name": "x"}, changed_by="system")
    with pytest.raises(NotFoundError):
        delete_rule(db, "missing", changed_by="system")


def test_occurrence_lifecycle_is_audited():
    db = _make_session()
    row = create_occurrence(
        db,
        {"site_id": SITE, "occurrence_date": "2025-08-15", "name": "Stocktake", "is_closed": True},
        changed_by="system",
    )
    assert row.exception_id is None
    occurrence_id = row.id
    assert row.open_time is None

    updated = update_occurrence(
        db,
        {"occurrence_id": row.id, "occurrence_date": "2025-08-16", "open_time": "09:00", "close_time": "13:00"},
        changed_by="editor",
    )
    assert updated.occurrence_date == date(2025, 8, 16)
    assert updated.is_closed is False
    assert updated.name == "Stocktake"

    (override,) = load_overrides(db, SITE)
    assert override.is_materialized
    assert override.is_recurring is False

    delete_occurrence(db, occurrence_id, changed_by="system")
    assert db.query(ExceptionOccurrence).count() == 0

    entries = [to_entry(e) for e in list_change_log(db, SITE)]
    assert sorted(e["action"] for e in entries) == ["created", "deleted", "edited"]
    assert all(e["metadata"]["occurrence_id"] == occurrence_id for e in entries)


def test_update_occurrence_requires_id_and_date():
    db = _make_session()
    with pytest.raises(ValidationError) as excinfo:
        update_occurrence(db, {"occurrence_date": "2025-08-16"}, changed_by="system")
    assert str(excinfo.value) == "Missing occurrence_id or occurrence_date"
    with pytest.raises(NotFoundError):
        update_occurrence(db, {"occurrence_id": "missing", "occurrence_date": "2025-08-16"}, changed_by="system")


def test_occurrence_must_reference_rule_of_same_site():
    db = _make_session()
    rule = _weekly_closed(db)
    with pytest.raises(ValidationError):
        create_occurrence(
            db,
            {"site_id": "OTHER", "exception_id": rule.id, "occurrence_date": "2025-07-07", "is_closed": True},
            changed_by="system",
        )


def test_update_occurrence_keeps_omitted_fields():
    db = _make_session()
    row = create_occurrence(
        db,
        {"site_id": SITE, "occurrence_date": "2025-07-04", "name": "Parade", "open_time": "10:00", "close_time": "14:00"},
        changed_by="system",
    )

    renamed = update_occurrence(
        db,
        {"occurrence_id": row.id, "occurrence_date": "2025-07-04", "name": "Renamed"},
        changed_by="editor",
    )
    assert renamed.name == "Renamed"
    assert (renamed.open_time, renamed.close_time, renamed.is_closed) == ("10:00", "14:00", False)

    moved = update_occurrence(db, {"occurrence_id": row.id, "occurrence_date": "2025-07-05"}, changed_by="editor")
    assert moved.occurrence_date == date(2025, 7, 5)
    assert (moved.name, moved.open_time, moved.close_time) == ("Renamed", "10:00", "14:00")

    closed = update_occurrence(
        db, {"occurrence_id": row.id, "occurrence_date": "2025-07-05", "is_closed": True}, changed_by="editor"
    )
    assert (closed.open_time, closed.close_time, closed.is_closed) == (None, None, True)
    still_closed = update_occurrence(
        db, {"occurrence_id": row.id, "occurrence_date": "2025-07-05", "name": "Shut"}, changed_by="editor"
    )
    assert still_closed.is_closed is True


def test_occurrence_with_a_lone_time_is_rejected():
    db = _make_session()
    with pytest.raises(ValidationError) as excinfo:
        create_occurrence(
            db, {"site_id": SITE, "occurrence_date": "2025-07-06", "open_time": "10:00"}, changed_by="system"
        )
    assert excinfo.value.field == "close_time"

    row = create_occurrence(
        db, {"site_id": SITE, "occurrence_date": "2025-07-06", "is_closed": True}, changed_by="system"
    )
    with pytest.raises(ValidationError) as excinfo:
        update_occurrence(
            db, {"occurrence_id": row.id, "occurrence_date": "2025-07-06", "close_time": "15:00"}, changed_by="system"
        )
    assert excinfo.value.field == "open_time"
    assert db.get(ExceptionOccurrence, row.id).is_closed is True


def test_stored_rule_with_a_lone_time_still_resolves():
    db = _make_session()
    rule = _weekly_closed(db, days=["wednesday", "sunday"], is_closed=False, open_time="10:00", close_time="14:00")
    rule.close_time = None
    db.commit()

    (definition,) = load_rule_definitions(db, SITE)
    base = {
        day: BaseDay(day_of_week=day, open_time="09:00", close_time="17:00", is_closed=False) for day in WEEKDAYS
    }
    base["sunday"] = BaseDay(day_of_week="sunday", open_time=None, close_time=None, is_closed=True)
    rows = build_manifest(SITE, base, [definition], [], date(2025, 7, 2), date(2025, 7, 6))
    resolved = {r.manifest_date: (r.open_time, r.close_time, r.is_closed) for r in rows}
    assert resolved[date(2025, 7, 2)] == ("10:00", "17:00", False)
    assert resolved[date(2025, 7, 6)] == (None, None, True)

    with pytest.raises(ValidationError):
        update_rule(db, rule.id, {"open_time": "11:00"}, changed_by="system")
