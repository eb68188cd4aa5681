from datetime import date, datetime, timedelta

import pytest

from storehours.core.errors import ValidationError
from storehours.services.manifest import (
    SOURCE_BASE,
    SOURCE_OCCURRENCE,
    SOURCE_RULE,
    BaseDay,
    build_manifest,
    check_range,
)
from storehours.services.recurrence import WEEKDAYS, Occurrence, build_rule_definition


SITE = "SITE_MANIFEST"


def _base_hours(closed_days=("sunday",)):
    return {
        day: BaseDay(
            day_of_week=day,
            open_time=None if day in closed_days else "09:00",
            close_time=None if day in closed_days else "17:00",
            is_closed=day in closed_days,
        )
        for day in WEEKDAYS
    }


def _single(exception_id, on, created_at=None, **hours):
    return build_rule_definition(
        {
            "exception_id": exception_id,
            "name": exception_id,
            "rule_type": "single_date",
            "date": on,
            "effective_from_date": on,
            "created_at": created_at,
            **hours,
        }
    )


def test_one_row_per_date_in_range():
    start, end = date(2025, 7, 1), date(2025, 7, 31)
    rows = build_manifest(SITE, _base_hours(), [], [], start, end)
    assert len(rows) == 31
    assert [r.manifest_date for r in rows] == [start + timedelta(days=i) for i in range(31)]
    assert all(r.source == SOURCE_BASE and not r.has_exception for r in rows)
    sunday = next(r for r in rows if r.manifest_date == date(2025, 7, 6))
    assert sunday.is_closed is True
    assert sunday.open_time is None


def test_closed_single_date_overrides_base_hours():
    rule = _single("july4", date(2025, 7, 4), is_closed=True)
    rows = build_manifest(SITE, _base_hours(), [rule], [], date(2025, 7, 1), date(2025, 7, 7))
    assert len(rows) == 7
    exceptions = [r for r in rows if r.has_exception]
    assert len(exceptions) == 1
    july4 = exceptions[0]
    assert july4.manifest_date == date(2025, 7, 4)
    assert july4.is_closed is True
    assert july4.exception_id == "july4"
    assert july4.source == SOURCE_RULE
    assert july4.to_dict()["manifest_date"] == "2025-07-04"


def test_most_recently_created_rule_wins():
    on = date(2025, 7, 2)
    older = _single("older", on, created_at=datetime(2025, 1, 1), open_time="10:00", close_time="12:00")
    newer = _single("newer", on, created_at=datetime(2025, 2, 1), open_time="11:00", close_time="13:00")
    rows = build_manifest(SITE, _base_hours(), [newer, older], [], on, on)
    assert rows[0].exception_id == "newer"
    assert (rows[0].open_time, rows[0].close_time) == ("11:00", "13:00")


def test_materialized_occurrence_beats_rule_expansion():
    on = date(2025, 7, 2)
    rule = _single("rule", on, created_at=datetime(2025, 6, 1), is_closed=True)
    override = Occurrence(
        resolved_date=on,
        is_closed=False,
        open_time="12:00",
        close_time="16:00",
        exception_id="rule",
        occurrence_id="occ-1",
        created_at=datetime(2025, 1, 1),
    )
    rows = build_manifest(SITE, _base_hours(), [rule], [override], on, on)
    assert rows[0].source == SOURCE_OCCURRENCE
    assert rows[0].occurrence_id == "occ-1"
    assert (rows[0].open_time, rows[0].close_time, rows[0].is_closed) == ("12:00", "16:00", False)


def test_null_hours_fall_back_to_base_hours():
    on = date(2025, 7, 2)
    no_hours = _single("none", on)
    rows = build_manifest(SITE, _base_hours(), [no_hours], [], on, on)
    assert (rows[0].open_time, rows[0].close_time, rows[0].is_closed) == ("09:00", "17:00", False)
    assert rows[0].has_exception is True



def test_lone_stored_time_fills_from_open_base_day_only():
    wednesday, sunday = date(2025, 7, 2), date(2025, 7, 6)
    legacy = [
        Occurrence(resolved_date=day, is_closed=False, open_time="10:00", close_time=None, occurrence_id=f"occ-{day}")
        for day in (wednesday, sunday)
    ]
    rows = build_manifest(SITE, _base_hours(), [], legacy, wednesday, sunday)
    resolved = {r.manifest_date: (r.open_time, r.close_time, r.is_closed) for r in rows}
    assert resolved[wednesday] == ("10:00", "17:00", False)
    assert resolved[sunday] == (None, None, True)
    assert rows[-1].source == SOURCE_OCCURRENCE


def test_rule_with_a_lone_time_is_rejected():
    with pytest.raises(ValidationError) as excinfo:
        _single("partial", date(2025, 7, 6), open_time="10:00")
    assert excinfo.value.field == "close_time"


def test_missing_base_hours_resolve_closed():
    rows = build_manifest(SITE, {}, [], [], date(2025, 7, 1), date(2025, 7, 2))
    assert all(r.is_closed for r in rows)


def test_range_is_validated():
    with pytest.raises(ValidationError):
        build_manifest(SITE, _base_hours(), [], [], date(2025, 7, 2), date(2025, 7, 1))
    with pytest.raises(ValidationError):
        check_range(date(2020, 1, 1), date(2025, 1, 1))
    check_range(date(2025, 1, 1), date(2025, 12, 31))


def test_date_range_daily_resolves_each_profile_in_manifest():
    rule = build_rule_definition(
        {
            "exception_id": "holidays",
            "name": "Holidays",
            "rule_type": "date_range_daily",
            "effective_from_date": date(2024, 12, 24),
            "effective_to_date": date(2024, 12, 26),
            "start_day_open": "09:00",
            "start_day_close": "13:00",
            "middle_days_closed": True,
            "end_day_open": "11:00",
            "end_day_close": "16:00",
        }
    )
    rows = build_manifest(SITE, _base_hours(), [rule], [], date(2024, 12, 23), date(2024, 12, 27))
    resolved = {r.manifest_date: (r.open_time, r.close_time, r.is_closed) for r in rows}
    assert resolved[date(2024, 12, 23)] == ("09:00", "17:00", False)
    assert resolved[date(2024, 12, 24)] == ("09:00", "13:00", False)
    assert resolved[date(2024, 12, 25)] == (None, None, True)
    assert resolved[date(2024, 12, 26)] == ("11:00", "16:00", False)
    assert resolved[date(2024, 12, 27)] == ("09:00", "17:00", False)
    assert all(r.exception_id == "holidays" for r in rows[1:4])
