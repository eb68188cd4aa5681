from datetime import date

import pytest

from storehours.core.errors import ValidationError
from storehours.services.recurrence import (
    build_rule_definition,
    default_years,
    expand_between,
    expand_rule,
    nth_weekday_of_month,
)


def _rule(**params):
    base = {"name": "Rule", "effective_from_date": date(2020, 1, 1)}
    base.update(params)
    return build_rule_definition(base)


def _dates(occurrences):
    return [o.resolved_date for o in occurrences]


def test_single_date_closed():
    rule = _rule(rule_type="single_date", date=date(2025, 7, 4), is_closed=True)
    occs = expand_rule(rule, [2024, 2025, 2026])
    assert _dates(occs) == [date(2025, 7, 4)]
    assert occs[0].is_closed is True
    assert occs[0].open_time is None
    assert occs[0].is_recurring is False
    assert occs[0].day_of_week == "friday"


def test_fixed_yearly_matches_month_and_day_in_requested_years():
    rule = _rule(rule_type="fixed_yearly", month=12, day=25, is_closed=True)
    years = [2023, 2024, 2025]
    occs = expand_rule(rule, years)
    assert _dates(occs) == [date(2023, 12, 25), date(2024, 12, 25), date(2025, 12, 25)]
    for occ in occs:
        assert occ.resolved_date.year in years
        assert (occ.resolved_date.month, occ.resolved_date.day) == (12, 25)


def test_fixed_yearly_feb_29_only_in_leap_years():
    rule = _rule(rule_type="fixed_yearly", month=2, day=29, is_closed=True)
    assert _dates(expand_rule(rule, [2023, 2024, 2025])) == [date(2024, 2, 29)]


def test_nth_weekday_third_monday_of_january():
    rule = _rule(rule_type="nth_weekday", month=1, weekday="monday", nth=3, is_closed=True)
    assert _dates(expand_rule(rule, [2024])) == [date(2024, 1, 15)]


def test_nth_weekday_last_monday_of_may():
    rule = _rule(rule_type="nth_weekday", month=5, weekday="Mon", nth=-1, is_closed=True)
    assert _dates(expand_rule(rule, [2024, 2025])) == [date(2024, 5, 27), date(2025, 5, 26)]


def test_nth_weekday_missing_fifth_occurrence_is_skipped():
    assert nth_weekday_of_month(2024, 2, "monday", 5) is None
    rule = _rule(rule_type="nth_weekday", month=2, weekday="monday", nth=5, is_closed=True)
    assert expand_rule(rule, [2024]) == []


def test_weekly_days():
    rule = _rule(rule_type="weekly_days", days=["saturday", "sunday"], open_time="10:00", close_time="14:00")
    occs = expand_between(rule, date(2025, 7, 1), date(2025, 7, 14))
    assert _dates(occs) == [date(2025, 7, 5), date(2025, 7, 6), date(2025, 7, 12), date(2025, 7, 13)]
    assert all(o.open_time == "10:00" and o.close_time == "14:00" for o in occs)
    assert all(o.is_recurring for o in occs)


def test_interval_days_and_weeks():
    daily = _rule(rule_type="interval", interval=3, unit="days", start_date=date(2025, 7, 1), is_closed=True)
    assert _dates(expand_between(daily, date(2025, 7, 2), date(2025, 7, 10))) == [
        date(2025, 7, 4),
        date(2025, 7, 7),
        date(2025, 7, 10),
    ]
    weekly = _rule(rule_type="interval", interval=2, unit="week", start_date=date(2025, 1, 6), is_closed=True)
    assert _dates(expand_between(weekly, date(2025, 1, 1), date(2025, 2, 5))) == [
        date(2025, 1, 6),
        date(2025, 1, 20),
        date(2025, 2, 3),
    ]


def test_interval_month_skips_months_without_start_day():
    rule = _rule(rule_type="interval", interval=1, unit="month", start_date=date(2025, 1, 31), is_closed=True)
    assert _dates(expand_between(rule, date(2025, 1, 1), date(2025, 6, 30))) == [
        date(2025, 1, 31),
        date(2025, 3, 31),
        date(2025, 5, 31),
    ]


def test_date_range_daily_profiles():
    rule = build_rule_definition(
        {
            "name": "Christmas",
            "rule_type": "date_range_daily",
            "effective_from_date": date(2025, 12, 24),
            "effective_to_date": date(2025, 12, 26),
            "start_day_open": "09:00",
            "start_day_close": "14:00",
            "middle_days_closed": True,
            "end_day_open": "12:00",
            "end_day_close": "18:00",
        }
    )
    occs = expand_rule(rule, [2025])
    assert _dates(occs) == [date(2025, 12, 24), date(2025, 12, 25), date(2025, 12, 26)]
    start, middle, end = occs
    assert (start.open_time, start.close_time, start.is_closed, start.segment) == ("09:00", "14:00", False, "start")
    assert (middle.open_time, middle.close_time, middle.is_closed, middle.segment) == (None, None, True, "middle")
    assert (end.open_time, end.close_time, end.is_closed, end.segment) == ("12:00", "18:00", False, "end")


def test_date_range_daily_single_day_uses_start_open_and_end_close():
    rule = build_rule_definition(
        {
            "name": "Inventory",
            "rule_type": "date_range_daily",
            "effective_from_date": date(2025, 3, 1),
            "effective_to_date": date(2025, 3, 1),
            "start_day_open": "08:00",
            "start_day_close": "12:00",
            "end_day_open": "13:00",
            "end_day_close": "20:00",
        }
    )
    (occ,) = expand_rule(rule, [2025])
    assert (occ.open_time, occ.close_time) == ("08:00", "20:00")


def test_date_range_daily_profile_needs_both_times():
    with pytest.raises(ValidationError) as excinfo:
        build_rule_definition(
            {
                "name": "Inventory",
                "rule_type": "date_range_daily",
                "effective_from_date": date(2025, 3, 1),
                "effective_to_date": date(2025, 3, 3),
                "start_day_open": "08:00",
                "end_day_open": "13:00",
                "end_day_close": "20:00",
            }
        )
    assert excinfo.value.field == "start_day_close"

    with pytest.raises(ValidationError) as excinfo:
        _rule(rule_type="weekly_days", days=["monday"], close_time="15:00")
    assert excinfo.value.field == "open_time"


def test_effective_window_bounds_expansion():
    rule = _rule(
        rule_type="weekly_days",
        days=["monday"],
        is_closed=True,
        effective_from_date=date(2025, 7, 8),
        effective_to_date=date(2025, 7, 21),
    )
    assert _dates(expand_between(rule, date(2025, 7, 1), date(2025, 7, 31))) == [date(2025, 7, 14), date(2025, 7, 21)]


def test_retired_rule_stops_on_retirement_day():
    rule = _rule(rule_type="weekly_days", days=["monday"], is_closed=True, retired_on=date(2025, 7, 14))
    assert _dates(expand_between(rule, date(2025, 7, 1), date(2025, 7, 31))) == [date(2025, 7, 7)]


def test_expansion_is_idempotent():
    rule = _rule(rule_type="nth_weekday", month=11, weekday="thursday", nth=4, is_closed=True)
    years = default_years(date(2025, 6, 1))
    assert years == [2024, 2025, 2026]
    assert expand_rule(rule, years) == expand_rule(rule, years)


def test_parameters_of_other_rule_types_are_rejected():
    with pytest.raises(ValidationError) as excinfo:
        _rule(rule_type="single_date", date=date(2025, 7, 4), month=7, is_closed=True)
    assert excinfo.value.field == "month"


def test_missing_type_parameter_is_rejected():
    with pytest.raises(ValidationError) as excinfo:
        _rule(rule_type="fixed_yearly", month=12, is_closed=True)
    assert excinfo.value.field == "day"


def test_date_range_requires_effective_to_date():
    with pytest.raises(ValidationError) as excinfo:
        build_rule_definition(
            {
                "name": "Range",
                "rule_type": "date_range_daily",
                "effective_from_date": date(2025, 12, 24),
                "start_day_open": "09:00",
            }
        )
    assert excinfo.value.field == "effective_to_date"


def test_invalid_values_are_rejected():
    with pytest.raises(ValidationError):
        _rule(rule_type="nth_weekday", month=5, weekday="monday", nth=6)
    with pytest.raises(ValidationError):
        _rule(rule_type="interval", interval=1, unit="year", start_date=date(2025, 1, 1))
    with pytest.raises(ValidationError):
        _rule(rule_type="single_date", date=date(2025, 7, 4), open_time="25:00")
    with pytest.raises(ValidationError):
        _rule(rule_type="holiday", date=date(2025, 7, 4))
