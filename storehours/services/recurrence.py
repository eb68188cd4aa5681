"""
Exception rule expansion.

Rules are declared once and expanded on demand into concrete dated
occurrences. Everything in this module is a pure function of its
arguments: no database access, no clock reads unless ``today`` is left
for the caller to default.

``rule_type`` is a closed set. Each type has its own frozen spec class
carrying exactly the parameters that type needs; ``build_rule_spec``
enforces that the parameter columns populated on a stored row match its
tag.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Iterator, Mapping, Optional, Union

from ..core.errors import ValidationError


WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

SINGLE_DATE = "single_date"
FIXED_YEARLY = "fixed_yearly"
NTH_WEEKDAY = "nth_weekday"
WEEKLY_DAYS = "weekly_days"
INTERVAL = "interval"
DATE_RANGE_DAILY = "date_range_daily"

RULE_TYPES = (SINGLE_DATE, FIXED_YEARLY, NTH_WEEKDAY, WEEKLY_DAYS, INTERVAL, DATE_RANGE_DAILY)

# Parameter columns owned by each rule type.
RULE_PARAMS: dict[str, tuple[str, ...]] = {
    SINGLE_DATE: ("date",),
    FIXED_YEARLY: ("month", "day"),
    NTH_WEEKDAY: ("month", "weekday", "nth"),
    WEEKLY_DAYS: ("days",),
    INTERVAL: ("interval", "unit", "start_date"),
    DATE_RANGE_DAILY: (),
}
PARAM_FIELDS = ("date", "month", "day", "weekday", "nth", "days", "interval", "unit", "start_date")
HOURS_FIELDS = ("open_time", "close_time")
RANGE_FIELDS = (
    "start_day_open",
    "start_day_close",
    "middle_days_closed",
    "middle_days_open",
    "middle_days_close",
    "end_day_open",
    "end_day_close",
)

INTERVAL_UNITS = {
    "day": "day",
    "days": "day",
    "week": "week",
    "weeks": "week",
    "month": "month",
    "months": "month",
}

LAST = -1
VALID_NTH = (LAST, 1, 2, 3, 4, 5)


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def normalize_time(value: Any, field_name: str) -> Optional[str]:
    """Return ``HH:MM`` for ``HH:MM`` / ``HH:MM:SS`` input, None for empty input."""
    if value is None or value == "":
        return None
    raw = str(value).strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(raw, fmt).strftime("%H:%M")
        except ValueError:
            continue
    raise ValidationError(f"Invalid {field_name} time format (HH:MM)", field=field_name)


def normalize_weekday(value: Any, field_name: str = "weekday") -> str:
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 6:
        return WEEKDAYS[value]
    name = str(value or "").strip().lower()
    for weekday in WEEKDAYS:
        if name == weekday or (len(name) >= 3 and weekday.startswith(name)):
            return weekday
    raise ValidationError(f"Invalid {field_name}: {value!r}", field=field_name)


def weekday_name(value: date) -> str:
    return WEEKDAYS[value.weekday()]


def parse_date(value: Any, field_name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid {field_name} (YYYY-MM-DD)", field=field_name) from exc


def _as_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer", field=field_name)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field_name} must be an integer", field=field_name) from exc


def _populated(value: Any) -> bool:
    if value is None or value is False:
        return False
    if isinstance(value, (list, tuple, set, frozenset, str)) and not value:
        return False
    return True


# ---------------------------------------------------------------------------
# Rule specs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HoursPayload:
    is_closed: bool = False
    open_time: Optional[str] = None
    close_time: Optional[str] = None


def hours_payload(
    is_closed: Any,
    open_time: Any,
    close_time: Any,
    fields: tuple[str, str] = ("open_time", "close_time"),
    partial_hours: bool = False,
) -> HoursPayload:
    """Normalize one hours profile.

    An open profile carries both times or neither. ``partial_hours`` lets
    rows stored before that rule load unchanged.
    """
    if is_closed:
        return HoursPayload(is_closed=True)
    open_field, close_field = fields
    open_value = normalize_time(open_time, open_field)
    close_value = normalize_time(close_time, close_field)
    if not partial_hours and (open_value is None) != (close_value is None):
        missing = close_field if close_value is None else open_field
        raise ValidationError(f"{open_field} and {close_field} must be set together", field=missing)
    return HoursPayload(open_time=open_value, close_time=close_value)


@dataclass(frozen=True)
class SingleDateRule:
    date: date


@dataclass(frozen=True)
class FixedYearlyRule:
    month: int
    day: int


@dataclass(frozen=True)
class NthWeekdayRule:
    month: int
    weekday: str
    nth: int


@dataclass(frozen=True)
class WeeklyDaysRule:
    days: frozenset


@dataclass(frozen=True)
class IntervalRule:
    interval: int
    unit: str
    start_date: date


@dataclass(frozen=True)
class DateRangeDailyRule:
    start_day: HoursPayload
    middle_days: HoursPayload
    end_day: HoursPayload


RuleSpec = Union[SingleDateRule, FixedYearlyRule, NthWeekdayRule, WeeklyDaysRule, IntervalRule, DateRangeDailyRule]


def build_rule_spec(rule_type: str, params: Mapping[str, Any], *, partial_hours: bool = False) -> RuleSpec:
    """Validate ``params`` against ``rule_type`` and return the typed spec.

    Raises ValidationError when a required parameter is missing or
    malformed, or when a parameter belonging to another rule type is set.
    """
    if rule_type not in RULE_TYPES:
        raise ValidationError(f"Unknown rule_type: {rule_type!r}", field="rule_type")
    owned = RULE_PARAMS[rule_type]
    for name in PARAM_FIELDS:
        if name not in owned and _populated(params.get(name)):
            raise ValidationError(f"{name} is not allowed for rule_type {rule_type}", field=name)
    for name in owned:
        if not _populated(params.get(name)):
            raise ValidationError(f"{name} is required for rule_type {rule_type}", field=name)
    if rule_type == DATE_RANGE_DAILY:
        for name in HOURS_FIELDS:
            if _populated(params.get(name)):
                raise ValidationError(f"{name} is not allowed for rule_type {rule_type}", field=name)
    else:
        for name in RANGE_FIELDS:
            if _populated(params.get(name)):
                raise ValidationError(f"{name} is only allowed for rule_type {DATE_RANGE_DAILY}", field=name)

    if rule_type == SINGLE_DATE:
        return SingleDateRule(date=parse_date(params["date"], "date"))

    if rule_type == FIXED_YEARLY:
        month = _as_int(params["month"], "month")
        day = _as_int(params["day"], "day")
        if not 1 <= month <= 12:
            raise ValidationError("month must be between 1 and 12", field="month")
        # 2000 is a leap year so Feb 29 stays valid.
        if not 1 <= day <= calendar.monthrange(2000, month)[1]:
            raise ValidationError(f"day {day} does not exist in month {month}", field="day")
        return FixedYearlyRule(month=month, day=day)

    if rule_type == NTH_WEEKDAY:
        month = _as_int(params["month"], "month")
        if not 1 <= month <= 12:
            raise ValidationError("month must be between 1 and 12", field="month")
        nth = _as_int(params["nth"], "nth")
        if nth not in VALID_NTH:
            raise ValidationError("nth must be 1-5, or -1 for the last weekday", field="nth")
        return NthWeekdayRule(month=month, weekday=normalize_weekday(params["weekday"]), nth=nth)

    if rule_type == WEEKLY_DAYS:
        raw_days = params["days"]
        if isinstance(raw_days, str):
            raw_days = [part for part in raw_days.split(",") if part.strip()]
        days = frozenset(normalize_weekday(d, "days") for d in raw_days)
        return WeeklyDaysRule(days=days)

    if rule_type == INTERVAL:
        interval = _as_int(params["interval"], "interval")
        if interval < 1:
            raise ValidationError("interval must be at least 1", field="interval")
        unit = INTERVAL_UNITS.get(str(params["unit"]).strip().lower())
        if unit is None:
            raise ValidationError("unit must be one of day, week, month", field="unit")
        return IntervalRule(interval=interval, unit=unit, start_date=parse_date(params["start_date"], "start_date"))

    return DateRangeDailyRule(
        start_day=_range_profile(params, "start_day", partial_hours=partial_hours),
        middle_days=_range_profile(
            params, "middle_days", closed=params.get("middle_days_closed"), partial_hours=partial_hours
        ),
        end_day=_range_profile(params, "end_day", partial_hours=partial_hours),
    )


def _range_profile(
    params: Mapping[str, Any], segment: str, closed: Any = False, partial_hours: bool = False
) -> HoursPayload:
    fields = (f"{segment}_open", f"{segment}_close")
    return hours_payload(closed, params.get(fields[0]), params.get(fields[1]), fields, partial_hours)


@dataclass(frozen=True)
class RuleDefinition:
    """A validated exception rule ready for expansion."""

    rule_type: str
    spec: RuleSpec
    effective_from_date: date
    effective_to_date: Optional[date] = None
    hours: HoursPayload = field(default_factory=HoursPayload)
    name: str = ""
    exception_id: Optional[str] = None
    site_id: Optional[str] = None
    retired_on: Optional[date] = None
    created_at: Optional[datetime] = None

    @property
    def is_recurring(self) -> bool:
        return self.rule_type != SINGLE_DATE

    @property
    def last_date(self) -> Optional[date]:
        """Last date the rule may apply on, or None when open-ended."""
        last = self.effective_to_date
        if self.retired_on is not None:
            retired_last = self.retired_on - timedelta(days=1)
            last = retired_last if last is None else min(last, retired_last)
        return last


def build_rule_definition(params: Mapping[str, Any], *, partial_hours: bool = False) -> RuleDefinition:
    """Validate a full rule payload (common fields plus type parameters)."""
    rule_type = params.get("rule_type")
    if not rule_type:
        raise ValidationError("rule_type is required", field="rule_type")
    if not params.get("effective_from_date"):
        raise ValidationError("effective_from_date is required", field="effective_from_date")
    effective_from = parse_date(params["effective_from_date"], "effective_from_date")
    effective_to = None
    if params.get("effective_to_date"):
        effective_to = parse_date(params["effective_to_date"], "effective_to_date")
    if rule_type == DATE_RANGE_DAILY and effective_to is None:
        raise ValidationError("effective_to_date is required for date_range_daily", field="effective_to_date")
    if effective_to is not None and effective_to < effective_from:
        raise ValidationError("effective_to_date must not be before effective_from_date", field="effective_to_date")

    spec = build_rule_spec(rule_type, params, partial_hours=partial_hours)
    if isinstance(spec, SingleDateRule) and effective_to is not None and effective_to < spec.date:
        raise ValidationError("effective_to_date must not be before date", field="effective_to_date")

    hours = HoursPayload()
    if rule_type != DATE_RANGE_DAILY:
        hours = hours_payload(
            params.get("is_closed"), params.get("open_time"), params.get("close_time"), partial_hours=partial_hours
        )
    return RuleDefinition(
        rule_type=rule_type,
        spec=spec,
        effective_from_date=effective_from,
        effective_to_date=effective_to,
        hours=hours,
        name=str(params.get("name") or ""),
        exception_id=params.get("exception_id"),
        site_id=params.get("site_id"),
        retired_on=params.get("retired_on"),
        created_at=params.get("created_at"),
    )


# ---------------------------------------------------------------------------
# Occurrences
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Occurrence:
    resolved_date: date
    is_closed: bool
    open_time: Optional[str]
    close_time: Optional[str]
    name: str = ""
    exception_id: Optional[str] = None
    occurrence_id: Optional[str] = None
    rule_type: Optional[str] = None
    is_recurring: bool = False
    # start | middle | end for date_range_daily members
    segment: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def day_of_week(self) -> str:
        return weekday_name(self.resolved_date)

    @property
    def is_materialized(self) -> bool:
        return self.occurrence_id is not None


def nth_weekday_of_month(year: int, month: int, weekday: str, nth: int) -> Optional[date]:
    """Return the ``nth`` ``weekday`` of the month, or None if it does not exist.

    ``nth = -1`` selects the last such weekday.
    """
    target = WEEKDAYS.index(weekday)
    days_in_month = calendar.monthrange(year, month)[1]
    if nth == LAST:
        last = date(year, month, days_in_month)
        return last - timedelta(days=(last.weekday() - target) % 7)
    first = date(year, month, 1)
    day = 1 + (target - first.weekday()) % 7 + (nth - 1) * 7
    if day > days_in_month:
        return None
    return date(year, month, day)


def _add_months(start: date, months: int) -> Optional[date]:
    index = start.month - 1 + months
    year = start.year + index // 12
    month = index % 12 + 1
    if start.day > calendar.monthrange(year, month)[1]:
        return None
    return date(year, month, start.day)


def _expand_single(spec: SingleDateRule, lo: date, hi: date) -> Iterator[date]:
    if lo <= spec.date <= hi:
        yield spec.date


def _expand_fixed_yearly(spec: FixedYearlyRule, lo: date, hi: date) -> Iterator[date]:
    for year in range(lo.year, hi.year + 1):
        try:
            candidate = date(year, spec.month, spec.day)
        except ValueError:
            # Feb 29 outside leap years
            continue
        if lo <= candidate <= hi:
            yield candidate


def _expand_nth_weekday(spec: NthWeekdayRule, lo: date, hi: date) -> Iterator[date]:
    for year in range(lo.year, hi.year + 1):
        candidate = nth_weekday_of_month(year, spec.month, spec.weekday, spec.nth)
        if candidate is not None and lo <= candidate <= hi:
            yield candidate


def _expand_weekly_days(spec: WeeklyDaysRule, lo: date, hi: date) -> Iterator[date]:
    targets = {WEEKDAYS.index(d) for d in spec.days}
    current = lo
    while current <= hi:
        if current.weekday() in targets:
            yield current
        current += timedelta(days=1)


def _expand_interval(spec: IntervalRule, lo: date, hi: date) -> Iterator[date]:
    start = spec.start_date
    if spec.unit == "month":
        months_to_lo = (lo.year - start.year) * 12 + (lo.month - start.month)
        k = max(0, months_to_lo // spec.interval)
        while True:
            offset = k * spec.interval
            month_index = start.month - 1 + offset
            if date(start.year + month_index // 12, month_index % 12 + 1, 1) > hi:
                return
            candidate = _add_months(start, offset)
            if candidate is not None and lo <= candidate <= hi:
                yield candidate
            k += 1
    step = spec.interval * (7 if spec.unit == "week" else 1)
    k = 0
    if lo > start:
        k = -(-(lo - start).days // step)
    candidate = start + timedelta(days=k * step)
    while candidate <= hi:
        yield candidate
        candidate += timedelta(days=step)


_EXPANDERS = {
    SingleDateRule: _expand_single,
    FixedYearlyRule: _expand_fixed_yearly,
    NthWeekdayRule: _expand_nth_weekday,
    WeeklyDaysRule: _expand_weekly_days,
    IntervalRule: _expand_interval,
}


def _range_occurrences(rule: RuleDefinition, lo: date, hi: date) -> Iterator[Occurrence]:
    spec = rule.spec
    first = rule.effective_from_date
    last = rule.effective_to_date
    current = lo
    while current <= hi:
        if first == last:
            profile = HoursPayload(
                open_time=spec.start_day.open_time or spec.end_day.open_time,
                close_time=spec.end_day.close_time or spec.start_day.close_time,
            )
            segment = "start"
        elif current == first:
            profile, segment = spec.start_day, "start"
        elif current == last:
            profile, segment = spec.end_day, "end"
        else:
            profile, segment = spec.middle_days, "middle"
        yield _occurrence(rule, current, profile, segment)
        current += timedelta(days=1)


def _occurrence(rule: RuleDefinition, resolved: date, hours: HoursPayload, segment: Optional[str] = None) -> Occurrence:
    return Occurrence(
        resolved_date=resolved,
        is_closed=hours.is_closed,
        open_time=hours.open_time,
        close_time=hours.close_time,
        name=rule.name,
        exception_id=rule.exception_id,
        rule_type=rule.rule_type,
        is_recurring=rule.is_recurring,
        segment=segment,
        created_at=rule.created_at,
    )


def expand_between(rule: RuleDefinition, start: date, end: date) -> list[Occurrence]:
    """Expand ``rule`` into occurrences dated within ``[start, end]``.

    The requested range is clipped to the rule's effective window
    (``effective_from_date`` through ``effective_to_date`` and the day
    before ``retired_on``). Results are sorted by date.
    """
    lo = max(start, rule.effective_from_date)
    hi = end
    if rule.last_date is not None:
        hi = min(hi, rule.last_date)
    if lo > hi:
        return []
    if isinstance(rule.spec, DateRangeDailyRule):
        return list(_range_occurrences(rule, lo, hi))
    expander = _EXPANDERS[type(rule.spec)]
    return [_occurrence(rule, d, rule.hours) for d in sorted(set(expander(rule.spec, lo, hi)))]


def default_years(today: Optional[date] = None, span: int = 1) -> list[int]:
    """Candidate years ``{Y - span, ..., Y + span}`` around ``today``."""
    today = today or date.today()
    return list(range(today.year - span, today.year + span + 1))


def expand_rule(rule: RuleDefinition, years: Optional[Iterable[int]] = None, *, today: Optional[date] = None) -> list[Occurrence]:
    """Expand ``rule`` for a set of candidate years.

    ``years`` defaults to the previous, current and next calendar year.
    Deterministic: the same rule and year set always give the same list.
    """
    year_set = set(years) if years is not None else set(default_years(today))
    if not year_set:
        return []
    start = date(min(year_set), 1, 1)
    end = date(max(year_set), 12, 31)
    return [occ for occ in expand_between(rule, start, end) if occ.resolved_date.year in year_set]
