"""
Day-by-day manifest resolution.

The manifest merges a site's weekly base hours with every exception that
lands in the requested range and returns exactly one row per calendar
date. It is computed on every read and never persisted, so a rule edit
shows up on the next request.

Precedence when several exceptions land on the same date: materialized
occurrence rows beat rule expansions, and within each group the most
recently created entry wins (ties broken by the higher id).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Mapping, Optional, Sequence

from ..core.config import settings
from ..core.errors import ValidationError
from .recurrence import Occurrence, RuleDefinition, expand_between, weekday_name


logger = logging.getLogger("store_hours.manifest")

SOURCE_BASE = "base_hours"
SOURCE_RULE = "rule"
SOURCE_OCCURRENCE = "occurrence"


@dataclass(frozen=True)
class BaseDay:
    day_of_week: str
    open_time: Optional[str]
    close_time: Optional[str]
    is_closed: bool
    store_hours_id: Optional[str] = None


@dataclass(frozen=True)
class ManifestRow:
    site_id: str
    manifest_date: date
    day_of_week: str
    open_time: Optional[str]
    close_time: Optional[str]
    is_closed: bool
    source: str = SOURCE_BASE
    exception_id: Optional[str] = None
    occurrence_id: Optional[str] = None
    name: Optional[str] = None
    rule_type: Optional[str] = None

    @property
    def has_exception(self) -> bool:
        return self.source != SOURCE_BASE

    def to_dict(self) -> dict:
        return {
            "site_id": self.site_id,
            "manifest_date": self.manifest_date.isoformat(),
            "day_of_week": self.day_of_week,
            "open_time": self.open_time,
            "close_time": self.close_time,
            "is_closed": self.is_closed,
            "source": self.source,
            "has_exception": self.has_exception,
            "exception_id": self.exception_id,
            "occurrence_id": self.occurrence_id,
            "name": self.name,
            "rule_type": self.rule_type,
        }


def _naive_utc(value: Optional[datetime]) -> datetime:
    if value is None:
        return datetime.min
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def precedence_key(occ: Occurrence) -> tuple:
    return (occ.is_materialized, _naive_utc(occ.created_at), occ.occurrence_id or occ.exception_id or "")


def pick_winner(candidates: Sequence[Occurrence]) -> Occurrence:
    return max(candidates, key=precedence_key)


def _closed_base(day_of_week: str) -> BaseDay:
    return BaseDay(day_of_week=day_of_week, open_time=None, close_time=None, is_closed=True)


def resolve_day(site_id: str, day: date, base: BaseDay, winner: Optional[Occurrence]) -> ManifestRow:
    if winner is None:
        return ManifestRow(
            site_id=site_id,
            manifest_date=day,
            day_of_week=base.day_of_week,
            open_time=None if base.is_closed else base.open_time,
            close_time=None if base.is_closed else base.close_time,
            is_closed=base.is_closed,
        )
    source = SOURCE_OCCURRENCE if winner.is_materialized else SOURCE_RULE
    if winner.is_closed:
        open_time, close_time, is_closed = None, None, True
    elif winner.open_time is None and winner.close_time is None:
        open_time, close_time, is_closed = base.open_time, base.close_time, base.is_closed
    elif winner.open_time is not None and winner.close_time is not None:
        open_time, close_time, is_closed = winner.open_time, winner.close_time, False
    elif base.is_closed:
        # A lone time cannot be completed from a closed base day.
        open_time, close_time, is_closed = None, None, True
    else:
        open_time = winner.open_time if winner.open_time is not None else base.open_time
        close_time = winner.close_time if winner.close_time is not None else base.close_time
        is_closed = False
    return ManifestRow(
        site_id=site_id,
        manifest_date=day,
        day_of_week=base.day_of_week,
        open_time=open_time,
        close_time=close_time,
        is_closed=is_closed,
        source=source,
        exception_id=winner.exception_id,
        occurrence_id=winner.occurrence_id,
        name=winner.name or None,
        rule_type=winner.rule_type,
    )


def build_manifest(
    site_id: str,
    base_hours: Mapping[str, BaseDay],
    rules: Iterable[RuleDefinition],
    overrides: Iterable[Occurrence],
    start: date,
    end: date,
) -> list[ManifestRow]:
    """Merge base hours with rule expansions and per-date overrides.

    Returns one row per date in ``[start, end]``, ascending. Weekdays with
    no base hours row resolve to closed.
    """
    if end < start:
        raise ValidationError("end must not be before start", field="end")
    by_date: dict[date, list[Occurrence]] = {}
    for rule in rules:
        for occ in expand_between(rule, start, end):
            by_date.setdefault(occ.resolved_date, []).append(occ)
    for occ in overrides:
        if start <= occ.resolved_date <= end:
            by_date.setdefault(occ.resolved_date, []).append(occ)

    rows: list[ManifestRow] = []
    current = start
    while current <= end:
        day_name = weekday_name(current)
        base = base_hours.get(day_name) or _closed_base(day_name)
        candidates = by_date.get(current)
        winner = pick_winner(candidates) if candidates else None
        if candidates and len(candidates) > 1:
            logger.debug(
                "Overlapping exceptions site=%s date=%s count=%s winner=%s",
                site_id,
                current,
                len(candidates),
                winner.occurrence_id or winner.exception_id,
            )
        rows.append(resolve_day(site_id, current, base, winner))
        current += timedelta(days=1)
    return rows


def check_range(start: date, end: date) -> None:
    if end < start:
        raise ValidationError("end must not be before start", field="end")
    if (end - start).days + 1 > settings.manifest_max_days:
        raise ValidationError(f"date range exceeds {settings.manifest_max_days} days", field="end")

