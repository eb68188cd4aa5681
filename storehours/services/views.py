"""
Read models built on top of the manifest.

``past`` and ``future`` are projections of the same merged manifest;
``occurrences`` lists raw exception occurrences for calendar UIs without
merging them with base hours.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import ValidationError
from .manifest import ManifestRow, build_manifest, check_range
from .occurrences import load_overrides
from .recurrence import Occurrence, RuleDefinition, default_years, expand_rule
from .rules import load_rule_definitions
from .store_hours import load_base_days


logger = logging.getLogger("store_hours.views")


def _require_site(site_id: Optional[str]) -> None:
    if not site_id:
        raise ValidationError("site_id is required", field="site_id")


def load_manifest(db: Session, site_id: str, start: date, end: date) -> list[ManifestRow]:
    """Resolve the manifest for ``[start, end]`` from current storage state."""
    _require_site(site_id)
    check_range(start, end)
    return build_manifest(
        site_id,
        load_base_days(db, site_id),
        load_rule_definitions(db, site_id),
        load_overrides(db, site_id, start=start, end=end),
        start,
        end,
    )


def project_past(rows: Iterable[ManifestRow], today: date, trailing_days: int) -> list[ManifestRow]:
    """Rows dated on or before ``today``, most recent first.

    Rows without an exception are kept only inside the trailing window.
    """
    cutoff = today - timedelta(days=trailing_days)
    kept = [
        row
        for row in rows
        if row.manifest_date <= today and (row.has_exception or row.manifest_date >= cutoff)
    ]
    return sorted(kept, key=lambda row: row.manifest_date, reverse=True)


def project_future(rows: Iterable[ManifestRow], today: date) -> list[ManifestRow]:
    return sorted((row for row in rows if row.manifest_date >= today), key=lambda row: row.manifest_date)


def _occurrence_dict(occ: Occurrence) -> dict:
    return {
        "date": occ.resolved_date.isoformat(),
        "day_of_week": occ.day_of_week,
        "name": occ.name,
        "is_closed": occ.is_closed,
        "open_time": occ.open_time,
        "close_time": occ.close_time,
        "exception_id": occ.exception_id,
        "occurrence_id": occ.occurrence_id,
        "rule_type": occ.rule_type,
        "is_recurring": occ.is_recurring,
        "segment": occ.segment,
    }


def split_occurrences(occurrences: Iterable[Occurrence], today: date) -> dict[str, list[dict]]:
    """Split occurrences into ``past`` (before today) and ``upcoming``.

    A rule expansion is dropped when a materialized row of the same rule
    exists on the same date.
    """
    items = list(occurrences)
    edited = {(occ.exception_id, occ.resolved_date) for occ in items if occ.is_materialized and occ.exception_id}
    past: list[dict] = []
    upcoming: list[dict] = []
    for occ in sorted(items, key=lambda o: (o.resolved_date, o.name or "")):
        if not occ.is_materialized and (occ.exception_id, occ.resolved_date) in edited:
            continue
        (past if occ.resolved_date < today else upcoming).append(_occurrence_dict(occ))
    past.reverse()
    return {"past": past, "upcoming": upcoming}


def expand_rules(rules: Iterable[RuleDefinition], years: list[int]) -> list[Occurrence]:
    expanded: list[Occurrence] = []
    for rule in rules:
        expanded.extend(expand_rule(rule, years))
    return expanded


def past_view(db: Session, site_id: str, *, today: Optional[date] = None) -> list[ManifestRow]:
    today = today or date.today()
    _require_site(site_id)
    start = date(today.year - settings.past_view_lookback_years, 1, 1)
    rows = load_manifest(db, site_id, start, today)
    return project_past(rows, today, settings.past_view_trailing_days)


def future_view(
    db: Session,
    site_id: str,
    *,
    end: Optional[date] = None,
    today: Optional[date] = None,
) -> list[ManifestRow]:
    today = today or date.today()
    _require_site(site_id)
    if end is None:
        end = date(today.year + settings.future_view_horizon_years, 12, 31)
    if end < today:
        raise ValidationError("end must not be before today", field="end")
    limit = today + timedelta(days=settings.manifest_max_days - 1)
    if end > limit:
        raise ValidationError(
            f"end must be on or before {limit.isoformat()}; the future view covers at most "
            f"{settings.manifest_max_days} days (MANIFEST_MAX_DAYS)",
            field="end",
        )
    rows = load_manifest(db, site_id, today, end)
    return project_future(rows, today)


def occurrences_view(db: Session, site_id: str, *, today: Optional[date] = None) -> dict[str, list[dict]]:
    today = today or date.today()
    _require_site(site_id)
    years = default_years(today, settings.occurrence_window_years)
    start, end = date(years[0], 1, 1), date(years[-1], 12, 31)
    occurrences = expand_rules(load_rule_definitions(db, site_id), years)
    occurrences.extend(load_overrides(db, site_id, start=start, end=end))
    result = split_occurrences(occurrences, today)
    logger.debug(
        "Occurrences view site=%s past=%s upcoming=%s", site_id, len(result["past"]), len(result["upcoming"])
    )
    return result
