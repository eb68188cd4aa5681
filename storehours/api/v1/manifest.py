"""
Resolved schedule APIs: raw manifest, past view and future view.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...core.db import get_db
from ...core.errors import ValidationError
from ...services.views import future_view, load_manifest, past_view


router = APIRouter(prefix="/api/v1/store-hours", tags=["store-hours"])


def _items(rows) -> dict:
    return {"items": [row.to_dict() for row in rows], "total": len(rows)}


@router.get("/manifest")
def get_manifest(
    site_id: Optional[str] = Query(None),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: Session = Depends(get_db),
) -> dict:
    if start is None or end is None:
        raise ValidationError("start and end are required", field="start" if start is None else "end")
    return _items(load_manifest(db, site_id, start, end))


@router.get("/past")
def get_past(site_id: Optional[str] = Query(None), db: Session = Depends(get_db)) -> dict:
    return _items(past_view(db, site_id))


@router.get("/future")
def get_future(
    site_id: Optional[str] = Query(None),
    end: Optional[date] = Query(None),
    db: Session = Depends(get_db),
) -> dict:
    return _items(future_view(db, site_id, end=end))
