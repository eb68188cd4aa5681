"""
Weekly base hours APIs.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...core.auth import UserContext, actor_for, get_current_user
from ...core.db import get_db
from ...schemas.store_hours import BaseHoursBatchUpdate, BaseHoursInit, StoreHoursOut
from ...services.store_hours import initialize_base_hours, list_base_hours, update_base_hours_batch


router = APIRouter(prefix="/api/v1/store-hours", tags=["store-hours"])


def _to_out(rows) -> list[dict]:
    return [StoreHoursOut.model_validate(r).model_dump() for r in rows]


@router.get("/base-hours")
def get_base_hours(site_id: Optional[str] = Query(None), db: Session = Depends(get_db)) -> dict:
    rows = list_base_hours(db, site_id)
    return {"items": _to_out(rows), "total": len(rows)}


@router.post("/base-hours/init")
def init_base_hours(
    payload: BaseHoursInit,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    rows = initialize_base_hours(db, payload.site_id, payload.org_id, actor_for(user))
    return {"items": _to_out(rows), "total": len(rows)}


@router.post("/base-hours")
def update_base_hours(
    payload: BaseHoursBatchUpdate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    updated = update_base_hours_batch(
        db,
        payload.site_id,
        payload.org_id,
        [row.model_dump() for row in payload.rows],
        actor_for(user),
    )
    return {"status": "ok", "updated": updated}
