"""
Change log and comment APIs.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...core.auth import UserContext, actor_for, get_current_user
from ...core.config import settings
from ...core.db import get_db
from ...core.pagination import clamp_limit
from ...schemas.change_log import ChangeLogEntryOut, CommentCreate
from ...services.change_log import add_comment, list_change_log, list_comments, to_entry


router = APIRouter(prefix="/api/v1/store-hours", tags=["store-hours"])


def _items(rows) -> dict:
    entries = [ChangeLogEntryOut(**to_entry(r)).model_dump() for r in rows]
    return {"items": entries, "total": len(entries)}


@router.get("/change-log")
def get_change_log(
    site_id: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
) -> dict:
    limit = clamp_limit(limit or settings.change_log_limit)
    return _items(list_change_log(db, site_id, limit=limit))


@router.get("/comments")
def get_comments(
    site_id: Optional[str] = Query(None),
    event_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
) -> dict:
    return _items(list_comments(db, site_id, event_date=event_date))


@router.post("/comments", status_code=201)
def post_comment(
    payload: CommentCreate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    entry = add_comment(
        db,
        site_id=payload.site_id,
        event_date=payload.date,
        message=payload.message,
        changed_by=actor_for(user),
    )
    return ChangeLogEntryOut(**to_entry(entry)).model_dump()
