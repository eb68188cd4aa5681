"""
Per-date occurrence APIs and the occurrences calendar view.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...core.auth import UserContext, actor_for, get_current_user
from ...core.db import get_db
from ...schemas.occurrence import OccurrenceCreate, OccurrenceOut, OccurrenceUpdate
from ...services.occurrences import create_occurrence, delete_occurrence, update_occurrence
from ...services.views import occurrences_view


router = APIRouter(prefix="/api/v1/store-hours", tags=["store-hours"])


@router.get("/occurrences")
def get_occurrences(site_id: Optional[str] = Query(None), db: Session = Depends(get_db)) -> dict:
    return occurrences_view(db, site_id)


@router.post("/occurrences", status_code=201)
def post_occurrence(
    payload: OccurrenceCreate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    row = create_occurrence(db, payload.model_dump(exclude_unset=True), changed_by=actor_for(user))
    return OccurrenceOut.model_validate(row).model_dump()


@router.patch("/occurrences")
def patch_occurrence(
    payload: OccurrenceUpdate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    row = update_occurrence(db, payload.model_dump(exclude_unset=True), changed_by=actor_for(user))
    return OccurrenceOut.model_validate(row).model_dump()


@router.delete("/occurrences/{occurrence_id}")
def remove_occurrence(
    occurrence_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    delete_occurrence(db, occurrence_id, changed_by=actor_for(user))
    return {"status": "deleted", "occurrence_id": occurrence_id}
