"""
Weekly template APIs.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...core.auth import UserContext, actor_for, get_current_user
from ...core.db import get_db
from ...schemas.store_hours import TemplateApply, TemplateCreate, TemplateOut
from ...services.store_hours import apply_template, create_template, delete_template, list_templates


router = APIRouter(prefix="/api/v1/store-hours", tags=["store-hours"])


@router.get("/templates")
def get_templates(org_id: Optional[str] = Query(None), db: Session = Depends(get_db)) -> dict:
    rows = list_templates(db, org_id)
    return {"items": [TemplateOut.model_validate(r).model_dump() for r in rows], "total": len(rows)}


@router.post("/templates", status_code=201)
def post_template(
    payload: TemplateCreate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    template = create_template(
        db,
        org_id=payload.org_id,
        template_name=payload.template_name,
        days={day: hours.model_dump() for day, hours in payload.days.items()},
        is_global=payload.is_global,
        created_by=actor_for(user),
    )
    return TemplateOut.model_validate(template).model_dump()


@router.delete("/templates/{template_id}")
def remove_template(
    template_id: str,
    org_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
) -> dict:
    delete_template(db, template_id, org_id)
    return {"status": "deleted", "template_id": template_id}


@router.post("/templates/{template_id}/apply")
def post_apply_template(
    template_id: str,
    payload: TemplateApply,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    touched = apply_template(
        db,
        template_id,
        site_id=payload.site_id,
        org_id=payload.org_id,
        changed_by=actor_for(user),
    )
    return {"status": "ok", "updated": touched}
