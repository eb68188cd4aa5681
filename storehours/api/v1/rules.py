"""
Exception rule APIs.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...core.auth import UserContext, actor_for, get_current_user
from ...core.db import get_db
from ...schemas.exception_rule import RuleCreate, RuleOut, RuleUpdate
from ...services.rules import create_rule, delete_rule, list_rules, update_rule


router = APIRouter(prefix="/api/v1/store-hours", tags=["store-hours"])


def _to_out(rule) -> dict:
    return RuleOut.model_validate(rule).model_dump()


@router.get("/rules")
def get_rules(
    site_id: Optional[str] = Query(None),
    include_retired: bool = Query(False),
    db: Session = Depends(get_db),
) -> dict:
    rules = list_rules(db, site_id, include_retired=include_retired)
    return {"items": [_to_out(r) for r in rules], "total": len(rules)}


@router.post("/rules", status_code=201)
def post_rule(
    payload: RuleCreate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    rule = create_rule(db, payload.model_dump(exclude_unset=True), changed_by=actor_for(user))
    return _to_out(rule)


@router.put("/rules/{exception_id}")
def put_rule(
    exception_id: str,
    payload: RuleUpdate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    rule = update_rule(db, exception_id, payload.model_dump(exclude_unset=True), changed_by=actor_for(user))
    return _to_out(rule)


@router.delete("/rules/{exception_id}")
def remove_rule(
    exception_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    rule = delete_rule(db, exception_id, changed_by=actor_for(user))
    return {"status": "retired", "exception_id": rule.id, "retired_on": rule.retired_on}
