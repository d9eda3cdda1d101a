from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from bracketbounty.api.errors import to_http_exception
from bracketbounty.db import get_db
from bracketbounty.domain.errors import ResolutionError
from bracketbounty.services.batch import re_resolve_event, resolve_event

router = APIRouter(tags=["events"])


class ResolveEventRequest(BaseModel):
    home_score: int = Field(..., ge=0)
    away_score: int = Field(..., ge=0)
    note: str | None = None


@router.post("/events/{event_id}/resolve")
def resolve_event_matchups(
    event_id: int,
    body: ResolveEventRequest,
    db: Session = Depends(get_db),
) -> dict[str, object]:
    try:
        return resolve_event(db, event_id, body.home_score, body.away_score, note=body.note)
    except (ResolutionError, ValueError) as exc:
        raise to_http_exception(exc) from exc


@router.post("/events/{event_id}/re-resolve")
def re_resolve_event_matchups(event_id: int, db: Session = Depends(get_db)) -> dict[str, object]:
    try:
        return re_resolve_event(db, event_id)
    except (ResolutionError, ValueError) as exc:
        raise to_http_exception(exc) from exc
