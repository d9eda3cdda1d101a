from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from bracketbounty.api.errors import to_http_exception
from bracketbounty.db import get_db
from bracketbounty.domain.errors import ResolutionError
from bracketbounty.services.correction import re_resolve_matchup
from bracketbounty.services.matchups import load_matchup, matchup_to_dict
from bracketbounty.services.resolution import resolve_matchup

router = APIRouter(tags=["matchups"])


class ResolveMatchupRequest(BaseModel):
    home_score: int | None = Field(None, ge=0)
    away_score: int | None = Field(None, ge=0)
    manual_winner_member_id: int | None = None
    note: str | None = None


class ReResolveMatchupRequest(BaseModel):
    home_score: int | None = Field(None, ge=0)
    away_score: int | None = Field(None, ge=0)
    note: str | None = None


@router.post("/matchups/{matchup_id}/resolve")
def resolve(
    matchup_id: int,
    body: ResolveMatchupRequest,
    db: Session = Depends(get_db),
) -> dict[str, object]:
    try:
        result = resolve_matchup(
            db,
            matchup_id,
            body.home_score,
            body.away_score,
            manual_winner_member_id=body.manual_winner_member_id,
            note=body.note,
        )
    except (ResolutionError, ValueError) as exc:
        raise to_http_exception(exc) from exc
    return result.to_dict()


@router.post("/matchups/{matchup_id}/re-resolve")
def re_resolve(
    matchup_id: int,
    body: ReResolveMatchupRequest,
    db: Session = Depends(get_db),
) -> dict[str, object]:
    try:
        result = re_resolve_matchup(db, matchup_id, body.home_score, body.away_score, note=body.note)
    except (ResolutionError, ValueError) as exc:
        raise to_http_exception(exc) from exc
    return result.to_dict()


@router.get("/matchups/{matchup_id}")
def get_matchup(matchup_id: int, db: Session = Depends(get_db)) -> dict[str, object]:
    try:
        return matchup_to_dict(load_matchup(db, matchup_id))
    except ResolutionError as exc:
        raise to_http_exception(exc) from exc
