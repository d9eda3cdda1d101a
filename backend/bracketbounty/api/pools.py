from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bracketbounty.api.errors import to_http_exception
from bracketbounty.db import get_db
from bracketbounty.domain.errors import ResolutionError
from bracketbounty.services.audit import list_audit_entries
from bracketbounty.services.collaborators import get_pool
from bracketbounty.services.ledger import OwnershipLedger

router = APIRouter(tags=["pools"])


@router.get("/pools/{pool_id}/ownership")
def pool_ownership(
    pool_id: int,
    member_id: int | None = Query(None),
    db: Session = Depends(get_db),
) -> dict[str, object]:
    try:
        get_pool(db, pool_id)
    except ResolutionError as exc:
        raise to_http_exception(exc) from exc

    ledger = OwnershipLedger(db, pool_id)
    records = ledger.teams_of(member_id) if member_id is not None else ledger.all_records()
    return {
        "pool_id": pool_id,
        "ownership": [
            {
                "team_code": record.team_code,
                "member_id": record.member_id,
                "acquired_via": record.acquired_via,
                "from_matchup_id": record.from_matchup_id,
                "acquired_at": record.acquired_at,
            }
            for record in records
        ],
        "eliminated_teams": ledger.eliminated_teams() if member_id is None else [],
    }


@router.get("/pools/{pool_id}/audit")
def pool_audit(
    pool_id: int,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
) -> list[dict[str, object]]:
    try:
        get_pool(db, pool_id)
    except ResolutionError as exc:
        raise to_http_exception(exc) from exc
    return list_audit_entries(db, pool_id, limit=limit)
