from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from bracketbounty.domain.enums import MatchupState, ResultType, ScoringRule
from bracketbounty.domain.errors import ConcurrentResolutionError, MatchupNotFoundError
from bracketbounty.models import Matchup


@dataclass(frozen=True)
class MatchupDecision:
    state: MatchupState
    winner_member_id: int | None
    decided_by: ScoringRule | None
    result_type: ResultType | None
    home_member_id: int | None
    away_member_id: int | None


def load_matchup(session: Session, matchup_id: int, *, lock: bool = False) -> Matchup:
    stmt = select(Matchup).where(Matchup.id == matchup_id)
    if lock:
        # Row lock on dialects that support it; SQLite ignores FOR UPDATE.
        # An instance already in the session is overwritten with the locked row.
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    matchup = session.execute(stmt).scalars().first()
    if matchup is None:
        raise MatchupNotFoundError(f"matchup {matchup_id} not found", matchup_id=matchup_id)
    return matchup


def claim_matchup(session: Session, matchup: Matchup, expected_states: set[MatchupState]) -> None:
    """Take the per-matchup guard for the current transaction.

    The conditional update only succeeds while the row is still in one of the
    expected states at the version this pass read; a concurrent pass on the same
    matchup either blocks on the row lock or finds the version moved.
    """
    seen_version = matchup.version
    result = session.execute(
        update(Matchup)
        .where(
            Matchup.id == matchup.id,
            Matchup.version == seen_version,
            Matchup.state.in_([state.value for state in expected_states]),
        )
        .values(version=seen_version + 1)
        .execution_options(synchronize_session=False)
    )
    if (result.rowcount or 0) != 1:
        raise ConcurrentResolutionError(
            f"matchup {matchup.id} changed while this pass was starting (expected version {seen_version})",
            matchup_id=matchup.id,
            event_id=matchup.event_id,
        )
    set_committed_value(matchup, "version", seen_version + 1)


def set_matchup_resolution(session: Session, matchup: Matchup, decision: MatchupDecision, note: str | None) -> Matchup:
    matchup.state = decision.state.value
    matchup.winner_member_id = decision.winner_member_id
    matchup.decided_by = decision.decided_by.value if decision.decided_by is not None else None
    matchup.result_type = decision.result_type.value if decision.result_type is not None else None
    matchup.decided_at = datetime.now(timezone.utc)
    matchup.commissioner_note = note
    matchup.home_member_id = decision.home_member_id
    matchup.away_member_id = decision.away_member_id
    session.add(matchup)
    session.flush()
    return matchup


def matchups_for_event(session: Session, event_id: int, states: set[MatchupState], limit: int) -> list[Matchup]:
    stmt = (
        select(Matchup)
        .where(Matchup.event_id == event_id, Matchup.state.in_([state.value for state in states]))
        .order_by(Matchup.pool_id.asc(), Matchup.id.asc())
        .limit(limit)
    )
    return list(session.execute(stmt).scalars().all())


def matchup_to_dict(matchup: Matchup) -> dict[str, object]:
    return {
        "id": matchup.id,
        "pool_id": matchup.pool_id,
        "round_id": matchup.round_id,
        "event_id": matchup.event_id,
        "state": matchup.state,
        "winner_member_id": matchup.winner_member_id,
        "decided_by": matchup.decided_by,
        "result_type": matchup.result_type,
        "decided_at": matchup.decided_at,
        "commissioner_note": matchup.commissioner_note,
        "home_member_id": matchup.home_member_id,
        "away_member_id": matchup.away_member_id,
    }
