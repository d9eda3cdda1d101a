from __future__ import annotations

import logging

from sqlalchemy import delete, desc, select
from sqlalchemy.orm import Session

from bracketbounty.domain.audit_payloads import (
    MatchupOverriddenPayload,
    MatchupResolvedPayload,
    dump_payload,
    parse_payload,
)
from bracketbounty.domain.enums import ResultType
from bracketbounty.models import AuditLog
from bracketbounty.services.collaborators import member_names, team_names

logger = logging.getLogger(__name__)


def append_audit_entry(
    session: Session,
    pool_id: int,
    payload: MatchupResolvedPayload | MatchupOverriddenPayload,
    actor_user_id: str | None = None,
) -> AuditLog:
    entry = AuditLog(
        pool_id=pool_id,
        matchup_id=payload.matchup_id,
        action_type=payload.action_type,
        payload=dump_payload(payload),
        actor_user_id=actor_user_id,
    )
    session.add(entry)
    session.flush()
    return entry


def load_audit_entries_for_matchup(
    session: Session, matchup_id: int
) -> list[tuple[AuditLog, MatchupResolvedPayload | MatchupOverriddenPayload]]:
    rows = (
        session.execute(select(AuditLog).where(AuditLog.matchup_id == matchup_id).order_by(AuditLog.id.asc()))
        .scalars()
        .all()
    )
    return [(row, parse_payload(row.action_type, row.payload)) for row in rows]


def delete_audit_entries_for_matchup(session: Session, matchup_id: int) -> int:
    result = session.execute(delete(AuditLog).where(AuditLog.matchup_id == matchup_id))
    session.flush()
    return result.rowcount or 0


def _spread_label(value: float | None) -> str:
    if value is None:
        return ""
    if value > 0:
        return f" (+{value:g})"
    return f" ({value:g})"


def _name(member_map: dict[int, str], member_id: int | None, missing: str) -> str:
    if member_id is None:
        return missing
    return member_map.get(member_id, "Unknown")


def _team(team_map: dict[str, str], code: str | None, fallback: str) -> str:
    if code is None:
        return fallback
    return team_map.get(code, code)


def describe_entry(
    action_type: str,
    payload: MatchupResolvedPayload | MatchupOverriddenPayload | None,
    member_map: dict[int, str],
    team_map: dict[str, str] | None = None,
) -> str:
    if payload is None:
        return f"Event: {action_type}"
    teams = team_map or {}

    if isinstance(payload, MatchupOverriddenPayload):
        winner = _name(member_map, payload.winner_member_id, "No owner")
        suffix = f" Note: {payload.note}" if payload.note else ""
        return f"Commissioner decided the matchup. {winner} moves on.{suffix}"

    score = ""
    if payload.home_score is not None and payload.away_score is not None:
        score = f" ({payload.home_score}-{payload.away_score})"

    if payload.result_type is ResultType.ADVANCES:
        winner = _name(member_map, payload.winner_member_id, "No owner")
        team = _team(teams, payload.winner_team, "Team")
        spread = ""
        if payload.spread is not None and payload.winner_team is not None:
            own = payload.spread.home_spread if payload.winner_team == payload.home_team else payload.spread.away_spread
            spread = _spread_label(own)
        return f"{team}{spread} covered and advances. {winner} moves on."

    if payload.result_type is ResultType.UPSET:
        winner = _name(member_map, payload.winner_member_id, "No owner")
        team = _team(teams, payload.underdog_team or payload.winner_team, "Team")
        return f"{team}{_spread_label(payload.underdog_spread)} wins outright and advances! {winner} moves on."

    if payload.result_type is ResultType.CAPTURED:
        capturer = _name(member_map, payload.capturer_id or payload.winner_member_id, "Unknown")
        captured_from = _name(member_map, payload.captured_from_id or payload.loser_member_id, "their opponent")
        underdog = _team(teams, payload.underdog_team, "Underdog")
        favorite = _team(teams, payload.favorite_team, "Favorite")
        return (
            f"{underdog}{_spread_label(payload.underdog_spread)} loses but covers. "
            f"{capturer} captures {favorite} from {captured_from}."
        )

    if payload.result_type is ResultType.PUSH:
        return f"Push against the spread{score}. Awaiting commissioner decision."

    return f"Matchup resolved{score}"


def list_audit_entries(session: Session, pool_id: int, limit: int = 100) -> list[dict[str, object]]:
    rows = (
        session.execute(
            select(AuditLog)
            .where(AuditLog.pool_id == pool_id)
            .order_by(desc(AuditLog.created_at), desc(AuditLog.id))
            .limit(limit)
        )
        .scalars()
        .all()
    )
    members = member_names(session, pool_id)
    codes: set[str] = set()
    parsed = []
    for row in rows:
        try:
            payload = parse_payload(row.action_type, row.payload)
        except ValueError:
            logger.warning("Audit entry %s has an unreadable %s payload", row.id, row.action_type)
            payload = None
        if payload is not None:
            codes.update(code for code in (payload.home_team, payload.away_team) if code)
        parsed.append((row, payload))
    teams = team_names(session, sorted(codes))

    return [
        {
            "id": row.id,
            "pool_id": row.pool_id,
            "matchup_id": row.matchup_id,
            "action_type": row.action_type,
            "actor_name": row.actor_user_id or "System",
            "description": describe_entry(row.action_type, payload, members, teams),
            "payload": row.payload,
            "created_at": row.created_at,
        }
        for row, payload in parsed
    ]
