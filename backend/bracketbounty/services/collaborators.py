"""Reads and writes against the schedule, lines and membership tables.

These tables are owned by other services; the resolution core only reads them,
except for writing an event's final score once a matchup is decided.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from bracketbounty.domain.enums import EventStatus
from bracketbounty.domain.errors import EventNotFoundError, PoolNotFoundError
from bracketbounty.domain.types import SpreadSnapshot
from bracketbounty.models import Event, Line, Pool, PoolMember, Team


def get_event(session: Session, event_id: int) -> Event:
    event = session.get(Event, event_id)
    if event is None:
        raise EventNotFoundError(f"event {event_id} not found", event_id=event_id)
    return event


def get_pool(session: Session, pool_id: int) -> Pool:
    pool = session.get(Pool, pool_id)
    if pool is None:
        raise PoolNotFoundError(f"pool {pool_id} not found")
    return pool


def get_locked_spread(session: Session, event_id: int) -> SpreadSnapshot | None:
    line = session.execute(select(Line).where(Line.event_id == event_id)).scalars().first()
    if line is None or line.locked_at is None:
        return None
    if line.home_spread is None or line.away_spread is None:
        return None
    return SpreadSnapshot.of(line.home_spread, line.away_spread)


def final_scores(event: Event) -> tuple[int, int] | None:
    if event.status != EventStatus.FINAL.value:
        return None
    if event.final_home_score is None or event.final_away_score is None:
        return None
    return event.final_home_score, event.final_away_score


def record_final_score(session: Session, event: Event, home_score: int, away_score: int, *, overwrite: bool = False) -> bool:
    """Mark the event final with the given score. Returns True when the row changed."""
    if event.status == EventStatus.FINAL.value and not overwrite:
        return False
    if (
        event.status == EventStatus.FINAL.value
        and event.final_home_score == home_score
        and event.final_away_score == away_score
    ):
        return False

    event.final_home_score = home_score
    event.final_away_score = away_score
    event.status = EventStatus.FINAL.value
    if home_score > away_score:
        event.winner_team_code = event.home_team
    elif away_score > home_score:
        event.winner_team_code = event.away_team
    else:
        event.winner_team_code = None
    session.add(event)
    return True


def is_pool_member(session: Session, pool_id: int, member_id: int) -> bool:
    stmt = select(PoolMember.id).where(PoolMember.pool_id == pool_id, PoolMember.id == member_id)
    return session.execute(stmt).scalar_one_or_none() is not None


def member_names(session: Session, pool_id: int) -> dict[int, str]:
    rows = session.execute(
        select(PoolMember.id, PoolMember.display_name).where(PoolMember.pool_id == pool_id)
    ).all()
    return {member_id: display_name for member_id, display_name in rows}


def team_names(session: Session, codes: list[str] | None = None) -> dict[str, str]:
    stmt = select(Team.code, Team.name)
    if codes is not None:
        if not codes:
            return {}
        stmt = stmt.where(Team.code.in_(codes))
    return {code: name for code, name in session.execute(stmt).all()}
