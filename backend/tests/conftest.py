from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from bracketbounty.config import get_settings
from bracketbounty.domain.enums import AcquiredVia, EventStatus, PoolMode, ScoringRule
from bracketbounty.models import AuditLog, Base, Event, Line, Matchup, Ownership, Pool, PoolMember, PoolTeam, Team


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def session() -> Iterator[Session]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    with Session(engine) as db:
        yield db
    engine.dispose()


class Bracket:
    """Seeds pools, teams, events and matchups for a test and commits them."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def pool(self, mode: PoolMode = PoolMode.CAPTURE, scoring_rule: ScoringRule = ScoringRule.ATS) -> Pool:
        pool = Pool(name=f"{mode.value} pool", mode=mode.value, scoring_rule=scoring_rule.value)
        self.session.add(pool)
        self.session.flush()
        return pool

    def member(self, pool: Pool, name: str) -> PoolMember:
        member = PoolMember(pool_id=pool.id, display_name=name)
        self.session.add(member)
        self.session.flush()
        return member

    def team(self, pool: Pool, code: str, name: str | None = None, owner: PoolMember | None = None) -> str:
        if self.session.get(Team, code) is None:
            self.session.add(Team(code=code, name=name or code, abbreviation=code[:8]))
        self.session.add(PoolTeam(pool_id=pool.id, team_code=code))
        if owner is not None:
            self.session.add(
                Ownership(pool_id=pool.id, member_id=owner.id, team_code=code, acquired_via=AcquiredVia.INITIAL.value)
            )
        self.session.flush()
        return code

    def event(
        self,
        home_team: str,
        away_team: str,
        *,
        home_spread: str | None = None,
        away_spread: str | None = None,
        locked: bool = True,
        final: tuple[int, int] | None = None,
    ) -> Event:
        event = Event(
            competition_key="ncaab_2026",
            round_key="r64",
            home_team=home_team,
            away_team=away_team,
            start_time=datetime(2026, 3, 19, 16, 0, tzinfo=timezone.utc),
        )
        if final is not None:
            event.status = EventStatus.FINAL.value
            event.final_home_score, event.final_away_score = final
        self.session.add(event)
        self.session.flush()
        if home_spread is not None or away_spread is not None:
            self.session.add(
                Line(
                    event_id=event.id,
                    home_spread=Decimal(home_spread) if home_spread is not None else None,
                    away_spread=Decimal(away_spread) if away_spread is not None else None,
                    locked_at=datetime(2026, 3, 19, 15, 0, tzinfo=timezone.utc) if locked else None,
                )
            )
            self.session.flush()
        return event

    def matchup(self, pool: Pool, event: Event | None) -> Matchup:
        matchup = Matchup(pool_id=pool.id, event_id=event.id if event is not None else None)
        self.session.add(matchup)
        self.session.flush()
        return matchup

    def commit(self) -> None:
        self.session.commit()

    def owners(self, pool: Pool) -> dict[str, int]:
        rows = self.session.execute(
            select(Ownership.team_code, Ownership.member_id).where(Ownership.pool_id == pool.id)
        ).all()
        return {code: member_id for code, member_id in rows}

    def ownership_row(self, pool: Pool, code: str) -> Ownership | None:
        return (
            self.session.execute(select(Ownership).where(Ownership.pool_id == pool.id, Ownership.team_code == code))
            .scalars()
            .first()
        )

    def audit_rows(self, matchup_id: int) -> list[AuditLog]:
        stmt = select(AuditLog).where(AuditLog.matchup_id == matchup_id).order_by(AuditLog.id.asc())
        return list(self.session.execute(stmt).scalars().all())


@pytest.fixture
def bracket(session: Session) -> Bracket:
    return Bracket(session)
