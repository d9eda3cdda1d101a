from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from bracketbounty.domain.enums import AcquiredVia, EventStatus, MatchupState


class Base(DeclarativeBase):
    pass


class Pool(Base):
    __tablename__ = "pools"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    mode: Mapped[str] = mapped_column(String(16), nullable=False)
    scoring_rule: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    members: Mapped[list[PoolMember]] = relationship(back_populates="pool")
    matchups: Mapped[list[Matchup]] = relationship(back_populates="pool")


class PoolMember(Base):
    __tablename__ = "pool_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    pool_id: Mapped[int] = mapped_column(ForeignKey("pools.id"), nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    pool: Mapped[Pool] = relationship(back_populates="members")


class Team(Base):
    __tablename__ = "teams"

    code: Mapped[str] = mapped_column(String(32), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    abbreviation: Mapped[str | None] = mapped_column(String(8), nullable=True)


class PoolTeam(Base):
    __tablename__ = "pool_teams"
    __table_args__ = (UniqueConstraint("pool_id", "team_code", name="uq_pool_team"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    pool_id: Mapped[int] = mapped_column(ForeignKey("pools.id"), nullable=False, index=True)
    team_code: Mapped[str] = mapped_column(String(32), nullable=False)
    seed: Mapped[int | None] = mapped_column(Integer, nullable=True)


class PoolRound(Base):
    __tablename__ = "pool_rounds"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    pool_id: Mapped[int] = mapped_column(ForeignKey("pools.id"), nullable=False, index=True)
    key: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    competition_key: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    round_key: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    home_team: Mapped[str] = mapped_column(String(32), nullable=False)
    away_team: Mapped[str] = mapped_column(String(32), nullable=False)
    start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=EventStatus.SCHEDULED.value)
    final_home_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    final_away_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    winner_team_code: Mapped[str | None] = mapped_column(String(32), nullable=True)

    line: Mapped[Line | None] = relationship(back_populates="event", uselist=False)


class Line(Base):
    __tablename__ = "lines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"), unique=True, nullable=False)
    home_spread: Mapped[Decimal | None] = mapped_column(Numeric(6, 1), nullable=True)
    away_spread: Mapped[Decimal | None] = mapped_column(Numeric(6, 1), nullable=True)
    locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    source: Mapped[str] = mapped_column(String(32), nullable=False, default="manual")
    book: Mapped[str | None] = mapped_column(Text, nullable=True)

    event: Mapped[Event] = relationship(back_populates="line")


class Matchup(Base):
    __tablename__ = "pool_matchups"
    __table_args__ = (
        Index("ix_pool_matchups_event_state", "event_id", "state"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    pool_id: Mapped[int] = mapped_column(ForeignKey("pools.id"), nullable=False, index=True)
    round_id: Mapped[int | None] = mapped_column(ForeignKey("pool_rounds.id"), nullable=True)
    event_id: Mapped[int | None] = mapped_column(ForeignKey("events.id"), nullable=True)
    state: Mapped[str] = mapped_column(String(24), nullable=False, default=MatchupState.UNRESOLVED.value)
    winner_member_id: Mapped[int | None] = mapped_column(ForeignKey("pool_members.id"), nullable=True)
    decided_by: Mapped[str | None] = mapped_column(String(16), nullable=True)
    result_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    commissioner_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    home_member_id: Mapped[int | None] = mapped_column(ForeignKey("pool_members.id"), nullable=True)
    away_member_id: Mapped[int | None] = mapped_column(ForeignKey("pool_members.id"), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    pool: Mapped[Pool] = relationship(back_populates="matchups")
    event: Mapped[Event | None] = relationship()


class Ownership(Base):
    __tablename__ = "ownership"
    __table_args__ = (
        UniqueConstraint("pool_id", "team_code", name="uq_ownership_pool_team"),
        Index("ix_ownership_pool_member", "pool_id", "member_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    pool_id: Mapped[int] = mapped_column(ForeignKey("pools.id"), nullable=False)
    member_id: Mapped[int] = mapped_column(ForeignKey("pool_members.id"), nullable=False)
    team_code: Mapped[str] = mapped_column(String(32), nullable=False)
    acquired_via: Mapped[str] = mapped_column(String(16), nullable=False, default=AcquiredVia.INITIAL.value)
    from_matchup_id: Mapped[int | None] = mapped_column(
        ForeignKey("pool_matchups.id"), nullable=True, index=True
    )
    acquired_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class AuditLog(Base):
    __tablename__ = "audit_log"
    __table_args__ = (
        Index("ix_audit_log_pool_created", "pool_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    pool_id: Mapped[int] = mapped_column(ForeignKey("pools.id"), nullable=False)
    matchup_id: Mapped[int | None] = mapped_column(ForeignKey("pool_matchups.id"), nullable=True, index=True)
    action_type: Mapped[str] = mapped_column(String(32), nullable=False)
    payload: Mapped[dict[str, object]] = mapped_column(JSON, nullable=False)
    actor_user_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
