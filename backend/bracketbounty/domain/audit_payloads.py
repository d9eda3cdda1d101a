from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from bracketbounty.domain.enums import AcquiredVia, ResultType, ScoringRule


class SpreadPayload(BaseModel):
    home_spread: float
    away_spread: float
    home_team: str | None = None
    away_team: str | None = None


class OwnershipSnapshot(BaseModel):
    """An ownership row as it stood before a resolution touched it."""

    model_config = ConfigDict(frozen=True)

    team_code: str
    member_id: int
    acquired_via: AcquiredVia
    from_matchup_id: int | None = None


class _MatchupPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    matchup_id: int
    event_id: int | None = None
    home_team: str | None = None
    away_team: str | None = None
    winner_member_id: int | None = None
    loser_member_id: int | None = None
    home_score: int | None = None
    away_score: int | None = None
    prior_ownership: list[OwnershipSnapshot] = Field(default_factory=list)
    re_resolved: bool = False


class MatchupResolvedPayload(_MatchupPayload):
    action_type: Literal["matchup_resolved"] = "matchup_resolved"
    decided_by: ScoringRule
    result_type: ResultType
    spread: SpreadPayload | None = None
    winner_team: str | None = None
    loser_team: str | None = None
    capturer_id: int | None = None
    captured_from_id: int | None = None
    underdog_team: str | None = None
    favorite_team: str | None = None
    underdog_spread: float | None = None
    eliminated_team: str | None = None


class MatchupOverriddenPayload(_MatchupPayload):
    action_type: Literal["matchup_overridden"] = "matchup_overridden"
    note: str | None = None


AuditPayload = Annotated[
    Union[MatchupResolvedPayload, MatchupOverriddenPayload],
    Field(discriminator="action_type"),
]

_payload_adapter: TypeAdapter[MatchupResolvedPayload | MatchupOverriddenPayload] = TypeAdapter(AuditPayload)


def parse_payload(action_type: str, raw: dict[str, object]) -> MatchupResolvedPayload | MatchupOverriddenPayload:
    """Validate a stored payload against the variant named by its row's action_type."""
    data = dict(raw)
    stored = data.setdefault("action_type", action_type)
    if stored != action_type:
        raise ValueError(f"payload tagged {stored!r} stored under action_type {action_type!r}")
    return _payload_adapter.validate_python(data)


def dump_payload(payload: MatchupResolvedPayload | MatchupOverriddenPayload) -> dict[str, object]:
    return payload.model_dump(mode="json")
