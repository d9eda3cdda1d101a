from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from bracketbounty.domain.enums import MatchupState, ResultType, ScoringRule, Side


@dataclass(frozen=True, slots=True)
class SpreadSnapshot:
    home_spread: Decimal
    away_spread: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.home_spread, Decimal) or not isinstance(self.away_spread, Decimal):
            raise ValueError("spreads must be Decimal values")
        if not self.home_spread.is_finite() or not self.away_spread.is_finite():
            raise ValueError("spreads must be finite numbers")

    @classmethod
    def of(cls, home_spread: float | int | str | Decimal, away_spread: float | int | str | Decimal) -> SpreadSnapshot:
        return cls(home_spread=Decimal(str(home_spread)), away_spread=Decimal(str(away_spread)))

    def for_side(self, side: Side) -> Decimal:
        return self.home_spread if side is Side.HOME else self.away_spread

    def to_dict(self) -> dict[str, float]:
        return {"home_spread": float(self.home_spread), "away_spread": float(self.away_spread)}


@dataclass(frozen=True, slots=True)
class ResolutionOutcome:
    winning_side: Side | None
    result_type: ResultType
    covered_side: Side | None
    decided_by: ScoringRule

    @property
    def push(self) -> bool:
        return self.result_type is ResultType.PUSH

    @property
    def losing_side(self) -> Side | None:
        return self.winning_side.opponent if self.winning_side is not None else None


@dataclass
class ResolutionResult:
    matchup_id: int
    pool_id: int
    event_id: int | None
    state: MatchupState
    winner_member_id: int | None
    loser_member_id: int | None
    decided_by: ScoringRule | None
    result_type: ResultType | None
    home_score: int | None
    away_score: int | None
    spread: SpreadSnapshot | None
    captured_team: str | None = None
    eliminated_team: str | None = None
    re_resolved: bool = False
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "matchup_id": self.matchup_id,
            "pool_id": self.pool_id,
            "event_id": self.event_id,
            "state": self.state.value,
            "winner_member_id": self.winner_member_id,
            "loser_member_id": self.loser_member_id,
            "decided_by": self.decided_by.value if self.decided_by is not None else None,
            "result_type": self.result_type.value if self.result_type is not None else None,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "spread": self.spread.to_dict() if self.spread is not None else None,
            "captured_team": self.captured_team,
            "eliminated_team": self.eliminated_team,
            "re_resolved": self.re_resolved,
            "warnings": list(self.warnings),
        }
