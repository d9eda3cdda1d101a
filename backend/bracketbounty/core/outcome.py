from __future__ import annotations

import logging
from decimal import Decimal

from bracketbounty.domain.enums import PoolMode, ResultType, ScoringRule, Side
from bracketbounty.domain.errors import IncompleteScoreError, MissingSpreadError
from bracketbounty.domain.types import ResolutionOutcome, SpreadSnapshot

logger = logging.getLogger(__name__)


def uses_spread(mode: PoolMode | str, scoring_rule: ScoringRule | str) -> bool:
    return PoolMode(mode) is PoolMode.CAPTURE and ScoringRule(scoring_rule) is ScoringRule.ATS


def is_favorite(spread: Decimal) -> bool:
    # A zero spread gets no underdog bonus.
    return spread <= 0


def _validate_score(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    return value


def _check_spread_agreement(spread: SpreadSnapshot, tolerance: float) -> None:
    drift = abs(spread.home_spread + spread.away_spread)
    if drift > Decimal(str(tolerance)):
        logger.warning(
            "Locked spread sides disagree: home=%s away=%s; classifying with each side's own number",
            spread.home_spread,
            spread.away_spread,
        )


def classify_ats(final_home_score: int, final_away_score: int, spread: SpreadSnapshot) -> ResolutionOutcome:
    home_adjusted = Decimal(final_home_score) + spread.home_spread
    away_score = Decimal(final_away_score)

    if home_adjusted > away_score:
        covered = Side.HOME
    elif home_adjusted < away_score:
        covered = Side.AWAY
    else:
        return ResolutionOutcome(
            winning_side=None,
            result_type=ResultType.PUSH,
            covered_side=None,
            decided_by=ScoringRule.ATS,
        )

    raw = {Side.HOME: final_home_score, Side.AWAY: final_away_score}
    if is_favorite(spread.for_side(covered)):
        result_type = ResultType.ADVANCES
    elif raw[covered] > raw[covered.opponent]:
        result_type = ResultType.UPSET
    else:
        result_type = ResultType.CAPTURED

    return ResolutionOutcome(
        winning_side=covered,
        result_type=result_type,
        covered_side=covered,
        decided_by=ScoringRule.ATS,
    )


def classify_straight(final_home_score: int, final_away_score: int) -> ResolutionOutcome:
    if final_home_score == final_away_score:
        raise IncompleteScoreError(
            f"tied final score {final_home_score}-{final_away_score} cannot decide a straight matchup"
        )
    winner = Side.HOME if final_home_score > final_away_score else Side.AWAY
    return ResolutionOutcome(
        winning_side=winner,
        result_type=ResultType.ADVANCES,
        covered_side=winner,
        decided_by=ScoringRule.STRAIGHT,
    )


def classify_outcome(
    final_home_score: int,
    final_away_score: int,
    spread: SpreadSnapshot | None,
    mode: PoolMode | str,
    scoring_rule: ScoringRule | str,
    *,
    mismatch_tolerance: float = 0.0,
) -> ResolutionOutcome:
    """Decide which side wins a matchup and how.

    Capture pools scored against the spread compare ``home + home_spread`` with the
    raw away score: the favorite covering advances, an underdog that covers and
    wins outright is an upset, and an underdog that covers while losing captures
    the favorite's team. An exact tie on the adjusted score is a push. Every other
    pool configuration is decided by the raw score.
    """
    _validate_score("final_home_score", final_home_score)
    _validate_score("final_away_score", final_away_score)

    if not uses_spread(mode, scoring_rule):
        return classify_straight(final_home_score, final_away_score)

    if spread is None:
        raise MissingSpreadError("against-the-spread pool requires a locked spread")
    _check_spread_agreement(spread, mismatch_tolerance)
    return classify_ats(final_home_score, final_away_score, spread)
