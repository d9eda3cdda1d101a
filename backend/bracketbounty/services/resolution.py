from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from bracketbounty.config import get_settings
from bracketbounty.core.outcome import classify_outcome, uses_spread
from bracketbounty.core.transactions import unit_of_work
from bracketbounty.domain.audit_payloads import (
    MatchupOverriddenPayload,
    MatchupResolvedPayload,
    OwnershipSnapshot,
    SpreadPayload,
)
from bracketbounty.domain.enums import AcquiredVia, MatchupState, PoolMode, ResultType, Side
from bracketbounty.domain.errors import (
    AlreadyResolvedError,
    IncompleteScoreError,
    InvalidOverrideError,
    MissingSpreadError,
    ResolutionError,
    UnaffiliatedTeamWarning,
)
from bracketbounty.domain.types import ResolutionOutcome, ResolutionResult, SpreadSnapshot
from bracketbounty.models import Event, Matchup, Pool
from bracketbounty.services.audit import append_audit_entry
from bracketbounty.services.collaborators import (
    final_scores,
    get_locked_spread,
    get_pool,
    is_pool_member,
    record_final_score,
)
from bracketbounty.services.ledger import OwnershipLedger
from bracketbounty.services.matchups import MatchupDecision, claim_matchup, load_matchup, set_matchup_resolution

logger = logging.getLogger(__name__)


def _attach_context(exc: ResolutionError, matchup: Matchup) -> ResolutionError:
    if exc.matchup_id is None:
        exc.matchup_id = matchup.id
    if exc.event_id is None:
        exc.event_id = matchup.event_id
    return exc


def _final_scores_for(
    matchup: Matchup, event: Event | None, home_score: int | None, away_score: int | None
) -> tuple[int, int] | None:
    if home_score is not None and away_score is not None:
        return home_score, away_score
    if home_score is not None or away_score is not None:
        raise IncompleteScoreError(
            "both home_score and away_score must be supplied together",
            matchup_id=matchup.id,
            event_id=matchup.event_id,
        )
    if event is None:
        return None
    return final_scores(event)


def _unaffiliated_warnings(matchup: Matchup, codes: dict[Side, str], owners: dict[Side, int | None]) -> list[str]:
    warnings: list[str] = []
    for side in (Side.HOME, Side.AWAY):
        if owners[side] is None:
            warning = UnaffiliatedTeamWarning(codes[side], side.value, matchup.id)
            logger.warning("%s", warning)
            warnings.append(str(warning))
    return warnings


def _apply_ownership(
    ledger: OwnershipLedger,
    pool: Pool,
    matchup: Matchup,
    outcome: ResolutionOutcome,
    codes: dict[Side, str],
    owners: dict[Side, int | None],
    reassignable: frozenset[str] = frozenset(),
) -> tuple[str | None, str | None]:
    """Mutate the ledger for a decided outcome. Returns (captured_team, eliminated_team).

    ``reassignable`` names unowned teams a correction just released; a capture
    of one of them hands it to the winner.
    """
    if PoolMode(pool.mode) is not PoolMode.CAPTURE or outcome.winning_side is None:
        return None, None

    winner = owners[outcome.winning_side]
    loser_side = outcome.winning_side.opponent
    loser = owners[loser_side]
    losing_team = codes[loser_side]
    if loser is None:
        if outcome.result_type is ResultType.CAPTURED and winner is not None and losing_team in reassignable:
            ledger.transfer(losing_team, None, winner, AcquiredVia.CAPTURE, from_matchup_id=matchup.id)
            return losing_team, None
        return None, None

    if outcome.result_type is ResultType.CAPTURED and winner is not None:
        if winner == loser:
            return None, None
        ledger.transfer(losing_team, loser, winner, AcquiredVia.CAPTURE, from_matchup_id=matchup.id)
        return losing_team, None

    if winner is None or outcome.result_type is ResultType.ADVANCES:
        ledger.remove(losing_team, loser)
        return None, losing_team

    return None, None


def _resolved_payload(
    matchup: Matchup,
    event: Event,
    outcome: ResolutionOutcome,
    scores: tuple[int, int],
    spread: SpreadSnapshot | None,
    owners: dict[Side, int | None],
    codes: dict[Side, str],
    prior: list[OwnershipSnapshot],
    eliminated_team: str | None,
    re_resolved: bool,
) -> MatchupResolvedPayload:
    winner_side = outcome.winning_side
    loser_side = winner_side.opponent if winner_side is not None else None
    payload = MatchupResolvedPayload(
        matchup_id=matchup.id,
        event_id=event.id,
        home_team=codes[Side.HOME],
        away_team=codes[Side.AWAY],
        winner_member_id=owners[winner_side] if winner_side is not None else None,
        loser_member_id=owners[loser_side] if loser_side is not None else None,
        home_score=scores[0],
        away_score=scores[1],
        prior_ownership=prior,
        re_resolved=re_resolved,
        decided_by=outcome.decided_by,
        result_type=outcome.result_type,
        spread=SpreadPayload(
            home_spread=float(spread.home_spread),
            away_spread=float(spread.away_spread),
            home_team=codes[Side.HOME],
            away_team=codes[Side.AWAY],
        )
        if spread is not None
        else None,
        winner_team=codes[winner_side] if winner_side is not None else None,
        loser_team=codes[loser_side] if loser_side is not None else None,
        eliminated_team=eliminated_team,
    )
    if spread is not None and outcome.covered_side is not None:
        covered = outcome.covered_side
        if outcome.result_type is ResultType.CAPTURED:
            payload.capturer_id = owners[covered]
            payload.captured_from_id = owners[covered.opponent]
            payload.underdog_team = codes[covered]
            payload.favorite_team = codes[covered.opponent]
            payload.underdog_spread = float(spread.for_side(covered))
        elif outcome.result_type is ResultType.UPSET:
            payload.underdog_team = codes[covered]
            payload.favorite_team = codes[covered.opponent]
            payload.underdog_spread = float(spread.for_side(covered))
    return payload


def _apply_manual_override(
    session: Session,
    pool: Pool,
    matchup: Matchup,
    event: Event | None,
    manual_winner_member_id: int,
    scores: tuple[int, int] | None,
    note: str | None,
    overwrite_event: bool,
) -> ResolutionResult:
    if not is_pool_member(session, pool.id, manual_winner_member_id):
        raise InvalidOverrideError(
            f"member {manual_winner_member_id} is not part of pool {pool.id}",
            matchup_id=matchup.id,
            event_id=matchup.event_id,
        )

    ledger = OwnershipLedger(session, pool.id)
    owners: dict[Side, int | None] = {Side.HOME: None, Side.AWAY: None}
    prior: list[OwnershipSnapshot] = []
    if event is not None:
        for side, code in ((Side.HOME, event.home_team), (Side.AWAY, event.away_team)):
            snapshot = ledger.snapshot(code)
            owners[side] = snapshot.member_id if snapshot is not None else None
            if snapshot is not None:
                prior.append(snapshot)

    loser = None
    if manual_winner_member_id == owners[Side.HOME]:
        loser = owners[Side.AWAY]
    elif manual_winner_member_id == owners[Side.AWAY]:
        loser = owners[Side.HOME]

    set_matchup_resolution(
        session,
        matchup,
        MatchupDecision(
            state=MatchupState.RESOLVED,
            winner_member_id=manual_winner_member_id,
            decided_by=None,
            result_type=None,
            home_member_id=owners[Side.HOME],
            away_member_id=owners[Side.AWAY],
        ),
        note,
    )
    append_audit_entry(
        session,
        pool.id,
        MatchupOverriddenPayload(
            matchup_id=matchup.id,
            event_id=matchup.event_id,
            home_team=event.home_team if event is not None else None,
            away_team=event.away_team if event is not None else None,
            winner_member_id=manual_winner_member_id,
            loser_member_id=loser,
            home_score=scores[0] if scores is not None else None,
            away_score=scores[1] if scores is not None else None,
            prior_ownership=prior,
            note=note,
        ),
    )
    if event is not None and scores is not None:
        record_final_score(session, event, scores[0], scores[1], overwrite=overwrite_event)

    logger.info("Matchup %s decided by commissioner: winner=%s", matchup.id, manual_winner_member_id)
    return ResolutionResult(
        matchup_id=matchup.id,
        pool_id=pool.id,
        event_id=matchup.event_id,
        state=MatchupState.RESOLVED,
        winner_member_id=manual_winner_member_id,
        loser_member_id=loser,
        decided_by=None,
        result_type=None,
        home_score=scores[0] if scores is not None else None,
        away_score=scores[1] if scores is not None else None,
        spread=None,
    )


def apply_resolution(
    session: Session,
    matchup: Matchup,
    home_score: int | None = None,
    away_score: int | None = None,
    *,
    note: str | None = None,
    manual_winner_member_id: int | None = None,
    re_resolved: bool = False,
    overwrite_event: bool = False,
    reassignable: frozenset[str] = frozenset(),
) -> ResolutionResult:
    """Decide a claimed matchup and write every effect into the open transaction.

    The caller owns the transaction and the per-matchup claim; nothing here
    commits.
    """
    pool = get_pool(session, matchup.pool_id)
    event = matchup.event
    scores = _final_scores_for(matchup, event, home_score, away_score)

    if manual_winner_member_id is not None:
        return _apply_manual_override(
            session, pool, matchup, event, manual_winner_member_id, scores, note, overwrite_event
        )

    if event is None:
        raise IncompleteScoreError(
            "matchup has no linked event to score", matchup_id=matchup.id, event_id=None
        )
    if scores is None:
        raise IncompleteScoreError(
            f"event {event.id} has no final score yet; supply home_score and away_score",
            matchup_id=matchup.id,
            event_id=event.id,
        )

    settings = get_settings()
    spread = get_locked_spread(session, event.id) if uses_spread(pool.mode, pool.scoring_rule) else None
    if uses_spread(pool.mode, pool.scoring_rule) and spread is None:
        raise MissingSpreadError(
            f"pool {pool.id} scores against the spread but event {event.id} has no locked spread",
            matchup_id=matchup.id,
            event_id=event.id,
        )

    try:
        outcome = classify_outcome(
            scores[0],
            scores[1],
            spread,
            pool.mode,
            pool.scoring_rule,
            mismatch_tolerance=settings.spread_mismatch_tolerance,
        )
    except ResolutionError as exc:
        raise _attach_context(exc, matchup) from None

    ledger = OwnershipLedger(session, pool.id)
    codes = {Side.HOME: event.home_team, Side.AWAY: event.away_team}
    prior = [snap for snap in (ledger.snapshot(codes[Side.HOME]), ledger.snapshot(codes[Side.AWAY])) if snap]
    owners: dict[Side, int | None] = {Side.HOME: None, Side.AWAY: None}
    for snap in prior:
        owners[Side.HOME if snap.team_code == codes[Side.HOME] else Side.AWAY] = snap.member_id
    warnings = _unaffiliated_warnings(matchup, codes, owners)

    captured_team, eliminated_team = _apply_ownership(ledger, pool, matchup, outcome, codes, owners, reassignable)

    winner = owners[outcome.winning_side] if outcome.winning_side is not None else None
    loser = owners[outcome.losing_side] if outcome.losing_side is not None else None
    state = MatchupState.AWAITING_DECISION if outcome.push else MatchupState.RESOLVED
    set_matchup_resolution(
        session,
        matchup,
        MatchupDecision(
            state=state,
            winner_member_id=winner,
            decided_by=outcome.decided_by,
            result_type=outcome.result_type,
            home_member_id=owners[Side.HOME],
            away_member_id=owners[Side.AWAY],
        ),
        note,
    )
    append_audit_entry(
        session,
        pool.id,
        _resolved_payload(
            matchup, event, outcome, scores, spread, owners, codes, prior, eliminated_team, re_resolved
        ),
    )
    record_final_score(session, event, scores[0], scores[1], overwrite=overwrite_event)

    logger.info(
        "Matchup %s (pool %s) resolved: %s by %s, winner=%s captured=%s eliminated=%s",
        matchup.id,
        pool.id,
        outcome.result_type.value,
        outcome.decided_by.value,
        winner,
        captured_team,
        eliminated_team,
    )
    return ResolutionResult(
        matchup_id=matchup.id,
        pool_id=pool.id,
        event_id=event.id,
        state=state,
        winner_member_id=winner,
        loser_member_id=loser,
        decided_by=outcome.decided_by,
        result_type=outcome.result_type,
        home_score=scores[0],
        away_score=scores[1],
        spread=spread,
        captured_team=captured_team,
        eliminated_team=eliminated_team,
        re_resolved=re_resolved,
        warnings=warnings,
    )


def resolve_matchup(
    session: Session,
    matchup_id: int,
    home_score: int | None = None,
    away_score: int | None = None,
    *,
    manual_winner_member_id: int | None = None,
    note: str | None = None,
) -> ResolutionResult:
    """Resolve an unresolved matchup as one atomic pass.

    A matchup left awaiting a decision by a push only accepts a commissioner
    override here; anything already decided has to go through correction.
    """
    with unit_of_work(session):
        matchup = load_matchup(session, matchup_id, lock=True)
        state = MatchupState(matchup.state)
        expected = {MatchupState.UNRESOLVED}
        if manual_winner_member_id is not None:
            expected.add(MatchupState.AWAITING_DECISION)
        if state not in expected:
            reason = (
                "matchup is awaiting a commissioner decision after a push"
                if state is MatchupState.AWAITING_DECISION
                else "matchup is already resolved; use re-resolve to correct it"
            )
            raise AlreadyResolvedError(reason, matchup_id=matchup.id, event_id=matchup.event_id)

        claim_matchup(session, matchup, expected)
        return apply_resolution(
            session,
            matchup,
            home_score,
            away_score,
            note=note,
            manual_winner_member_id=manual_winner_member_id,
        )
