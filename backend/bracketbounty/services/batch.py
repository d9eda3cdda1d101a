from __future__ import annotations

import logging
from typing import Callable

from sqlalchemy.orm import Session

from bracketbounty.config import get_settings
from bracketbounty.domain.enums import MatchupState
from bracketbounty.domain.errors import FinalScoreConflictError, IncompleteScoreError, ResolutionError
from bracketbounty.domain.types import ResolutionResult
from bracketbounty.services.collaborators import final_scores, get_event, get_locked_spread
from bracketbounty.services.correction import CORRECTABLE_STATES, re_resolve_matchup
from bracketbounty.services.matchups import matchups_for_event
from bracketbounty.services.resolution import resolve_matchup

logger = logging.getLogger(__name__)


def _failure(matchup_id: int, pool_id: int, event_id: int, exc: Exception) -> dict[str, object]:
    if isinstance(exc, ResolutionError):
        return {**exc.to_dict(), "matchup_id": matchup_id, "pool_id": pool_id, "event_id": event_id}
    return {
        "code": "internal_error",
        "message": str(exc),
        "matchup_id": matchup_id,
        "pool_id": pool_id,
        "event_id": event_id,
    }


def _run_per_matchup(
    event_id: int,
    targets: list[tuple[int, int]],
    handler: Callable[[int], ResolutionResult],
) -> tuple[list[dict[str, object]], list[dict[str, object]]]:
    resolutions: list[dict[str, object]] = []
    failures: list[dict[str, object]] = []
    for matchup_id, pool_id in targets:
        try:
            resolutions.append(handler(matchup_id).to_dict())
        except ResolutionError as exc:
            logger.warning("Event %s: matchup %s skipped: %s", event_id, matchup_id, exc.reason)
            failures.append(_failure(matchup_id, pool_id, event_id, exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Event %s: matchup %s failed", event_id, matchup_id)
            failures.append(_failure(matchup_id, pool_id, event_id, exc))
    return resolutions, failures


def resolve_event(
    session: Session,
    event_id: int,
    home_score: int,
    away_score: int,
    note: str | None = None,
) -> dict[str, object]:
    """Resolve every unresolved matchup fed by an event with its final score.

    A shared game can feed many pools; each matchup is its own atomic pass and
    records the final score on the event inside that pass, so a failure in one
    pool is reported and the rest carry on. A score that disagrees with one the
    event already has is rejected; corrections go through ``re_resolve_event``.
    """
    settings = get_settings()
    event = get_event(session, event_id)
    recorded = final_scores(event)
    if recorded is not None and recorded != (home_score, away_score):
        raise FinalScoreConflictError(
            f"event {event_id} is already final at {recorded[0]}-{recorded[1]}; "
            "correct the score and re-resolve the event instead",
            event_id=event_id,
        )

    targets = [
        (matchup.id, matchup.pool_id)
        for matchup in matchups_for_event(session, event_id, {MatchupState.UNRESOLVED}, settings.batch_max_matchups)
    ]
    if not targets:
        logger.info("Event %s: no unresolved matchups", event_id)
    resolutions, failures = _run_per_matchup(
        event_id,
        targets,
        lambda matchup_id: resolve_matchup(session, matchup_id, home_score, away_score, note=note),
    )
    return {
        "event_id": event_id,
        "home_score": home_score,
        "away_score": away_score,
        "resolved_count": len(resolutions),
        "resolutions": resolutions,
        "failures": failures,
        "errors_count": len(failures),
    }


def re_resolve_event(session: Session, event_id: int, note: str | None = None) -> dict[str, object]:
    """Correct every decided matchup fed by an event using its current score and spread.

    Matchups a commissioner decided by hand are left alone and reported as skipped.
    """
    settings = get_settings()
    event = get_event(session, event_id)
    scores = final_scores(event)
    if scores is None:
        raise IncompleteScoreError(f"event {event_id} does not have final scores set", event_id=event_id)
    spread = get_locked_spread(session, event_id)

    targets: list[tuple[int, int]] = []
    skipped: list[dict[str, object]] = []
    for matchup in matchups_for_event(session, event_id, CORRECTABLE_STATES, settings.batch_max_matchups):
        if matchup.state == MatchupState.RESOLVED.value and matchup.decided_by is None:
            skipped.append({"matchup_id": matchup.id, "pool_id": matchup.pool_id, "reason": "manual_override"})
            continue
        targets.append((matchup.id, matchup.pool_id))

    resolutions, failures = _run_per_matchup(
        event_id,
        targets,
        lambda matchup_id: re_resolve_matchup(session, matchup_id, note=note),
    )
    logger.info(
        "Event %s re-resolution complete: %s corrected, %s failed, %s skipped",
        event_id,
        len(resolutions),
        len(failures),
        len(skipped),
    )
    return {
        "event_id": event_id,
        "home_score": scores[0],
        "away_score": scores[1],
        "spread_used": spread.to_dict() if spread is not None else None,
        "re_resolved_count": len(resolutions),
        "resolutions": resolutions,
        "failures": failures,
        "skipped": skipped,
        "errors_count": len(failures),
    }
