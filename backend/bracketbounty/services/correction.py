from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from bracketbounty.config import get_settings
from bracketbounty.core.transactions import unit_of_work
from bracketbounty.domain.audit_payloads import MatchupResolvedPayload, OwnershipSnapshot
from bracketbounty.domain.enums import MatchupState
from bracketbounty.domain.errors import MatchupNotResolvedError
from bracketbounty.domain.types import ResolutionResult
from bracketbounty.services.audit import delete_audit_entries_for_matchup, load_audit_entries_for_matchup
from bracketbounty.services.ledger import OwnershipLedger
from bracketbounty.services.matchups import claim_matchup, load_matchup
from bracketbounty.services.resolution import apply_resolution

logger = logging.getLogger(__name__)

CORRECTABLE_STATES = {MatchupState.RESOLVED, MatchupState.AWAITING_DECISION}


def _restore_prior_owners(
    ledger: OwnershipLedger,
    snapshots: list[OwnershipSnapshot],
    released_codes: set[str],
) -> list[str]:
    restored: list[str] = []
    for snapshot in snapshots:
        if snapshot.team_code not in released_codes:
            continue
        if ledger.restore(snapshot):
            restored.append(snapshot.team_code)
    return restored


def re_resolve_matchup(
    session: Session,
    matchup_id: int,
    corrected_home_score: int | None = None,
    corrected_away_score: int | None = None,
    *,
    note: str | None = None,
) -> ResolutionResult:
    """Reverse a matchup's previous resolution and resolve it again.

    Clears the audit entries and capture rows the earlier pass wrote, then runs
    the full resolution with the corrected score (or the event's current final
    score) and the current locked spread. A team released from a capture stays
    unowned unless the new result captures it again. With
    ``CORRECTION_RESTORE_OWNERS`` on, the owners recorded before the earlier
    pass are put back first for teams it captured or eliminated.
    """
    settings = get_settings()
    with unit_of_work(session):
        matchup = load_matchup(session, matchup_id, lock=True)
        if MatchupState(matchup.state) not in CORRECTABLE_STATES:
            raise MatchupNotResolvedError(
                "matchup has not been resolved yet; resolve it before correcting",
                matchup_id=matchup.id,
                event_id=matchup.event_id,
            )
        claim_matchup(session, matchup, CORRECTABLE_STATES)

        previous = load_audit_entries_for_matchup(session, matchup.id)
        deleted_entries = delete_audit_entries_for_matchup(session, matchup.id)

        ledger = OwnershipLedger(session, matchup.pool_id)
        released = set(ledger.delete_captures_for_matchup(matchup.id))

        restored: list[str] = []
        if settings.correction_restore_owners and previous:
            _, first_payload = previous[0]
            for _, payload in previous:
                if isinstance(payload, MatchupResolvedPayload) and payload.eliminated_team:
                    released.add(payload.eliminated_team)
            restored = _restore_prior_owners(ledger, first_payload.prior_ownership, released)

        logger.info(
            "Correcting matchup %s: removed %s audit entries, released %s, restored %s",
            matchup.id,
            deleted_entries,
            sorted(released),
            restored,
        )

        overwrite = corrected_home_score is not None and corrected_away_score is not None
        return apply_resolution(
            session,
            matchup,
            corrected_home_score,
            corrected_away_score,
            note=note if note is not None else settings.correction_note,
            re_resolved=True,
            overwrite_event=overwrite,
            reassignable=frozenset(released.difference(restored)),
        )
