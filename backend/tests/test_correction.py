from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import update

from bracketbounty.domain.enums import AcquiredVia, MatchupState, ResultType
from bracketbounty.domain.errors import ConcurrentResolutionError, MatchupNotResolvedError
from bracketbounty.models import Event, Line, Matchup
from bracketbounty.services.correction import re_resolve_matchup
from bracketbounty.services.matchups import claim_matchup, load_matchup
from bracketbounty.services.resolution import resolve_matchup


def _duke_unc(bracket):
    pool = bracket.pool()
    alice = bracket.member(pool, "Alice")
    bob = bracket.member(pool, "Bob")
    bracket.team(pool, "DUKE", "Duke", owner=alice)
    bracket.team(pool, "UNC", "North Carolina", owner=bob)
    event = bracket.event("DUKE", "UNC", home_spread="-7", away_spread="7")
    matchup = bracket.matchup(pool, event)
    bracket.commit()
    return pool, alice.id, bob.id, event, matchup.id


def _matchup_state(session, matchup_id):
    matchup = session.get(Matchup, matchup_id)
    return (
        matchup.state,
        matchup.winner_member_id,
        matchup.decided_by,
        matchup.result_type,
        matchup.home_member_id,
        matchup.away_member_id,
    )


def _enable_owner_restore(monkeypatch) -> None:
    monkeypatch.setenv("CORRECTION_RESTORE_OWNERS", "true")


def test_corrected_score_leaves_released_capture_unowned(bracket, session) -> None:
    pool, alice, bob, event, matchup_id = _duke_unc(bracket)
    resolve_matchup(session, matchup_id, 24, 21)
    assert bracket.owners(pool) == {"DUKE": bob, "UNC": bob}

    result = re_resolve_matchup(session, matchup_id, 31, 21)

    # DUKE covers but nobody holds it any more, so UNC's owner is knocked out.
    assert result.re_resolved is True
    assert result.result_type is ResultType.ADVANCES
    assert result.winner_member_id is None
    assert result.loser_member_id == bob
    assert result.eliminated_team == "UNC"
    assert bracket.owners(pool) == {}

    rows = bracket.audit_rows(matchup_id)
    assert len(rows) == 1
    assert rows[0].payload["re_resolved"] is True
    assert rows[0].payload["result_type"] == "ADVANCES"

    matchup = session.get(Matchup, matchup_id)
    assert matchup.commissioner_note == "Re-resolved with corrected spread"
    refreshed = session.get(Event, event.id)
    assert (refreshed.final_home_score, refreshed.final_away_score) == (31, 21)


def test_recomputed_capture_takes_the_released_team_again(bracket, session) -> None:
    pool, _, bob, _, matchup_id = _duke_unc(bracket)
    resolve_matchup(session, matchup_id, 24, 21)

    result = re_resolve_matchup(session, matchup_id, 23, 21)

    assert result.result_type is ResultType.CAPTURED
    assert result.captured_team == "DUKE"
    assert result.loser_member_id is None
    assert bracket.owners(pool) == {"DUKE": bob, "UNC": bob}
    duke = bracket.ownership_row(pool, "DUKE")
    assert duke.acquired_via == AcquiredVia.CAPTURE.value
    assert duke.from_matchup_id == matchup_id


def test_owner_restore_puts_the_pre_capture_owner_back(bracket, session, monkeypatch) -> None:
    _enable_owner_restore(monkeypatch)
    pool, alice, _, _, matchup_id = _duke_unc(bracket)
    resolve_matchup(session, matchup_id, 24, 21)

    result = re_resolve_matchup(session, matchup_id, 31, 21)

    assert result.result_type is ResultType.ADVANCES
    assert result.winner_member_id == alice
    assert bracket.owners(pool) == {"DUKE": alice}
    assert bracket.ownership_row(pool, "DUKE").acquired_via == AcquiredVia.INITIAL.value


def test_corrected_spread_is_picked_up_from_the_line(bracket, session, monkeypatch) -> None:
    _enable_owner_restore(monkeypatch)
    pool, alice, bob, event, matchup_id = _duke_unc(bracket)
    resolve_matchup(session, matchup_id, 24, 21)

    session.execute(
        update(Line)
        .where(Line.event_id == event.id)
        .values(home_spread=Decimal("-2.5"), away_spread=Decimal("2.5"))
    )
    session.commit()

    result = re_resolve_matchup(session, matchup_id, note="Book corrected the line")

    assert result.result_type is ResultType.ADVANCES
    assert float(result.spread.home_spread) == -2.5
    assert bracket.owners(pool) == {"DUKE": alice}
    assert session.get(Matchup, matchup_id).commissioner_note == "Book corrected the line"


def _assert_second_correction_changes_nothing(bracket, session, pool, matchup_id, scores) -> None:
    first = re_resolve_matchup(session, matchup_id, *scores)
    owners_after_first = bracket.owners(pool)
    matchup_after_first = _matchup_state(session, matchup_id)

    second = re_resolve_matchup(session, matchup_id, *scores)

    assert bracket.owners(pool) == owners_after_first
    assert _matchup_state(session, matchup_id) == matchup_after_first
    assert len(bracket.audit_rows(matchup_id)) == 1
    for field in ("winner_member_id", "loser_member_id", "result_type", "captured_team", "eliminated_team"):
        assert getattr(first, field) == getattr(second, field)


def test_re_resolving_twice_matches_re_resolving_once(bracket, session) -> None:
    pool, _, bob, _, matchup_id = _duke_unc(bracket)
    resolve_matchup(session, matchup_id, 24, 21)

    _assert_second_correction_changes_nothing(bracket, session, pool, matchup_id, (23, 21))
    assert bracket.owners(pool) == {"DUKE": bob, "UNC": bob}


def test_re_resolving_twice_with_owner_restore(bracket, session, monkeypatch) -> None:
    _enable_owner_restore(monkeypatch)
    pool, alice, bob, _, matchup_id = _duke_unc(bracket)
    resolve_matchup(session, matchup_id, 31, 21)

    _assert_second_correction_changes_nothing(bracket, session, pool, matchup_id, (24, 21))
    assert _matchup_state(session, matchup_id) == ("resolved", bob, "ats", "CAPTURED", alice, bob)


def test_eliminated_team_stays_out_by_default(bracket, session) -> None:
    pool, alice, _, _, matchup_id = _duke_unc(bracket)
    resolve_matchup(session, matchup_id, 31, 21)

    result = re_resolve_matchup(session, matchup_id, 24, 21)

    # UNC stays eliminated, so DUKE loses to an unowned team.
    assert result.winner_member_id is None
    assert result.loser_member_id == alice
    assert result.eliminated_team == "DUKE"
    assert any("UNC" in warning for warning in result.warnings)
    assert bracket.owners(pool) == {}


def test_owner_restore_brings_eliminated_team_back_before_recapture(bracket, session, monkeypatch) -> None:
    _enable_owner_restore(monkeypatch)
    pool, alice, bob, _, matchup_id = _duke_unc(bracket)
    resolve_matchup(session, matchup_id, 31, 21)
    assert bracket.owners(pool) == {"DUKE": alice}

    result = re_resolve_matchup(session, matchup_id, 24, 21)

    assert result.result_type is ResultType.CAPTURED
    assert result.captured_team == "DUKE"
    assert bracket.owners(pool) == {"DUKE": bob, "UNC": bob}


def test_owner_restore_keeps_an_earlier_capture_of_the_same_team(bracket, session, monkeypatch) -> None:
    _enable_owner_restore(monkeypatch)
    pool, alice, bob, _, first_matchup = _duke_unc(bracket)
    carol = bracket.member(pool, "Carol")
    bracket.team(pool, "KU", "Kansas", owner=carol)
    bracket.commit()
    resolve_matchup(session, first_matchup, 24, 21)

    second_event = bracket.event("DUKE", "KU", home_spread="-3", away_spread="3")
    second_matchup = bracket.matchup(pool, second_event).id
    bracket.commit()
    resolve_matchup(session, second_matchup, 20, 18)
    assert bracket.owners(pool)["DUKE"] == carol.id

    re_resolve_matchup(session, second_matchup, 30, 18)

    duke = bracket.ownership_row(pool, "DUKE")
    assert duke.member_id == bob
    assert duke.acquired_via == AcquiredVia.CAPTURE.value
    assert duke.from_matchup_id == first_matchup
    assert "KU" not in bracket.owners(pool)


def test_push_can_be_corrected(bracket, session) -> None:
    pool, alice, _, _, matchup_id = _duke_unc(bracket)
    resolve_matchup(session, matchup_id, 28, 21)

    result = re_resolve_matchup(session, matchup_id, 29, 21)

    assert result.state is MatchupState.RESOLVED
    assert result.result_type is ResultType.ADVANCES
    assert bracket.owners(pool) == {"DUKE": alice}


def test_unresolved_matchup_cannot_be_corrected(bracket, session) -> None:
    _, _, _, _, matchup_id = _duke_unc(bracket)

    with pytest.raises(MatchupNotResolvedError):
        re_resolve_matchup(session, matchup_id, 31, 21)
    assert bracket.audit_rows(matchup_id) == []


def test_stale_claim_is_rejected(bracket, session) -> None:
    _, _, _, _, matchup_id = _duke_unc(bracket)
    resolve_matchup(session, matchup_id, 24, 21)

    matchup = load_matchup(session, matchup_id)
    session.execute(
        update(Matchup)
        .where(Matchup.id == matchup_id)
        .values(version=Matchup.version + 1)
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(ConcurrentResolutionError):
        claim_matchup(session, matchup, {MatchupState.RESOLVED})
    session.rollback()
