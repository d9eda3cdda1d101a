from __future__ import annotations


class ResolutionError(Exception):
    """Base for failures an operator can act on (fix data, then retry)."""

    code = "resolution_error"

    def __init__(self, reason: str, *, matchup_id: int | None = None, event_id: int | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.matchup_id = matchup_id
        self.event_id = event_id

    def to_dict(self) -> dict[str, object]:
        return {
            "code": self.code,
            "message": self.reason,
            "matchup_id": self.matchup_id,
            "event_id": self.event_id,
        }


class IncompleteScoreError(ResolutionError):
    code = "incomplete_score"


class MissingSpreadError(ResolutionError):
    code = "missing_spread"


class AlreadyResolvedError(ResolutionError):
    code = "already_resolved"


class MatchupNotResolvedError(ResolutionError):
    code = "matchup_not_resolved"


class ConcurrentResolutionError(ResolutionError):
    code = "concurrent_resolution"


class FinalScoreConflictError(ResolutionError):
    code = "final_score_conflict"


class InvalidOverrideError(ResolutionError):
    code = "invalid_override"


class MatchupNotFoundError(ResolutionError):
    code = "matchup_not_found"


class EventNotFoundError(ResolutionError):
    code = "event_not_found"


class PoolNotFoundError(ResolutionError):
    code = "pool_not_found"


class UnaffiliatedTeamWarning(UserWarning):
    """A side of the matchup has no live owner; resolution still proceeds."""

    def __init__(self, team_code: str, side: str, matchup_id: int) -> None:
        super().__init__(f"{side} team {team_code} has no owner in matchup {matchup_id}")
        self.team_code = team_code
        self.side = side
        self.matchup_id = matchup_id
