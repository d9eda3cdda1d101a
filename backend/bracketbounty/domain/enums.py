from enum import StrEnum


class PoolMode(StrEnum):
    CAPTURE = "capture"
    STANDARD = "standard"


class ScoringRule(StrEnum):
    STRAIGHT = "straight"
    ATS = "ats"


class Side(StrEnum):
    HOME = "HOME"
    AWAY = "AWAY"

    @property
    def opponent(self) -> "Side":
        return Side.AWAY if self is Side.HOME else Side.HOME


class ResultType(StrEnum):
    ADVANCES = "ADVANCES"
    UPSET = "UPSET"
    CAPTURED = "CAPTURED"
    PUSH = "PUSH"


class MatchupState(StrEnum):
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    AWAITING_DECISION = "awaiting_decision"


class EventStatus(StrEnum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    FINAL = "final"


class AcquiredVia(StrEnum):
    INITIAL = "initial"
    CAPTURE = "capture"
