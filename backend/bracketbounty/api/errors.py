from __future__ import annotations

from fastapi import HTTPException

from bracketbounty.domain.errors import (
    AlreadyResolvedError,
    ConcurrentResolutionError,
    EventNotFoundError,
    FinalScoreConflictError,
    IncompleteScoreError,
    InvalidOverrideError,
    MatchupNotFoundError,
    MatchupNotResolvedError,
    MissingSpreadError,
    PoolNotFoundError,
    ResolutionError,
)

_STATUS_BY_ERROR: dict[type[ResolutionError], int] = {
    MatchupNotFoundError: 404,
    EventNotFoundError: 404,
    PoolNotFoundError: 404,
    AlreadyResolvedError: 409,
    MatchupNotResolvedError: 409,
    ConcurrentResolutionError: 409,
    FinalScoreConflictError: 409,
    IncompleteScoreError: 422,
    MissingSpreadError: 422,
    InvalidOverrideError: 422,
}


def to_http_exception(exc: Exception) -> HTTPException:
    if isinstance(exc, ResolutionError):
        status_code = next(
            (status for error_type, status in _STATUS_BY_ERROR.items() if isinstance(exc, error_type)),
            400,
        )
        return HTTPException(status_code=status_code, detail=exc.to_dict())
    return HTTPException(status_code=400, detail={"code": "invalid_request", "message": str(exc)})
