from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session


@contextmanager
def unit_of_work(session: Session) -> Iterator[Session]:
    """Commit everything written inside the block once, or nothing at all."""
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
