from __future__ import annotations

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from bracketbounty.domain.audit_payloads import OwnershipSnapshot
from bracketbounty.domain.enums import AcquiredVia
from bracketbounty.models import Ownership, PoolTeam

logger = logging.getLogger(__name__)


class OwnershipLedger:
    """Live team -> participant mapping for one pool.

    At most one row exists per (pool, team); a pool team without a row is
    eliminated. Every mutation goes through this class and is flushed
    immediately so the unique constraint is checked inside the caller's
    transaction.
    """

    def __init__(self, session: Session, pool_id: int) -> None:
        self.session = session
        self.pool_id = pool_id

    def get_record(self, team_code: str) -> Ownership | None:
        stmt = select(Ownership).where(Ownership.pool_id == self.pool_id, Ownership.team_code == team_code)
        return self.session.execute(stmt).scalars().first()

    def get_owner(self, team_code: str) -> int | None:
        record = self.get_record(team_code)
        return record.member_id if record is not None else None

    def teams_of(self, member_id: int) -> list[Ownership]:
        stmt = (
            select(Ownership)
            .where(Ownership.pool_id == self.pool_id, Ownership.member_id == member_id)
            .order_by(Ownership.team_code.asc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def all_records(self) -> list[Ownership]:
        stmt = select(Ownership).where(Ownership.pool_id == self.pool_id).order_by(Ownership.team_code.asc())
        return list(self.session.execute(stmt).scalars().all())

    def snapshot(self, team_code: str) -> OwnershipSnapshot | None:
        record = self.get_record(team_code)
        if record is None:
            return None
        return OwnershipSnapshot(
            team_code=record.team_code,
            member_id=record.member_id,
            acquired_via=AcquiredVia(record.acquired_via),
            from_matchup_id=record.from_matchup_id,
        )

    def remove(self, team_code: str, member_id: int) -> bool:
        result = self.session.execute(
            delete(Ownership).where(
                Ownership.pool_id == self.pool_id,
                Ownership.team_code == team_code,
                Ownership.member_id == member_id,
            )
        )
        self.session.flush()
        removed = (result.rowcount or 0) > 0
        if not removed:
            logger.warning(
                "Pool %s: no ownership row for team %s held by member %s", self.pool_id, team_code, member_id
            )
        return removed

    def transfer(
        self,
        team_code: str,
        from_member_id: int | None,
        to_member_id: int,
        via: AcquiredVia,
        from_matchup_id: int | None = None,
    ) -> Ownership:
        if from_member_id is not None:
            self.remove(team_code, from_member_id)
        existing = self.get_record(team_code)
        if existing is not None:
            raise ValueError(
                f"team {team_code} in pool {self.pool_id} is still held by member {existing.member_id}"
            )
        record = Ownership(
            pool_id=self.pool_id,
            member_id=to_member_id,
            team_code=team_code,
            acquired_via=via.value,
            from_matchup_id=from_matchup_id,
        )
        self.session.add(record)
        self.session.flush()
        logger.info(
            "Pool %s: team %s moved %s -> %s via %s", self.pool_id, team_code, from_member_id, to_member_id, via.value
        )
        return record

    def delete_captures_for_matchup(self, matchup_id: int) -> list[str]:
        """Undo the transfers one matchup made. Returns the team codes left unowned."""
        conditions = (
            Ownership.pool_id == self.pool_id,
            Ownership.acquired_via == AcquiredVia.CAPTURE.value,
            Ownership.from_matchup_id == matchup_id,
        )
        codes = list(self.session.execute(select(Ownership.team_code).where(*conditions)).scalars().all())
        if codes:
            self.session.execute(delete(Ownership).where(*conditions))
            self.session.flush()
        return sorted(codes)

    def restore(self, snapshot: OwnershipSnapshot) -> bool:
        """Reinstate a prior row when its team is currently unowned."""
        if self.get_record(snapshot.team_code) is not None:
            return False
        self.session.add(
            Ownership(
                pool_id=self.pool_id,
                member_id=snapshot.member_id,
                team_code=snapshot.team_code,
                acquired_via=snapshot.acquired_via.value,
                from_matchup_id=snapshot.from_matchup_id,
            )
        )
        self.session.flush()
        return True

    def pool_team_codes(self) -> list[str]:
        stmt = select(PoolTeam.team_code).where(PoolTeam.pool_id == self.pool_id).order_by(PoolTeam.team_code.asc())
        return list(self.session.execute(stmt).scalars().all())

    def eliminated_teams(self) -> list[str]:
        owned = {record.team_code for record in self.all_records()}
        return [code for code in self.pool_team_codes() if code not in owned]

    def owned_count(self) -> int:
        stmt = select(func.count()).select_from(Ownership).where(Ownership.pool_id == self.pool_id)
        return int(self.session.execute(stmt).scalar_one())
