"""Member Census - active member counts per gym"""

from datetime import date
from typing import Dict, Iterable
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import MembershipStatus
from app.models.tenant import Membership


class MemberCensus:
    """
    Read-only view over the membership subsystem.

    A member counts as active when the membership is active and has not
    yet ended on the reference date.
    """

    @staticmethod
    def _active_filter(reference_date: date):
        return (
            Membership.status == MembershipStatus.ACTIVE,
            Membership.end_date >= reference_date,
        )

    @staticmethod
    async def count_active_members(db: AsyncSession, gym_id: UUID, reference_date: date) -> int:
        count = await db.scalar(
            select(func.count(Membership.id)).where(
                Membership.gym_id == gym_id,
                *MemberCensus._active_filter(reference_date),
            )
        )
        return int(count or 0)

    @staticmethod
    async def count_active_members_by_gym(
        db: AsyncSession,
        gym_ids: Iterable[UUID],
        reference_date: date,
    ) -> Dict[UUID, int]:
        """Counts for several gyms in one query; gyms without members map to 0"""
        gym_ids = list(gym_ids)
        counts = {gym_id: 0 for gym_id in gym_ids}
        if not gym_ids:
            return counts
        result = await db.execute(
            select(Membership.gym_id, func.count(Membership.id))
            .where(
                Membership.gym_id.in_(gym_ids),
                *MemberCensus._active_filter(reference_date),
            )
            .group_by(Membership.gym_id)
        )
        for gym_id, count in result.all():
            counts[gym_id] = int(count)
        return counts
