"""Row store for usage counters, one row per (user_id, feature).

Writes are single ``INSERT ... ON CONFLICT DO UPDATE`` statements so the
limit check and the increment happen in the same round trip.
"""

from datetime import datetime
from typing import Iterable

from sqlalchemy import DateTime, case, literal, or_, select
from sqlalchemy.dialects import postgresql, sqlite

from creatorgate.common.database import DatabaseManager
from creatorgate.common.models import generate_uuid
from creatorgate.usage.models import UsageRecordModel

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class UsageStore:
    """Persistence for usage rows. Every call runs in its own transaction."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def _insert(self):
        dialect = self.db.dialect
        try:
            return _UPSERT_DIALECTS[dialect](UsageRecordModel)
        except KeyError:
            raise RuntimeError(
                f"Usage store needs a database with upsert support (sqlite, postgresql), got {dialect!r}"
            ) from None

    async def get(self, user_id: str, feature: str) -> UsageRecordModel | None:
        async with self.db.get_session() as session:
            result = await session.execute(
                select(UsageRecordModel).where(
                    UsageRecordModel.user_id == user_id,
                    UsageRecordModel.feature == feature,
                )
            )
            return result.scalar_one_or_none()

    async def list_for_user(self, user_id: str) -> list[UsageRecordModel]:
        async with self.db.get_session() as session:
            result = await session.execute(
                select(UsageRecordModel).where(UsageRecordModel.user_id == user_id)
            )
            return list(result.scalars().all())

    async def increment_if_below(
        self,
        user_id: str,
        feature: str,
        limit: int,
        now: datetime,
        next_reset_at: datetime,
    ) -> int | None:
        """Add one unit unless the row already holds ``limit`` units this period.

        A missing row is created with count 1; a row whose ``reset_at`` has
        passed restarts at 1 with ``next_reset_at``. Returns the new count, or
        None when the row was at its limit and nothing changed.
        """
        if limit < 1:
            return None

        table = UsageRecordModel
        expired = table.reset_at <= now
        stmt = self._insert().values(
            id=generate_uuid(),
            user_id=user_id,
            feature=feature,
            count=1,
            reset_at=next_reset_at,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "feature"],
            set_={
                "count": case((expired, 1), else_=table.count + 1),
                "reset_at": case(
                    (expired, literal(next_reset_at, DateTime(timezone=True))),
                    else_=table.reset_at,
                ),
                "updated_at": now,
            },
            where=or_(expired, table.count < limit),
        ).returning(table.count)

        async with self.db.get_session() as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def reset_for_user(
        self,
        user_id: str,
        features: Iterable[str],
        reset_at: datetime,
        now: datetime,
    ) -> int:
        """Zero every listed feature for a user in one statement, creating missing rows."""
        rows = [
            {
                "id": generate_uuid(),
                "user_id": user_id,
                "feature": feature,
                "count": 0,
                "reset_at": reset_at,
                "created_at": now,
                "updated_at": now,
            }
            for feature in features
        ]
        if not rows:
            return 0

        stmt = self._insert().values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "feature"],
            set_={
                "count": 0,
                "reset_at": stmt.excluded.reset_at,
                "updated_at": now,
            },
        )
        async with self.db.get_session() as session:
            await session.execute(stmt)
        return len(rows)
