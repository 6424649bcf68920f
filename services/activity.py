from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import ActivityAction, ActivityLog

MAX_ACTIVITY_LIMIT = 500


async def record_activity(
    session: AsyncSession,
    action: ActivityAction,
    description: str,
    *,
    user_id: str | None = None,
    loan_id: str | None = None,
) -> ActivityLog:
    entry = ActivityLog(
        id=f"act-{uuid.uuid4().hex[:12]}",
        user_id=user_id,
        loan_id=loan_id,
        action=action.value,
        description=description,
        created_at=datetime.now(timezone.utc),
    )
    session.add(entry)
    await session.flush()
    return entry


async def list_activity(
    session: AsyncSession,
    *,
    action: str | None = None,
    user_id: str | None = None,
    since: datetime | None = None,
    limit: int = 100,
) -> list[ActivityLog]:
    stmt = select(ActivityLog).order_by(ActivityLog.created_at.desc())
    if action:
        stmt = stmt.where(ActivityLog.action == action)
    if user_id:
        stmt = stmt.where(ActivityLog.user_id == user_id)
    if since:
        stmt = stmt.where(ActivityLog.created_at >= since)
    stmt = stmt.limit(max(1, min(limit, MAX_ACTIVITY_LIMIT)))
    result = await session.execute(stmt)
    return list(result.scalars().all())
