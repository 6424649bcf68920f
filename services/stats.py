from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models import ApplicationStatus, LoanApplication, LoanDocument, User
from services.status import APPROVED_STATUSES, PENDING_STATUSES


async def _count(session: AsyncSession, stmt) -> int:
    result = await session.execute(stmt)
    return int(result.scalar_one() or 0)


async def admin_stats(session: AsyncSession, now: datetime | None = None) -> dict:
    """Back-office dashboard figures, computed fresh on each request."""
    now = now or datetime.now(timezone.utc)
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    pending = [s.value for s in PENDING_STATUSES]
    approved = [s.value for s in APPROVED_STATUSES]

    total_users = await _count(session, select(func.count()).select_from(User))
    new_users_today = await _count(
        session, select(func.count()).select_from(User).where(User.created_at >= start_of_day)
    )
    total_apps = await _count(session, select(func.count()).select_from(LoanApplication))
    pending_apps = await _count(
        session, select(func.count()).select_from(LoanApplication).where(LoanApplication.status.in_(pending))
    )
    approved_apps = await _count(
        session, select(func.count()).select_from(LoanApplication).where(LoanApplication.status.in_(approved))
    )
    rejected_apps = await _count(
        session,
        select(func.count()).select_from(LoanApplication).where(
            LoanApplication.status == ApplicationStatus.REJECTED.value
        ),
    )
    amount = await session.execute(
        select(func.coalesce(func.sum(LoanApplication.loan_amount), 0)).where(
            LoanApplication.status.in_(approved)
        )
    )
    total_docs = await _count(session, select(func.count()).select_from(LoanDocument))
    uploaded_docs = await _count(
        session, select(func.count()).select_from(LoanDocument).where(LoanDocument.file_path.is_not(None))
    )

    return {
        "total_users": total_users,
        "new_users_today": new_users_today,
        "total_applications": total_apps,
        "pending_applications": pending_apps,
        "approved_applications": approved_apps,
        "rejected_applications": rejected_apps,
        "total_loan_amount": float(amount.scalar_one() or 0),
        "total_documents": total_docs,
        "uploaded_documents": uploaded_docs,
        "document_upload_rate": round(uploaded_docs * 100 / total_docs, 1) if total_docs else 0.0,
    }
