from __future__ import annotations

import secrets
import string
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from config import settings
from models import ActivityAction, ApplicationStatus, DocumentStatus, LoanApplication, LoanDocument
from services.activity import record_activity
from services.errors import AccessDeniedError, NotFoundError, ValidationError
from services.status import (
    APPROVED_STATUSES,
    PENDING_STATUSES,
    REQUIRED_DOCUMENTS,
    ensure_application_transition,
    ensure_stage,
    humanize_status,
    parse_application_status,
    stage_name,
)

_REFERENCE_ALPHABET = string.ascii_uppercase + string.digits
_REFERENCE_ATTEMPTS = 5


def generate_reference(now: datetime | None = None) -> str:
    """Reference like LA-2026-7K2M9QXD."""
    year = (now or datetime.now(timezone.utc)).year
    suffix = "".join(secrets.choice(_REFERENCE_ALPHABET) for _ in range(8))
    return f"{settings.reference_prefix}-{year}-{suffix}"


async def _unique_reference(session: AsyncSession) -> str:
    for _ in range(_REFERENCE_ATTEMPTS):
        ref = generate_reference()
        taken = await session.execute(
            select(LoanApplication.id).where(LoanApplication.reference_number == ref)
        )
        if taken.scalar_one_or_none() is None:
            return ref
    raise RuntimeError("Could not generate a unique reference number")


def _touch(app: LoanApplication, action: str) -> None:
    now = datetime.now(timezone.utc)
    app.last_action = action
    app.last_action_date = now
    app.updated_at = now


async def create_application(
    session: AsyncSession,
    user_id: str,
    *,
    loan_type: str,
    loan_amount: float,
    purpose: str | None = None,
) -> LoanApplication:
    """Create an application at stage 1 with every required document missing."""
    if loan_amount is None or loan_amount <= 0:
        raise ValidationError("loan_amount must be a positive number")
    if not loan_type or not loan_type.strip():
        raise ValidationError("loan_type is required")

    now = datetime.now(timezone.utc)
    app = LoanApplication(
        id=f"loan-{uuid.uuid4().hex[:12]}",
        reference_number=await _unique_reference(session),
        user_id=user_id,
        loan_type=loan_type.strip(),
        loan_amount=float(loan_amount),
        purpose=purpose,
        status=ApplicationStatus.SUBMITTED.value,
        current_stage=1,
        last_action="Application started",
        last_action_date=now,
        created_at=now,
        updated_at=now,
    )
    app.documents = [
        LoanDocument(
            id=f"doc-{uuid.uuid4().hex[:12]}",
            document_name=name,
            document_type=doc_type,
            status=DocumentStatus.MISSING.value,
            created_at=now,
            updated_at=now,
        )
        for doc_type, name in REQUIRED_DOCUMENTS
    ]
    session.add(app)
    await session.flush()
    await record_activity(
        session,
        ActivityAction.APPLICATION_CREATED,
        f"Application {app.reference_number} started for {app.loan_type}",
        user_id=user_id,
        loan_id=app.id,
    )
    return app


async def get_application(session: AsyncSession, application_id: str) -> LoanApplication:
    result = await session.execute(
        select(LoanApplication)
        .options(selectinload(LoanApplication.documents))
        .where(LoanApplication.id == application_id)
    )
    app = result.scalar_one_or_none()
    if not app:
        raise NotFoundError("Application not found")
    return app


async def get_owned_application(session: AsyncSession, application_id: str, user_id: str) -> LoanApplication:
    """Load an application the user owns; any other application is reported as access denied."""
    result = await session.execute(
        select(LoanApplication)
        .options(selectinload(LoanApplication.documents))
        .where(LoanApplication.id == application_id, LoanApplication.user_id == user_id)
    )
    app = result.scalar_one_or_none()
    if not app:
        raise AccessDeniedError("Loan not found or access denied")
    return app


async def list_applications(
    session: AsyncSession,
    *,
    user_id: str | None = None,
    status: str | None = None,
    order_by_last_action: bool = False,
    limit: int | None = None,
) -> list[LoanApplication]:
    stmt = select(LoanApplication).options(selectinload(LoanApplication.documents))
    if user_id is not None:
        stmt = stmt.where(LoanApplication.user_id == user_id)
    if status:
        stmt = stmt.where(LoanApplication.status == parse_application_status(status).value)
    if order_by_last_action:
        stmt = stmt.order_by(LoanApplication.last_action_date.desc().nulls_last())
    else:
        stmt = stmt.order_by(LoanApplication.created_at.desc())
    if limit:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def change_status(
    session: AsyncSession,
    application_id: str,
    new_status: str,
    *,
    actor_id: str | None = None,
) -> LoanApplication:
    app = await get_application(session, application_id)
    target = ensure_application_transition(app.status, new_status)
    app.status = target.value
    _touch(app, f"Status updated to {target.value}")
    await session.flush()
    await record_activity(
        session,
        ActivityAction.STATUS_CHANGED,
        f"Application {app.reference_number} moved to {humanize_status(target.value)}",
        user_id=actor_id,
        loan_id=app.id,
    )
    return app


async def change_stage(
    session: AsyncSession,
    application_id: str,
    stage: int,
    *,
    actor_id: str | None = None,
) -> LoanApplication:
    app = await get_application(session, application_id)
    app.current_stage = ensure_stage(stage)
    _touch(app, f"Stage updated to {stage_name(stage)}")
    await session.flush()
    await record_activity(
        session,
        ActivityAction.STAGE_CHANGED,
        f"Application {app.reference_number} moved to stage {stage} ({stage_name(stage)})",
        user_id=actor_id,
        loan_id=app.id,
    )
    return app


def summarize_applications(apps: list[LoanApplication]) -> dict:
    """Dashboard figures for one client's applications."""
    approved_amount = sum(
        a.loan_amount for a in apps if a.status in {s.value for s in APPROVED_STATUSES}
    )
    pending = sum(1 for a in apps if a.status in {s.value for s in PENDING_STATUSES})
    return {
        "total_applications": len(apps),
        "approved_amount": approved_amount,
        "pending_count": pending,
    }


def action_items(apps: list[LoanApplication]) -> list[dict]:
    """Documents the client still has to provide, across all applications."""
    items = []
    for app in apps:
        for doc in app.documents:
            if doc.status == DocumentStatus.MISSING.value:
                text = f"Upload {doc.document_name}"
            elif doc.status == DocumentStatus.REUPLOAD_NEEDED.value:
                text = f"Re-upload {doc.document_name}"
            else:
                continue
            items.append({
                "loan_id": app.id,
                "reference_number": app.reference_number,
                "document_id": doc.id,
                "document_type": doc.document_type,
                "status": doc.status,
                "text": text,
            })
    return items
