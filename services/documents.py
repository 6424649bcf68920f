"""
Document storage relay.

Upload writes the bytes first and touches the database only after a backend
accepted them, so a failed write leaves the document row untouched. The
upload commits its own transaction; a database failure after a successful
write, up to and including the commit, leaves an orphaned object that is
logged, not cleaned up.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models import ActivityAction, LoanApplication, LoanDocument
from services.activity import record_activity
from services.applications import get_owned_application
from services.errors import AccessDeniedError, NotFoundError, ValidationError
from services.status import ensure_document_review, ensure_document_upload, humanize_status, parse_document_status
from services.storage import FallbackObjectStore, build_storage_key

logger = logging.getLogger(__name__)


@dataclass
class UploadResult:
    document: LoanDocument
    file_path: str
    backend: str


@dataclass
class DownloadResult:
    document: LoanDocument
    data: bytes
    content_type: str
    filename: str


def download_filename(doc: LoanDocument) -> str:
    """Name offered to the browser: the document name plus the stored file's extension."""
    name = doc.document_name or "document"
    if doc.file_path and "." in doc.file_path.rsplit("/", 1)[-1]:
        ext = doc.file_path.rsplit(".", 1)[-1]
        if ext and len(ext) <= 8 and not name.lower().endswith("." + ext.lower()):
            name = f"{name}.{ext}"
    return name.replace('"', "")


async def _document_for_loan(session: AsyncSession, loan_id: str, document_type: str) -> LoanDocument:
    result = await session.execute(
        select(LoanDocument).where(
            LoanDocument.loan_id == loan_id,
            LoanDocument.document_type == document_type,
        )
    )
    doc = result.scalar_one_or_none()
    if not doc:
        raise NotFoundError("Document not found")
    return doc


async def upload_document(
    session: AsyncSession,
    store: FallbackObjectStore,
    *,
    user_id: str,
    loan_id: str,
    document_type: str,
    filename: str,
    data: bytes,
    content_type: str | None,
    max_bytes: int,
) -> UploadResult:
    if not data:
        raise ValidationError("File is empty")
    if len(data) > max_bytes:
        raise ValidationError("File too large")

    loan = await get_owned_application(session, loan_id, user_id)
    doc = await _document_for_loan(session, loan.id, document_type)
    new_status = ensure_document_upload(doc.status)

    key = build_storage_key(loan.id, document_type, filename)
    backend = await store.put(key, data, content_type or "application/octet-stream")

    try:
        now = datetime.now(timezone.utc)
        doc.status = new_status.value
        doc.file_path = key
        doc.content_type = content_type or "application/octet-stream"
        doc.file_size = len(data)
        doc.uploaded_at = now
        doc.updated_at = now
        loan.last_action = f"{doc.document_name} uploaded"
        loan.last_action_date = now
        loan.updated_at = now
        await session.flush()
        await record_activity(
            session,
            ActivityAction.DOCUMENT_UPLOADED,
            f"Uploaded {doc.document_name} for {loan.reference_number}",
            user_id=user_id,
            loan_id=loan.id,
        )
        await session.commit()
    except Exception:
        logger.error("Database update failed after storing %s; object is orphaned", key)
        raise

    logger.info("Stored %s for document %s on %s", key, doc.id, backend)
    return UploadResult(document=doc, file_path=key, backend=backend)


async def find_document(
    session: AsyncSession,
    *,
    document_id: str | None = None,
    loan_id: str | None = None,
    document_type: str | None = None,
) -> LoanDocument:
    if not document_id and not (loan_id and document_type):
        raise ValidationError("Document ID or (Loan ID and Document Type) required")
    stmt = select(LoanDocument).options(selectinload(LoanDocument.loan))
    if document_id:
        stmt = stmt.where(LoanDocument.id == document_id)
    else:
        stmt = stmt.where(LoanDocument.loan_id == loan_id, LoanDocument.document_type == document_type)
    result = await session.execute(stmt)
    doc = result.scalar_one_or_none()
    if not doc:
        raise NotFoundError("Document not found")
    return doc


async def _read_file(store: FallbackObjectStore, doc: LoanDocument) -> DownloadResult:
    if not doc.file_path:
        raise NotFoundError("Document file not found")
    obj = await store.get(doc.file_path)
    return DownloadResult(
        document=doc,
        data=obj.data,
        content_type=doc.content_type or obj.content_type or "application/octet-stream",
        filename=download_filename(doc),
    )


async def download_document(
    session: AsyncSession,
    store: FallbackObjectStore,
    *,
    user_id: str,
    document_id: str | None = None,
    loan_id: str | None = None,
    document_type: str | None = None,
) -> DownloadResult:
    """Ownership is checked through the owning loan before any bytes are read."""
    doc = await find_document(session, document_id=document_id, loan_id=loan_id, document_type=document_type)
    if doc.loan is None or doc.loan.user_id != user_id:
        logger.warning("User %s denied download of document %s", user_id, doc.id)
        raise AccessDeniedError("Access denied")
    return await _read_file(store, doc)


async def admin_download_document(session: AsyncSession, store: FallbackObjectStore, document_id: str) -> DownloadResult:
    doc = await find_document(session, document_id=document_id)
    return await _read_file(store, doc)


async def list_documents(
    session: AsyncSession,
    *,
    status: str | None = None,
    loan_id: str | None = None,
) -> list[LoanDocument]:
    stmt = (
        select(LoanDocument)
        .options(selectinload(LoanDocument.loan))
        .order_by(LoanDocument.updated_at.desc())
    )
    if status:
        stmt = stmt.where(LoanDocument.status == parse_document_status(status).value)
    if loan_id:
        stmt = stmt.where(LoanDocument.loan_id == loan_id)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def review_document(
    session: AsyncSession,
    document_id: str,
    new_status: str,
    *,
    actor_id: str | None = None,
) -> LoanDocument:
    doc = await find_document(session, document_id=document_id)
    target = ensure_document_review(doc.status, new_status)
    now = datetime.now(timezone.utc)
    doc.status = target.value
    doc.updated_at = now
    loan: LoanApplication | None = doc.loan
    if loan is not None:
        loan.last_action = f"{doc.document_name} marked {humanize_status(target.value)}"
        loan.last_action_date = now
        loan.updated_at = now
    await session.flush()
    await record_activity(
        session,
        ActivityAction.DOCUMENT_REVIEWED,
        f"{doc.document_name} marked {humanize_status(target.value)}",
        user_id=actor_id,
        loan_id=doc.loan_id,
    )
    return doc


async def delete_document(
    session: AsyncSession,
    store: FallbackObjectStore,
    document_id: str,
    *,
    actor_id: str | None = None,
) -> None:
    doc = await find_document(session, document_id=document_id)
    if doc.file_path:
        await store.delete(doc.file_path)
    name, loan_id = doc.document_name, doc.loan_id
    await session.delete(doc)
    await session.flush()
    await record_activity(
        session,
        ActivityAction.DOCUMENT_DELETED,
        f"Deleted document {name}",
        user_id=actor_id,
        loan_id=loan_id,
    )
