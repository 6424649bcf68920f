"""Serialize ORM rows to camelCase dicts for the frontend."""
from __future__ import annotations

from typing import Any

from models import ActivityLog, LoanApplication, LoanDocument, Profile, User
from services.status import document_progress, humanize_status, stage_name, stage_percentage
from utils.serialize import iso


def profile_to_response(p: Profile | None) -> dict[str, Any] | None:
    if p is None:
        return None
    return {
        "userId": p.user_id,
        "firstName": p.first_name,
        "lastName": p.last_name,
        "email": p.email,
        "phone": p.phone,
        "companyName": p.company_name,
        "avatarUrl": p.avatar_url,
        "createdAt": iso(p.created_at),
        "updatedAt": iso(p.updated_at),
    }


def user_to_response(u: User) -> dict[str, Any]:
    return {
        "id": u.id,
        "email": u.email,
        "role": u.role.role if u.role else None,
        "status": "active" if u.role else "pending",
        "profile": profile_to_response(u.profile),
        "createdAt": iso(u.created_at),
    }


def document_to_response(d: LoanDocument) -> dict[str, Any]:
    return {
        "id": d.id,
        "loanId": d.loan_id,
        "documentName": d.document_name,
        "documentType": d.document_type,
        "status": d.status,
        "filePath": d.file_path,
        "contentType": d.content_type,
        "fileSize": d.file_size,
        "uploadedAt": iso(d.uploaded_at),
        "updatedAt": iso(d.updated_at),
    }


def progress_to_response(app: LoanApplication) -> dict[str, Any]:
    progress = document_progress(app.documents)
    return {
        "documentsTotal": progress.total,
        "documentsUploaded": progress.uploaded,
        "documentsApproved": progress.approved,
        "completionPercentage": progress.completion_percentage,
        "uploadPercentage": progress.upload_percentage,
        "stagePercentage": stage_percentage(app.current_stage),
    }


def application_to_response(
    app: LoanApplication,
    *,
    include_documents: bool = False,
    owner: Profile | None = None,
) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": app.id,
        "referenceNumber": app.reference_number,
        "userId": app.user_id,
        "loanType": app.loan_type,
        "loanAmount": app.loan_amount,
        "purpose": app.purpose,
        "status": app.status,
        "statusLabel": humanize_status(app.status),
        "currentStage": app.current_stage,
        "stageName": stage_name(app.current_stage),
        "lastAction": app.last_action,
        "lastActionDate": iso(app.last_action_date),
        "createdAt": iso(app.created_at),
        "updatedAt": iso(app.updated_at),
        "progress": progress_to_response(app),
    }
    if include_documents:
        out["documents"] = [document_to_response(d) for d in app.documents]
    if owner is not None:
        out["owner"] = profile_to_response(owner)
    return out


def activity_to_response(a: ActivityLog) -> dict[str, Any]:
    return {
        "id": a.id,
        "userId": a.user_id,
        "loanId": a.loan_id,
        "action": a.action,
        "description": a.description,
        "createdAt": iso(a.created_at),
    }
