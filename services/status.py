"""
Application and document status model.

Statuses are closed enums and every write goes through one of the
``ensure_*`` functions below, which reject moves that are not in the
transition tables. ``current_stage`` is only range-checked; it is not tied
to ``status``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from models.enums import ApplicationStatus, DocumentStatus
from services.errors import InvalidTransitionError, ValidationError


@dataclass(frozen=True)
class Stage:
    id: int
    name: str
    description: str


APPLICATION_STAGES: tuple[Stage, ...] = (
    Stage(1, "Application", "Initial application submitted"),
    Stage(2, "Documents", "Document collection and verification"),
    Stage(3, "Review", "Application under review"),
    Stage(4, "Underwriting", "Credit assessment and underwriting"),
    Stage(5, "Decision", "Final approval or rejection"),
)

MIN_STAGE = APPLICATION_STAGES[0].id
MAX_STAGE = APPLICATION_STAGES[-1].id

# (document_type, display name) created as "missing" for every new application
REQUIRED_DOCUMENTS: tuple[tuple[str, str], ...] = (
    ("photo_id", "Photo ID"),
    ("company_registration", "Company Registration/Incorporation Documents"),
    ("business_address", "Proof of Business Address"),
    ("business_plan", "Detailed Business Services and Business Plan"),
    ("use_of_funds", "Detailed Use of Funds Breakdown"),
    ("financial_projections", "3-Year Financial Projections"),
    ("business_licenses", "Relevant Business Licenses or Permits"),
)

PENDING_STATUSES = frozenset({
    ApplicationStatus.SUBMITTED,
    ApplicationStatus.DOCUMENT_REVIEW,
    ApplicationStatus.UNDERWRITING,
})
APPROVED_STATUSES = frozenset({ApplicationStatus.APPROVED, ApplicationStatus.FUNDED})

APPLICATION_TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    ApplicationStatus.SUBMITTED: frozenset({
        ApplicationStatus.DOCUMENT_REVIEW,
        ApplicationStatus.UNDERWRITING,
        ApplicationStatus.REJECTED,
    }),
    ApplicationStatus.DOCUMENT_REVIEW: frozenset({
        ApplicationStatus.SUBMITTED,
        ApplicationStatus.UNDERWRITING,
        ApplicationStatus.REJECTED,
    }),
    ApplicationStatus.UNDERWRITING: frozenset({
        ApplicationStatus.DOCUMENT_REVIEW,
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
    }),
    ApplicationStatus.APPROVED: frozenset({ApplicationStatus.FUNDED, ApplicationStatus.REJECTED}),
    ApplicationStatus.REJECTED: frozenset(),
    ApplicationStatus.FUNDED: frozenset(),
}

# Moves made by the upload relay
DOCUMENT_UPLOAD_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.MISSING: frozenset({DocumentStatus.PROCESSING}),
    DocumentStatus.PROCESSING: frozenset({DocumentStatus.PROCESSING}),
    DocumentStatus.REUPLOAD_NEEDED: frozenset({DocumentStatus.PROCESSING}),
    DocumentStatus.APPROVED: frozenset(),
}

# Moves made by an admin reviewing a document
DOCUMENT_REVIEW_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.MISSING: frozenset(),
    DocumentStatus.PROCESSING: frozenset({DocumentStatus.APPROVED, DocumentStatus.REUPLOAD_NEEDED}),
    DocumentStatus.REUPLOAD_NEEDED: frozenset(),
    DocumentStatus.APPROVED: frozenset(),
}


def parse_application_status(value: str) -> ApplicationStatus:
    try:
        return ApplicationStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in ApplicationStatus)
        raise ValidationError(f"Unknown application status '{value}'. Expected one of: {allowed}") from None


def parse_document_status(value: str) -> DocumentStatus:
    try:
        return DocumentStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in DocumentStatus)
        raise ValidationError(f"Unknown document status '{value}'. Expected one of: {allowed}") from None


def can_transition_application(current: ApplicationStatus, target: ApplicationStatus) -> bool:
    return target in APPLICATION_TRANSITIONS.get(current, frozenset())


def ensure_application_transition(current: str, target: str) -> ApplicationStatus:
    """Return the target status or raise InvalidTransitionError."""
    cur = parse_application_status(current)
    new = parse_application_status(target)
    if not can_transition_application(cur, new):
        raise InvalidTransitionError("application", cur.value, new.value)
    return new


def ensure_document_upload(current: str) -> DocumentStatus:
    cur = parse_document_status(current)
    if DocumentStatus.PROCESSING not in DOCUMENT_UPLOAD_TRANSITIONS[cur]:
        raise InvalidTransitionError("document", cur.value, DocumentStatus.PROCESSING.value)
    return DocumentStatus.PROCESSING


def ensure_document_review(current: str, target: str) -> DocumentStatus:
    cur = parse_document_status(current)
    new = parse_document_status(target)
    if new not in DOCUMENT_REVIEW_TRANSITIONS[cur]:
        raise InvalidTransitionError("document", cur.value, new.value)
    return new


def ensure_stage(stage: int) -> int:
    if not MIN_STAGE <= stage <= MAX_STAGE:
        raise ValidationError(f"current_stage must be between {MIN_STAGE} and {MAX_STAGE}")
    return stage


def stage_name(stage: int) -> str | None:
    for s in APPLICATION_STAGES:
        if s.id == stage:
            return s.name
    return None


def humanize_status(value: str) -> str:
    """'document_review' -> 'Document Review'."""
    return " ".join(part.capitalize() for part in value.split("_"))


@dataclass(frozen=True)
class DocumentProgress:
    total: int
    uploaded: int
    approved: int
    completion_percentage: int
    upload_percentage: int


def _percent(part: int, whole: int) -> int:
    return round(part * 100 / whole) if whole else 0


def document_progress(documents: Iterable) -> DocumentProgress:
    """
    Derive progress from the document rows of one application.
    completion counts approved documents; upload counts any stored file.
    """
    docs = list(documents)
    total = len(docs)
    approved = sum(1 for d in docs if d.status == DocumentStatus.APPROVED.value)
    uploaded = sum(1 for d in docs if d.file_path)
    return DocumentProgress(
        total=total,
        uploaded=uploaded,
        approved=approved,
        completion_percentage=_percent(approved, total),
        upload_percentage=_percent(uploaded, total),
    )


def stage_percentage(stage: int) -> int:
    return _percent(stage - MIN_STAGE, MAX_STAGE - MIN_STAGE)
