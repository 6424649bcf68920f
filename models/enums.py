import enum


class Role(str, enum.Enum):
    CLIENT = "client"
    ADMIN = "admin"


class ApplicationStatus(str, enum.Enum):
    SUBMITTED = "submitted"
    DOCUMENT_REVIEW = "document_review"
    UNDERWRITING = "underwriting"
    APPROVED = "approved"
    REJECTED = "rejected"
    FUNDED = "funded"


class DocumentStatus(str, enum.Enum):
    MISSING = "missing"
    PROCESSING = "processing"
    APPROVED = "approved"
    REUPLOAD_NEEDED = "reupload_needed"


class SenderType(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"
    SYSTEM = "system"


class ActivityAction(str, enum.Enum):
    SIGNUP = "signup"
    LOGIN = "login"
    PROFILE_UPDATED = "profile_updated"
    APPLICATION_CREATED = "application_created"
    STATUS_CHANGED = "status_changed"
    STAGE_CHANGED = "stage_changed"
    DOCUMENT_UPLOADED = "document_uploaded"
    DOCUMENT_REVIEWED = "document_reviewed"
    DOCUMENT_DELETED = "document_deleted"
    ROLE_CHANGED = "role_changed"
    USER_DELETED = "user_deleted"
