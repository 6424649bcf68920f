from models.activity import ActivityLog
from models.application import LoanApplication
from models.chat import ChatMessage
from models.document import LoanDocument
from models.enums import ActivityAction, ApplicationStatus, DocumentStatus, Role, SenderType
from models.user import Profile, User, UserRole

__all__ = [
    "ActivityAction",
    "ActivityLog",
    "ApplicationStatus",
    "ChatMessage",
    "DocumentStatus",
    "LoanApplication",
    "LoanDocument",
    "Profile",
    "Role",
    "SenderType",
    "User",
    "UserRole",
]
