from schemas.admin import RoleUpdate
from schemas.application import ApplicationCreate, DocumentStatusUpdate, StageUpdate, StatusUpdate
from schemas.auth import LoginRequest, SignupRequest
from schemas.chat import ChatMessageIn
from schemas.forms import AppointmentForm, ContactForm, EligibilityForm, QuoteForm
from schemas.profile import ProfileUpdate

__all__ = [
    "AppointmentForm",
    "ApplicationCreate",
    "ChatMessageIn",
    "ContactForm",
    "DocumentStatusUpdate",
    "EligibilityForm",
    "LoginRequest",
    "ProfileUpdate",
    "QuoteForm",
    "RoleUpdate",
    "SignupRequest",
    "StageUpdate",
    "StatusUpdate",
]
