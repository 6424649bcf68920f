"""Public lead-capture endpoints. No authentication: these back the site's forms."""
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends

from api.deps import get_relay
from schemas.forms import AppointmentForm, ContactForm, EligibilityForm, QuoteForm
from services.errors import ValidationError
from services.relay import (
    FORM_FORMATTERS,
    MessageRelay,
    format_appointment,
    format_contact,
    format_eligibility,
    format_generic,
    format_quote,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/forms", tags=["forms"])

_FORM_SCHEMAS = {
    "contact": ContactForm,
    "quote": QuoteForm,
    "eligibility": EligibilityForm,
    "appointment": AppointmentForm,
}


async def _relay(relay: MessageRelay, form_type: str, text: str) -> dict[str, Any]:
    await relay.send(text)
    logger.info("Relayed %s form submission", form_type)
    return {"success": True}


@router.post("/contact")
async def contact(body: ContactForm, relay: MessageRelay = Depends(get_relay)):
    return await _relay(relay, "contact", format_contact(body.model_dump()))


@router.post("/quote")
async def quote(body: QuoteForm, relay: MessageRelay = Depends(get_relay)):
    return await _relay(relay, "quote", format_quote(body.model_dump()))


@router.post("/eligibility")
async def eligibility(body: EligibilityForm, relay: MessageRelay = Depends(get_relay)):
    return await _relay(relay, "eligibility", format_eligibility(body.model_dump()))


@router.post("/appointment")
async def appointment(body: AppointmentForm, relay: MessageRelay = Depends(get_relay)):
    return await _relay(relay, "appointment", format_appointment(body.model_dump()))


@router.post("")
async def submit_form(payload: dict[str, Any] = Body(...), relay: MessageRelay = Depends(get_relay)):
    """Single entry point dispatching on ``formType``; unknown types are relayed field by field."""
    form_type = str(payload.get("formType") or "")
    schema = _FORM_SCHEMAS.get(form_type)
    if schema is None:
        if not any(k != "formType" for k in payload):
            raise ValidationError("Missing required fields")
        return await _relay(relay, form_type or "generic", format_generic(payload))
    try:
        form = schema.model_validate(payload)
    except ValueError:
        raise ValidationError("Missing required fields") from None
    return await _relay(relay, form_type, FORM_FORMATTERS[form_type](form.model_dump()))
