"""Lead-capture form payloads. Field names match the public site's forms (camelCase)."""
from typing import Optional

from pydantic import BaseModel, Field


class _Form(BaseModel):
    model_config = {"populate_by_name": True, "extra": "allow"}


class ContactForm(_Form):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: Optional[str] = None
    service: Optional[str] = None
    message: str = Field(..., min_length=1)


class QuoteForm(_Form):
    first_name: str = Field(..., alias="firstName", min_length=1)
    last_name: str = Field(..., alias="lastName", min_length=1)
    email: str = Field(..., min_length=3)
    phone: str = Field(..., min_length=1)
    company: Optional[str] = None
    loan_type: str = Field(..., alias="loanType", min_length=1)
    loan_amount: str = Field(..., alias="loanAmount", min_length=1)
    loan_purpose: Optional[str] = Field(None, alias="loanPurpose")
    industry: Optional[str] = None
    annual_turnover: Optional[str] = Field(None, alias="annualTurnover")
    time_in_business: Optional[str] = Field(None, alias="timeInBusiness")
    employees: Optional[str] = None


class EligibilityForm(_Form):
    first_name: str = Field(..., alias="firstName", min_length=1)
    last_name: str = Field(..., alias="lastName", min_length=1)
    email: str = Field(..., min_length=3)
    phone: str = Field(..., min_length=1)
    loan_amount: str = Field(..., alias="loanAmount", min_length=1)
    loan_purpose: Optional[str] = Field(None, alias="loanPurpose")
    business_name: str = Field(..., alias="businessName", min_length=1)
    industry: Optional[str] = None
    annual_turnover: Optional[str] = Field(None, alias="annualTurnover")
    time_in_business: Optional[str] = Field(None, alias="timeInBusiness")


class AppointmentForm(_Form):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: str = Field(..., min_length=1)
    date: str = Field(..., min_length=1)
    time: str = Field(..., min_length=1)
    service: Optional[str] = None
    message: Optional[str] = None
