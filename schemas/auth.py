from typing import Optional

from pydantic import BaseModel, Field


class SignupRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=8, max_length=128)
    first_name: Optional[str] = Field(None, alias="firstName", max_length=128)
    last_name: Optional[str] = Field(None, alias="lastName", max_length=128)
    phone: Optional[str] = Field(None, max_length=64)
    company_name: Optional[str] = Field(None, alias="companyName", max_length=256)

    model_config = {"populate_by_name": True}


class LoginRequest(BaseModel):
    email: str
    password: str
