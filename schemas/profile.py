from typing import Optional

from pydantic import BaseModel, Field


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, alias="firstName", max_length=128)
    last_name: Optional[str] = Field(None, alias="lastName", max_length=128)
    phone: Optional[str] = Field(None, max_length=64)
    company_name: Optional[str] = Field(None, alias="companyName", max_length=256)

    model_config = {"populate_by_name": True}
