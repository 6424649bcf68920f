from typing import Literal, Optional

from pydantic import BaseModel, Field


class ApplicationCreate(BaseModel):
    loan_type: str = Field(..., alias="loanType", min_length=1, max_length=128)
    loan_amount: float = Field(..., alias="loanAmount", gt=0)
    purpose: Optional[str] = Field(None, max_length=2000)

    model_config = {"populate_by_name": True}


class StatusUpdate(BaseModel):
    status: Literal["submitted", "document_review", "underwriting", "approved", "rejected", "funded"]


class StageUpdate(BaseModel):
    current_stage: int = Field(..., alias="currentStage", ge=1, le=5)

    model_config = {"populate_by_name": True}


class DocumentStatusUpdate(BaseModel):
    status: Literal["missing", "processing", "approved", "reupload_needed"]
