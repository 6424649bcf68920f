from typing import Optional

from pydantic import BaseModel, Field

SESSION_ID_PATTERN = r"^[A-Za-z0-9_-]{1,64}$"


class ChatMessageIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=256)
    email: str = Field(..., min_length=3, max_length=320)
    message: str = Field(..., min_length=1, max_length=4000)
    session_id: str = Field(..., alias="sessionId", pattern=SESSION_ID_PATTERN)
    timestamp: Optional[str] = Field(None, max_length=64)

    model_config = {"populate_by_name": True}
