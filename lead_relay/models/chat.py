from typing import Any

from pydantic import BaseModel, Field, StrictStr


class ChatRequest(BaseModel):
    """Chat turn from the client; history is resent in full every time."""

    message: StrictStr = Field(..., min_length=1, description="User's latest message")
    history: list[Any] = Field(..., description="Previous turns, oldest first (client-managed)")


class ChatResponse(BaseModel):
    response: str
