from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr

# Only email is checked; other fields are kept exactly as the client sent them.
LeadValue = Any


class LeadRecord(BaseModel):
    """Lead data captured during a chat session."""

    model_config = ConfigDict(extra="allow")

    email: StrictStr = Field(..., description="Client email")
    name: LeadValue = Field(None, description="Client name")
    phone: LeadValue = Field(None, description="Client phone")
    interest: LeadValue = Field(None, description="Project type the client is interested in")
    budget: LeadValue = Field(None, description="Declared budget")
    customerType: LeadValue = Field(None, description="b2b / b2c")
    usecase: LeadValue = Field(None, description="Intended use case")
    otherInfo: LeadValue = Field(None, description="Free-text notes")
    company: LeadValue = Field(None, description="Company name")
    website: LeadValue = Field(None, description="Company website")

    def snapshot(self) -> dict[str, Any]:
        """Fields exactly as the client sent them, unknown keys included."""
        data = self.model_dump(exclude_unset=True)
        data.update(self.model_extra or {})
        return data


class LeadResponse(BaseModel):
    success: bool = True
    message: str = "Lead successfully saved."
