"""Safety checklist snapshot captured at booking time."""

from datetime import datetime

from pydantic import BaseModel, Field

from .party import EmergencyContact


class SafetyChecklist(BaseModel):
    """Immutable snapshot of safety-relevant facts for a party."""

    checklist_id: str
    order_id: str
    party_id: str
    safety_acknowledged: bool = False
    allergies: list[str] = Field(default_factory=list)
    dietary_restrictions: list[str] = Field(default_factory=list)
    special_needs: str | None = None
    emergency_contact: EmergencyContact | None = None
    guest_count: int = Field(..., ge=1)
    created_at: datetime
