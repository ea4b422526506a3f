"""API models for booking endpoints."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from booking_core.models.booking import BookingResult


class BookingResponse(BaseModel):
    """Response after a booking was created."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "success": True,
                    "orderId": "0b6c5d1e-8f2a-4c3b-9d7e-1a2b3c4d5e6f",
                    "orderNumber": "PP2606-K3Z9QA",
                    "partyId": "7f1e2d3c-4b5a-6978-8a9b-0c1d2e3f4a5b",
                }
            ]
        },
    )

    success: bool = True
    order_id: str = Field(..., description="Order ID, used to start the deposit payment")
    order_number: str = Field(..., description="Human-readable order number")
    party_id: str

    @classmethod
    def from_result(cls, result: BookingResult) -> "BookingResponse":
        return cls(
            order_id=result.order_id,
            order_number=result.order_number,
            party_id=result.party_id,
        )
