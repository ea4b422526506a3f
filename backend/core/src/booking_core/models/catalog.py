"""Read-only catalog entries used to price bookings."""

from pydantic import BaseModel, Field


class Package(BaseModel):
    """A party package with a fixed price."""

    package_id: str
    title: str
    price: int = Field(..., ge=0, description="Price in minor units")
    active: bool = True


class Activity(BaseModel):
    """An individually bookable activity."""

    activity_id: str
    title: str
    price: int = Field(..., ge=0, description="Price in minor units")
    active: bool = True
