"""Reminder scan results."""

from pydantic import BaseModel, Field


class ScanResult(BaseModel):
    """Counts from one reminder scan."""

    sent: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)
