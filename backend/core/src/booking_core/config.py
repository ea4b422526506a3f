"""Runtime configuration read from environment variables.

Secrets (Stripe keys, webhook secret, cron secret) are not configured here;
they live in SSM Parameter Store and are fetched by the services that need
them. See ``SSMService``.
"""

import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Settings(BaseModel):
    """Application settings.

    Every field maps to an upper-cased environment variable of the same name.
    """

    model_config = ConfigDict(frozen=True)

    environment: str = Field(default="dev", description="Deployment environment (dev/prod)")
    aws_region: str = Field(default="eu-central-1")
    log_level: str = Field(default="INFO")

    # Commercial rules
    currency: str = Field(default="czk", description="ISO currency code for Stripe")
    deposit_percent: int = Field(default=30, ge=0, le=100)
    invoice_due_days: int = Field(default=14, ge=0)
    business_timezone: str = Field(default="Europe/Prague")
    unknown_activity_policy: Literal["ignore", "reject"] = Field(default="ignore")

    # Generators
    order_number_max_attempts: int = Field(default=5, ge=1)
    reconcile_max_attempts: int = Field(default=3, ge=1)

    # Reminders
    payment_reminder_days: int = Field(default=3, ge=0)
    party_reminder_hours: int = Field(default=24, ge=1)

    # External calls
    public_base_url: str = Field(default="http://localhost:3002")
    # A session expires between one and two TTLs after it is opened; Stripe caps expiry at 24 h
    checkout_session_ttl_seconds: int = Field(default=3600, ge=1860, le=43200)
    stripe_timeout_seconds: float = Field(default=10.0, gt=0)
    email_timeout_seconds: float = Field(default=5.0, gt=0)
    email_sender: str = Field(default="PartyPal <rezervace@partypal.cz>")
    admin_email: str | None = Field(default=None)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment.

        Unset variables fall back to the field defaults.
        """
        values: dict[str, str] = {}
        for name in cls.model_fields:
            raw = os.environ.get(name.upper())
            if raw is not None and raw != "":
                values[name] = raw
        return cls.model_validate(values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the shared Settings instance.

    Call ``get_settings.cache_clear()`` in tests after changing the environment.
    """
    return Settings.from_env()
