"""Liveness endpoints. Neither touches DynamoDB, Stripe or SES."""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter

router = APIRouter(tags=["health"])

SERVICE_NAME = "booking-api"


def _status(state: str) -> dict[str, Any]:
    return {
        "status": state,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": SERVICE_NAME,
    }


@router.get("/health", summary="Service health")
async def health() -> dict[str, Any]:
    return _status("healthy")


@router.get("/ping", summary="Load balancer probe")
async def ping() -> dict[str, Any]:
    return _status("ok")
