"""ASGI application for the party booking API.

Routers are mounted under ``/api``, the path CloudFront forwards to API
Gateway. ``handler`` is the Lambda entry point; ``run_server`` starts a
local uvicorn for development.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from booking_api.exceptions import register_exception_handlers
from booking_api.middleware.correlation import CorrelationIdMiddleware
from booking_api.routes import bookings, cron, health, payments, webhooks
from booking_core.config import get_settings
from booking_core.utils.logging import configure_logging, get_logger

API_PREFIX = "/api"

settings = get_settings()
configure_logging(settings.log_level)
logger = get_logger(__name__)


def create_app() -> FastAPI:
    application = FastAPI(
        title="Party Booking API",
        description="Booking intake, Stripe checkout and settlement, reminder cron",
        version="0.1.0",
    )
    # The booking form is served from public_base_url
    application.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.public_base_url.rstrip("/")],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    application.add_middleware(CorrelationIdMiddleware)
    register_exception_handlers(application)

    for module in (health, bookings, payments, webhooks, cron):
        application.include_router(module.router, prefix=API_PREFIX)

    logger.info("Booking API configured for %s", settings.environment)
    return application


app = create_app()

handler = Mangum(app, lifespan="off")


def run_server(host: str = "127.0.0.1", port: int = 8080, reload: bool = True) -> None:
    """Serve the API with uvicorn, reloading on source changes by default."""
    import uvicorn

    if not reload:
        uvicorn.run(app, host=host, port=port)
        return
    uvicorn.run(
        "booking_api.main:app",
        host=host,
        port=port,
        reload=True,
        reload_dirs=["backend/api/src", "backend/core/src"],
    )


if __name__ == "__main__":
    run_server()
