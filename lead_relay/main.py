import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lead_relay.api import chat, health, lead
from lead_relay.core.chat_relay import ChatRelay
from lead_relay.core.errors import register_exception_handlers
from lead_relay.core.lead_sink import LeadSink
from lead_relay.core.settings import Settings, get_settings
from lead_relay.middleware.body_limit import BodySizeLimitMiddleware
from lead_relay.middleware.rate_limit import RateLimitMiddleware, SlidingWindowLimiter
from lead_relay.middleware.security import OriginAllowListMiddleware, SecurityHeadersMiddleware
from lead_relay.services.chat_service import Relay
from lead_relay.services.lead_service import Sink

logger = logging.getLogger(__name__)


def _install_middleware(app: FastAPI, settings: Settings) -> None:
    # add_middleware wraps the current stack, so the last one added runs first.
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.MAX_BODY_BYTES)
    app.add_middleware(
        RateLimitMiddleware,
        limiter=SlidingWindowLimiter(settings.RATE_LIMIT_MAX_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS),
        trust_forwarded=settings.RATE_LIMIT_TRUST_FORWARDED,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        expose_headers=["RateLimit-Limit", "RateLimit-Remaining", "RateLimit-Reset", "Retry-After"],
    )
    app.add_middleware(OriginAllowListMiddleware, allowed_origins=settings.allowed_origins)
    app.add_middleware(SecurityHeadersMiddleware)


def create_app(
    settings: Settings | None = None,
    relay: Relay | None = None,
    sink: Sink | None = None,
) -> FastAPI:
    """
    Build the application.

    Configuration is resolved here, so a missing required value stops the
    process before it serves anything.
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level_value,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    lead_sink = sink or LeadSink.from_settings(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if settings.VALIDATE_SHEET_HEADER and isinstance(lead_sink, LeadSink):
            logger.info("Verifying header of worksheet '%s'...", lead_sink.worksheet_name)
            await lead_sink.verify_header()
        logger.info("Lead relay ready, allowed origins: %s", settings.allowed_origins)
        yield

    app = FastAPI(title="Lead Relay", lifespan=lifespan)
    app.state.settings = settings
    app.state.chat_relay = relay or ChatRelay.from_settings(settings)
    app.state.lead_sink = lead_sink

    register_exception_handlers(app)
    _install_middleware(app, settings)

    app.include_router(health.router)
    app.include_router(chat.router, prefix="/api")
    app.include_router(lead.router, prefix="/api")
    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "lead_relay.main:create_app",
        factory=True,
        host=settings.APP_HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
