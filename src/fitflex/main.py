"""FastAPI application entry point."""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from fitflex.api.router import request_validation_handler
from fitflex.api.router import router as otp_router
from fitflex.config import Settings, settings
from fitflex.otp.notifier import build_notifier
from fitflex.otp.service import OTPService
from fitflex.otp.store import OTPStore

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)


def build_otp_service(config: Settings) -> OTPService:
    """Wire a store and the configured notifier into a service."""
    return OTPService(
        OTPStore(),
        build_notifier(config),
        ttl_seconds=config.otp_ttl_seconds,
    )


async def _sweep_expired(store: OTPStore, interval: float) -> None:
    """Periodically drop challenges nobody came back to verify."""
    while True:
        await asyncio.sleep(interval)
        store.purge_expired()


def create_app(config: Settings = settings) -> FastAPI:
    """Build the FastAPI application for *config*."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup / shutdown lifecycle hook."""
        logger.info("Starting %s …", config.app_name)
        app.state.otp_service = build_otp_service(config)
        logger.info(
            "USE_TWILIO=%s (demo mode when false)", "true" if config.use_twilio else "false"
        )

        sweeper = None
        if config.otp_sweep_interval_seconds > 0:
            sweeper = asyncio.create_task(
                _sweep_expired(app.state.otp_service.store, config.otp_sweep_interval_seconds)
            )
        yield
        if sweeper is not None:
            sweeper.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper
        logger.info("Shutting down %s …", config.app_name)

    app = FastAPI(
        title=config.app_name,
        description="One-time passcode issue and verification for FitFlex registration",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(otp_router)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    @app.get("/health")
    async def health_check():
        """Simple liveness probe."""
        return {"status": "healthy", "app": config.app_name}

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port)
