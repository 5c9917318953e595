"""Entry point for the Twilio to ElevenLabs voice agent relay."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.routes import router as api_router
from api.schemas import ErrorResponse
from config.settings import get_settings
from relay.errors import ConfigurationError, RelayError

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    missing = get_settings().missing_required()
    if missing:
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")
    yield


settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(
    title="Voice Agent Relay",
    description="Relays Twilio calls to an ElevenLabs conversational agent.",
    lifespan=lifespan,
)
app.include_router(api_router)


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=ErrorResponse(error=exc.detail).model_dump())


def run() -> None:
    settings = get_settings()
    missing = settings.missing_required()
    if missing:
        LOGGER.error("Missing required environment variables: %s", ", ".join(missing))
        sys.exit(1)

    LOGGER.info("Listening on %s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
