"""FastAPI routes exposed by the relay service."""

from __future__ import annotations

from fastapi import APIRouter

from api.schemas import StatusResponse
from api.twilio_routes import router as twilio_router

router = APIRouter()
router.include_router(twilio_router)


@router.get("/", response_model=StatusResponse)
async def health() -> StatusResponse:
    return StatusResponse(message="Server is running")
