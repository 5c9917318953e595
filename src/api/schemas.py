"""API-facing Pydantic models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class StatusResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str


class OutboundCallRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    to: str = Field(min_length=1, description="E.164 destination number, e.g. +1555...")


class OutboundCallResponse(BaseModel):
    message: str = "Call initiated"
    call_sid: str = Field(serialization_alias="callSid", description="Twilio call SID.")
