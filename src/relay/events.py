"""Event vocabularies of the two relayed websockets and the frames sent on them."""

from __future__ import annotations

import base64
import json
from enum import Enum
from typing import Any


class TelephonyEvent(str, Enum):
    """Inbound Twilio Media Streams events handled by the relay."""

    START = "start"
    MEDIA = "media"
    STOP = "stop"


class AgentEvent(str, Enum):
    """Inbound ElevenLabs conversation events handled by the relay."""

    CONVERSATION_INITIATION_METADATA = "conversation_initiation_metadata"
    AUDIO = "audio"
    TRANSCRIPTION = "transcription"
    INTERRUPTION = "interruption"
    PING = "ping"


class FrameDecodeError(ValueError):
    """Raised when a websocket frame is not a JSON object."""


def parse_frame(text: str | bytes) -> dict[str, Any]:
    try:
        message = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise FrameDecodeError(f"invalid JSON frame: {exc}") from exc
    if not isinstance(message, dict):
        raise FrameDecodeError(f"expected a JSON object, got {type(message).__name__}")
    return message


def user_audio_chunk(payload_b64: str) -> dict[str, str]:
    """Agent-side audio frame for a Twilio media payload.

    The payload is decoded and re-encoded so that only well-formed base64
    reaches the agent; the audio bytes are unchanged.
    """

    try:
        audio = base64.b64decode(payload_b64, validate=True)
    except ValueError as exc:
        raise FrameDecodeError(f"invalid base64 media payload: {exc}") from exc
    return {"user_audio_chunk": base64.b64encode(audio).decode("ascii")}


def pong(event_id: Any) -> dict[str, Any]:
    return {"type": "pong", "event_id": event_id}


def twilio_media(stream_sid: str, payload_b64: str) -> dict[str, Any]:
    return {"event": "media", "streamSid": stream_sid, "media": {"payload": payload_b64}}


def twilio_clear(stream_sid: str) -> dict[str, str]:
    return {"event": "clear", "streamSid": stream_sid}


def preview(payload: str, limit: int = 50) -> str:
    if len(payload) <= limit:
        return payload
    return payload[:limit] + "..."
