"""Per-call relay between a Twilio media stream and an ElevenLabs conversation."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from enum import Enum
from typing import Any, Protocol

from fastapi import WebSocketDisconnect

from relay.errors import ChannelClosedError
from relay.events import (
    AgentEvent,
    FrameDecodeError,
    TelephonyEvent,
    parse_frame,
    pong,
    preview,
    twilio_clear,
    twilio_media,
    user_audio_chunk,
)

LOGGER = logging.getLogger(__name__)


class TelephonyChannel(Protocol):
    """The accepted Twilio websocket (a FastAPI `WebSocket` satisfies this)."""

    async def receive(self) -> dict[str, Any]: ...

    async def send_text(self, data: str) -> None: ...


class AgentChannel(Protocol):
    """An open conversation websocket to the voice agent."""

    @property
    def is_open(self) -> bool: ...

    @property
    def close_code(self) -> int | None: ...

    @property
    def close_reason(self) -> str | None: ...

    async def send_json(self, payload: dict[str, Any]) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> AsyncIterator[str | bytes]: ...


AgentConnector = Callable[[], Awaitable[AgentChannel]]


class SessionState(str, Enum):
    CONNECTING_AGENT = "connecting_agent"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


def _field(message: dict[str, Any], *path: str) -> Any:
    value: Any = message
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


class RelaySession:
    """Relays one call between Twilio and the conversational agent.

    The session owns both websockets. Twilio frames are read in `run()`,
    agent frames in a background task started by `run()`. Each frame is
    handled to completion before the next one from the same socket, and
    both interpreters run on the same event loop, so `stream_sid` and
    `state` need no locking.
    """

    def __init__(self, telephony: TelephonyChannel, connect_agent: AgentConnector) -> None:
        self.telephony = telephony
        self.agent: AgentChannel | None = None
        self.stream_sid: str | None = None
        self.state = SessionState.CONNECTING_AGENT
        self._connect_agent = connect_agent
        self._agent_task: asyncio.Task | None = None

        self._telephony_handlers: dict[TelephonyEvent, Callable[[dict[str, Any]], Awaitable[None]]] = {
            TelephonyEvent.START: self._on_start,
            TelephonyEvent.MEDIA: self._on_media,
            TelephonyEvent.STOP: self._on_stop,
        }
        self._agent_handlers: dict[AgentEvent, Callable[[dict[str, Any]], Awaitable[None]]] = {
            AgentEvent.CONVERSATION_INITIATION_METADATA: self._on_conversation_metadata,
            AgentEvent.AUDIO: self._on_agent_audio,
            AgentEvent.TRANSCRIPTION: self._on_transcription,
            AgentEvent.INTERRUPTION: self._on_interruption,
            AgentEvent.PING: self._on_ping,
        }

    async def run(self) -> None:
        """Relay until the Twilio websocket disconnects."""

        self._agent_task = asyncio.create_task(self._run_agent())
        try:
            while True:
                message = await self.telephony.receive()
                if message["type"] == "websocket.disconnect":
                    LOGGER.info(
                        "Twilio client disconnected stream_sid=%s code=%s", self.stream_sid, message.get("code")
                    )
                    break
                # Twilio sends text frames; binary ones go through the same decode path.
                frame = message.get("text")
                if frame is None:
                    frame = message.get("bytes") or b""
                await self.handle_telephony_message(frame)
        finally:
            await self._shutdown()

    # Twilio -> agent

    async def handle_telephony_message(self, text: str | bytes) -> None:
        try:
            message = parse_frame(text)
        except FrameDecodeError as exc:
            LOGGER.error("Error processing Twilio message: %s", exc)
            return

        try:
            event = TelephonyEvent(message.get("event"))
        except ValueError:
            LOGGER.info("Unhandled Twilio event: %s", message.get("event"))
            return

        try:
            await self._telephony_handlers[event](message)
        except FrameDecodeError as exc:
            LOGGER.error("Error processing Twilio %s event: %s", event.value, exc)

    async def _on_start(self, message: dict[str, Any]) -> None:
        stream_sid = _field(message, "start", "streamSid")
        if not isinstance(stream_sid, str) or not stream_sid:
            LOGGER.warning("Twilio start event without streamSid")
            return
        if self.stream_sid is not None and stream_sid != self.stream_sid:
            LOGGER.warning("Ignoring second start event stream_sid=%s bound=%s", stream_sid, self.stream_sid)
            return
        self.stream_sid = stream_sid
        LOGGER.info("Twilio stream started stream_sid=%s", stream_sid)

    async def _on_media(self, message: dict[str, Any]) -> None:
        if self.stream_sid is None:
            LOGGER.debug("Dropping Twilio media received before start")
            return

        payload = _field(message, "media", "payload")
        if not isinstance(payload, str) or not payload:
            LOGGER.warning("Twilio media event without payload stream_sid=%s", self.stream_sid)
            return

        if self.agent is None or not self.agent.is_open:
            LOGGER.debug("ElevenLabs websocket is not open; dropping audio stream_sid=%s", self.stream_sid)
            return

        LOGGER.debug("Twilio -> ElevenLabs audio %s", preview(payload))
        await self._send_agent(user_audio_chunk(payload))

    async def _on_stop(self, message: dict[str, Any]) -> None:
        LOGGER.info("Twilio stream stopped stream_sid=%s", self.stream_sid)
        self._mark_closing()
        await self._close_agent()

    # agent -> Twilio

    async def handle_agent_message(self, text: str | bytes) -> None:
        try:
            message = parse_frame(text)
        except FrameDecodeError as exc:
            LOGGER.error("Error parsing ElevenLabs message: %s", exc)
            return

        try:
            event = AgentEvent(message.get("type"))
        except ValueError:
            LOGGER.debug("Ignoring ElevenLabs event: %s", message.get("type"))
            return

        await self._agent_handlers[event](message)

    async def _on_conversation_metadata(self, message: dict[str, Any]) -> None:
        conversation_id = _field(message, "conversation_initiation_metadata_event", "conversation_id")
        LOGGER.info("Received conversation initiation metadata conversation_id=%s", conversation_id)

    async def _on_agent_audio(self, message: dict[str, Any]) -> None:
        payload = _field(message, "audio_event", "audio_base_64")
        if not isinstance(payload, str) or not payload:
            return
        if self.stream_sid is None:
            LOGGER.debug("Dropping agent audio received before Twilio start")
            return
        await self._send_telephony(twilio_media(self.stream_sid, payload))

    async def _on_transcription(self, message: dict[str, Any]) -> None:
        text = message.get("text")
        if text:
            LOGGER.info("Transcription received stream_sid=%s: %s", self.stream_sid, text)

    async def _on_interruption(self, message: dict[str, Any]) -> None:
        if self.stream_sid is None:
            LOGGER.warning("Dropping interruption received before Twilio start")
            return
        LOGGER.info("Agent interrupted; clearing Twilio audio stream_sid=%s", self.stream_sid)
        await self._send_telephony(twilio_clear(self.stream_sid))

    async def _on_ping(self, message: dict[str, Any]) -> None:
        event_id = _field(message, "ping_event", "event_id")
        if not event_id:
            return
        if self.agent is None or not self.agent.is_open:
            return
        await self._send_agent(pong(event_id))

    # plumbing

    async def _send_agent(self, payload: dict[str, Any]) -> None:
        if self.agent is None:
            return
        try:
            await self.agent.send_json(payload)
        except ChannelClosedError as exc:
            LOGGER.warning("ElevenLabs websocket closed while sending: %s", exc)

    async def _send_telephony(self, payload: dict[str, Any]) -> None:
        try:
            await self.telephony.send_text(json.dumps(payload))
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            LOGGER.warning("Twilio websocket not writable; dropping %s frame: %s", payload.get("event"), exc)

    async def _run_agent(self) -> None:
        try:
            agent = await self._connect_agent()
        except Exception:
            LOGGER.exception("Failed to connect to ElevenLabs")
            self._mark_closing()
            return

        self.agent = agent
        if self.state is not SessionState.CONNECTING_AGENT:
            # Twilio stopped while the connection was being established.
            await agent.close()
            return

        self.state = SessionState.ACTIVE
        LOGGER.info("Connected to ElevenLabs stream_sid=%s", self.stream_sid)
        try:
            async for message in agent:
                await self.handle_agent_message(message)
        except Exception:
            LOGGER.exception("ElevenLabs receive loop failed stream_sid=%s", self.stream_sid)
        finally:
            LOGGER.info(
                "ElevenLabs websocket closed code=%s reason=%s stream_sid=%s",
                agent.close_code,
                agent.close_reason,
                self.stream_sid,
            )
            self._mark_closing()

    def _mark_closing(self) -> None:
        if self.state in (SessionState.CONNECTING_AGENT, SessionState.ACTIVE):
            self.state = SessionState.CLOSING

    async def _close_agent(self) -> None:
        if self.agent is not None:
            await self.agent.close()
        elif self._agent_task is not None and not self._agent_task.done():
            self._agent_task.cancel()

    async def _shutdown(self) -> None:
        self._mark_closing()
        await self._close_agent()
        if self._agent_task is not None:
            self._agent_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._agent_task
        self.state = SessionState.CLOSED
        LOGGER.info("Relay session closed stream_sid=%s", self.stream_sid)
