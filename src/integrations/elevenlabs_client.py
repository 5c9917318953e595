"""ElevenLabs Conversational AI websocket client."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import urlencode

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from relay.errors import ChannelClosedError

LOGGER = logging.getLogger(__name__)


def conversation_url(base_url: str, agent_id: str) -> str:
    return f"{base_url.rstrip('/')}?{urlencode({'agent_id': agent_id})}"


class ConversationChannel:
    """A live conversation websocket with an ElevenLabs agent."""

    def __init__(self, connection: ClientConnection) -> None:
        self._connection = connection

    @property
    def is_open(self) -> bool:
        return self._connection.state is State.OPEN

    @property
    def close_code(self) -> int | None:
        return self._connection.close_code

    @property
    def close_reason(self) -> str | None:
        return self._connection.close_reason

    async def send_json(self, payload: dict[str, Any]) -> None:
        try:
            await self._connection.send(json.dumps(payload))
        except ConnectionClosed as exc:
            raise ChannelClosedError(str(exc)) from exc

    async def close(self) -> None:
        await self._connection.close()

    async def __aiter__(self) -> AsyncIterator[str | bytes]:
        # Iteration ends on close, whether clean or not; callers read the code/reason.
        try:
            async for message in self._connection:
                yield message
        except ConnectionClosed:
            return


async def open_conversation(url: str) -> ConversationChannel:
    """Connect to the conversation endpoint (agent id already in the URL)."""

    LOGGER.info("Connecting to ElevenLabs: %s", url)
    connection = await connect(url)
    return ConversationChannel(connection)
