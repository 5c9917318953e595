"""Twilio Voice integration.

This module provides:
- Call-answer webhook (TwiML) connecting the call to the media stream websocket.
- Media stream websocket relaying call audio to the ElevenLabs agent.
- Outbound call endpoint routed into the same answer webhook.
"""

from __future__ import annotations

import logging
from xml.sax.saxutils import quoteattr

from fastapi import APIRouter, Depends, Request, Response, WebSocket
from pydantic import ValidationError

from api.dependencies import get_agent_connector, get_twilio_cfg, get_twilio_client
from api.schemas import OutboundCallRequest, OutboundCallResponse
from config.settings import get_settings
from integrations.twilio_client import TwilioConfig, originate_call
from relay.errors import InvalidCallRequestError
from relay.session import AgentConnector, RelaySession

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["twilio"])

ANSWER_PATH = "/incoming-call-eleven"
MEDIA_STREAM_PATH = "/media-stream"


def _base_url(request: Request, configured: str | None) -> str:
    if configured:
        return configured.rstrip("/")
    # Fallback to request host. This may not work behind proxies; prefer PUBLIC_BASE_URL.
    host = request.headers.get("host") or request.url.netloc
    return f"https://{host}"


def _to_ws_url(http_url: str) -> str:
    if http_url.startswith("https://"):
        return "wss://" + http_url.removeprefix("https://")
    if http_url.startswith("http://"):
        return "ws://" + http_url.removeprefix("http://")
    return http_url


def _twiml_response(xml: str) -> Response:
    # Twilio expects application/xml
    return Response(content=xml, media_type="application/xml")


def _twiml_connect_stream(*, stream_url: str) -> str:
    return (
        "<?xml version=\"1.0\" encoding=\"UTF-8\"?>"
        "<Response>"
        "<Connect>"
        f"<Stream url={quoteattr(stream_url)} />"
        "</Connect>"
        "</Response>"
    )


@router.api_route(ANSWER_PATH, methods=["GET", "POST"])
async def incoming_call(request: Request) -> Response:
    LOGGER.info("Incoming call webhook received")
    settings = get_settings()
    stream_url = _to_ws_url(_base_url(request, settings.public_base_url)) + MEDIA_STREAM_PATH
    return _twiml_response(_twiml_connect_stream(stream_url=stream_url))


@router.websocket(MEDIA_STREAM_PATH)
async def media_stream(
    websocket: WebSocket,
    connect_agent: AgentConnector = Depends(get_agent_connector),
) -> None:
    await websocket.accept()
    LOGGER.info("Connected to Twilio media stream")
    session = RelaySession(websocket, connect_agent)
    await session.run()


@router.post("/make-outbound-call", response_model=OutboundCallResponse)
async def make_outbound_call(
    request: Request,
    twilio_client=Depends(get_twilio_client),
    cfg: TwilioConfig = Depends(get_twilio_cfg),
) -> OutboundCallResponse:
    try:
        body = await request.json()
    except ValueError:
        body = None
    LOGGER.info("Outbound call request received: %s", body)

    if not isinstance(body, dict):
        raise InvalidCallRequestError("Request body must be a JSON object")
    try:
        payload = OutboundCallRequest.model_validate(body)
    except ValidationError as exc:
        raise InvalidCallRequestError("Destination number 'to' is required") from exc

    call_sid = await originate_call(
        twilio_client,
        to=payload.to,
        from_number=cfg.from_number,
        answer_url=_base_url(request, cfg.public_base_url) + ANSWER_PATH,
    )
    LOGGER.info("Outbound call in progress call_sid=%s", call_sid)
    return OutboundCallResponse(call_sid=call_sid)
