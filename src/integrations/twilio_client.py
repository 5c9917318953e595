from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import requests
from twilio.base.exceptions import TwilioException

from config.settings import get_settings
from relay.errors import CallOriginationError, ConfigurationError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TwilioConfig:
    account_sid: str
    auth_token: str
    from_number: str
    public_base_url: str | None = None


def get_twilio_config() -> TwilioConfig:
    settings = get_settings()
    if not settings.twilio_account_sid or not settings.twilio_auth_token:
        raise ConfigurationError("Twilio credentials are not configured")
    if not settings.twilio_phone_number:
        raise ConfigurationError("TWILIO_PHONE_NUMBER is not configured")

    return TwilioConfig(
        account_sid=settings.twilio_account_sid,
        auth_token=settings.twilio_auth_token,
        from_number=settings.twilio_phone_number,
        public_base_url=settings.public_base_url.rstrip("/") if settings.public_base_url else None,
    )


def build_twilio_client(cfg: TwilioConfig | None = None):
    from twilio.rest import Client

    cfg = cfg or get_twilio_config()
    return Client(cfg.account_sid, cfg.auth_token)


async def originate_call(twilio_client, *, to: str, from_number: str, answer_url: str) -> str:
    """Place an outbound call whose answer webhook is `answer_url`; returns the call SID.

    The Twilio SDK is blocking, so the request runs in a worker thread to keep
    relay sessions on the event loop responsive.
    """

    try:
        call = await asyncio.to_thread(
            twilio_client.calls.create,
            to=to,
            from_=from_number,
            url=answer_url,
        )
    except TwilioException as exc:
        detail = getattr(exc, "msg", None) or str(exc)
        LOGGER.error("Twilio call creation failed: %s", detail)
        raise CallOriginationError(f"Twilio error: {detail}") from exc
    except requests.RequestException as exc:
        # Transport failures from the SDK HTTP client (connection refused, timeouts).
        LOGGER.error("Twilio request failed: %s", exc)
        raise CallOriginationError(f"Twilio error: {exc}") from exc

    return str(call.sid)
