"""Shared FastAPI dependencies.

Separated to avoid circular imports between route modules, and so tests can
override the Twilio client and the agent connector.
"""

from __future__ import annotations

from functools import lru_cache, partial

from config.settings import get_settings
from integrations.elevenlabs_client import conversation_url, open_conversation
from integrations.twilio_client import TwilioConfig, build_twilio_client, get_twilio_config
from relay.errors import ConfigurationError
from relay.session import AgentConnector


@lru_cache(maxsize=1)
def _twilio_client_factory():
    return build_twilio_client()


def get_twilio_client():
    return _twilio_client_factory()


def get_twilio_cfg() -> TwilioConfig:
    return get_twilio_config()


def get_agent_connector() -> AgentConnector:
    settings = get_settings()
    if not settings.elevenlabs_agent_id:
        raise ConfigurationError("ELEVENLABS_AGENT_ID is not configured")
    url = conversation_url(settings.elevenlabs_conversation_url, settings.elevenlabs_agent_id)
    return partial(open_conversation, url)
