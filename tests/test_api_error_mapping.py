from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from relay.errors import ConfigurationError


def _missing_twilio_config():
    raise ConfigurationError("TWILIO_PHONE_NUMBER is not configured")


def test_relay_errors_are_rendered_as_json(app):
    import api.dependencies as deps

    app.dependency_overrides[deps.get_twilio_client] = lambda: object()
    app.dependency_overrides[deps.get_twilio_cfg] = _missing_twilio_config

    with TestClient(app) as client:
        response = client.post("/make-outbound-call", json={"to": "+15551234567"})
    app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"error": "TWILIO_PHONE_NUMBER is not configured"}


def test_startup_fails_without_required_configuration(app, fresh_settings, monkeypatch):
    monkeypatch.delenv("ELEVENLABS_AGENT_ID", raising=False)

    with pytest.raises(ConfigurationError, match="ELEVENLABS_AGENT_ID"):
        with TestClient(app):
            pass
