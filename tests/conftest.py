from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


TEST_ENV = {
    "ELEVENLABS_AGENT_ID": "agent_test",
    "TWILIO_ACCOUNT_SID": "AC00000000000000000000000000000000",
    "TWILIO_AUTH_TOKEN": "token",
    "TWILIO_PHONE_NUMBER": "+15005550006",
}


@pytest.fixture(scope="session")
def app():
    # Must be set before the cached settings are first built.
    os.environ.update(TEST_ENV)
    os.environ.pop("PUBLIC_BASE_URL", None)

    import importlib

    from config.settings import get_settings

    get_settings.cache_clear()
    main = importlib.import_module("main")
    return main.app


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def fresh_settings(app):
    """Rebuild settings from the (monkeypatched) environment for one test."""

    from config.settings import get_settings

    get_settings.cache_clear()
    yield get_settings
    get_settings.cache_clear()
