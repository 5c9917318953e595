from __future__ import annotations

import pytest

REQUIRED_ENV = ("ELEVENLABS_AGENT_ID", "TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_PHONE_NUMBER")


def _clear_required(monkeypatch) -> None:
    for name in REQUIRED_ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults_and_required_present(fresh_settings, monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("HOST", raising=False)
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = fresh_settings()

    assert settings.port == 8000
    assert settings.host == "0.0.0.0"
    assert settings.log_level == "DEBUG"
    assert settings.elevenlabs_conversation_url == "wss://api.elevenlabs.io/v1/convai/conversation"
    assert settings.missing_required() == []


def test_missing_required_lists_env_names(fresh_settings, monkeypatch):
    _clear_required(monkeypatch)
    monkeypatch.setenv("TWILIO_AUTH_TOKEN", "token")

    from config.settings import Settings

    settings = Settings(_env_file=None)
    assert settings.missing_required() == [
        "ELEVENLABS_AGENT_ID",
        "TWILIO_ACCOUNT_SID",
        "TWILIO_PHONE_NUMBER",
    ]


def test_run_exits_when_credentials_missing(app, monkeypatch):
    import main
    from config.settings import Settings

    _clear_required(monkeypatch)

    def _must_not_start(*args, **kwargs):
        raise AssertionError("server must not start without configuration")

    monkeypatch.setattr(main, "get_settings", lambda: Settings(_env_file=None))
    monkeypatch.setattr(main.uvicorn, "run", _must_not_start)

    with pytest.raises(SystemExit) as excinfo:
        main.run()
    assert excinfo.value.code == 1


def test_run_serves_on_configured_address(fresh_settings, monkeypatch):
    import main

    monkeypatch.setenv("PORT", "9001")
    monkeypatch.delenv("HOST", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda app, **kwargs: calls.append(kwargs))

    main.run()

    assert calls == [{"host": "0.0.0.0", "port": 9001, "log_level": "info"}]
