"""
tests.test_settings

Env-driven SDK configuration.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from apitoolkit.settings import DEFAULT_ROOT_URL, Settings


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APITOOLKIT_API_KEY", "from-env")
    monkeypatch.setenv("APITOOLKIT_DEBUG", "true")
    monkeypatch.setenv("APITOOLKIT_REDACT_HEADERS", '["Authorization", "Cookie"]')
    monkeypatch.setenv("APITOOLKIT_REDACT_REQUEST_BODY", '["$.password"]')

    settings = Settings()

    assert settings.api_key == "from-env"
    assert settings.debug is True
    assert settings.redact_headers == ["Authorization", "Cookie"]
    assert settings.redact_request_body == ["$.password"]
    assert settings.redact_response_body == []


def test_api_key_hidden_from_repr() -> None:
    assert "super-secret" not in repr(Settings(api_key="super-secret"))


def test_base_url() -> None:
    assert Settings().base_url == DEFAULT_ROOT_URL
    assert Settings(root_url="http://localhost:8080/").base_url == "http://localhost:8080"


def test_settings_are_immutable() -> None:
    settings = Settings()
    with pytest.raises(ValidationError):
        settings.debug = True  # type: ignore[misc]


def test_publish_mode_is_validated() -> None:
    with pytest.raises(ValidationError):
        Settings(publish_mode="sometimes")  # type: ignore[arg-type]


# --- Module Notes -----------------------------------------------------------
# Keyword arguments override env vars, which is how the other tests configure clients.
