"""Settings tests — env loading and the deployed-secret guard."""

import pytest
from pydantic import ValidationError

from synergy.config import Settings


def test_development_defaults():
    s = Settings()
    assert s.is_development
    assert s.ws_outbox_size == 256
    assert s.ws_require_membership is False


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SYNERGY_WS_OUTBOX_SIZE", "8")
    monkeypatch.setenv("SYNERGY_WS_REQUIRE_MEMBERSHIP", "true")
    s = Settings()
    assert s.ws_outbox_size == 8
    assert s.ws_require_membership is True


def test_default_secret_refused_when_deployed():
    with pytest.raises(ValidationError, match="SYNERGY_JWT_SECRET"):
        Settings(environment="production")


def test_real_secret_accepted_when_deployed():
    s = Settings(environment="production", jwt_secret="a-long-random-value")
    assert not s.is_development


def test_outbox_must_hold_something():
    with pytest.raises(ValidationError):
        Settings(ws_outbox_size=0)
