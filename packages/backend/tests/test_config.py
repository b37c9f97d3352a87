"""Settings validation tests."""

import pytest
from pydantic import ValidationError

from shareme.config import PLACEHOLDER_SECRET, Settings


def test_placeholder_secret_allowed_in_development():
    assert Settings(environment="development").jwt_secret == PLACEHOLDER_SECRET


def test_placeholder_secret_rejected_in_production():
    with pytest.raises(ValidationError):
        Settings(environment="production", jwt_secret=PLACEHOLDER_SECRET)


def test_real_secret_accepted_in_production():
    s = Settings(environment="production", jwt_secret="x" * 48)
    assert s.environment == "production"


def test_unknown_notifier_rejected():
    with pytest.raises(ValidationError):
        Settings(environment="test", reset_notifier="carrier-pigeon")


def test_webhook_notifier_needs_url():
    with pytest.raises(ValidationError):
        Settings(environment="test", reset_notifier="webhook", reset_webhook_url="")


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("SHAREME_ACCESS_TOKEN_EXPIRE_MINUTES", "5")
    monkeypatch.setenv("SHAREME_ENVIRONMENT", "test")
    assert Settings().access_token_expire_minutes == 5
