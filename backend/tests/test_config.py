import pytest
from pydantic import ValidationError

from devspace.config import Settings


def test_secret_key_is_required(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(ValidationError) as exc_info:
        Settings(_env_file=None)
    assert "SECRET_KEY" in str(exc_info.value)


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "from-env")
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("RATE_LIMIT", "10/minute")
    config = Settings(_env_file=None)
    assert config.SECRET_KEY == "from-env"
    assert config.RATE_LIMIT == "10/minute"
    assert config.is_development is False
