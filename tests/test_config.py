import pytest
from pydantic import ValidationError

from subpar import Subpar
from subpar.config import Settings, load_settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("SUBPAR_ENVIRONMENT", raising=False)
    monkeypatch.delenv("SUBPAR_LOG_LEVEL", raising=False)
    monkeypatch.delenv("SUBPAR_HOST", raising=False)
    settings = load_settings()
    assert settings.environment == "development"
    assert settings.log_level == "INFO"
    assert settings.port == 8080
    assert settings.path == "/"
    assert settings.push_token_secret is None
    assert settings.is_production is False


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SUBPAR_ENVIRONMENT", "production")
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("SUBPAR_PATH", "/push")
    monkeypatch.setenv("SUBPAR_LOG_LEVEL", "debug")
    settings = load_settings()
    assert settings.is_production is True
    assert settings.port == 9000
    assert settings.path == "/push"
    assert settings.log_level == "DEBUG"


def test_generic_environment_fallback(monkeypatch):
    monkeypatch.delenv("SUBPAR_ENVIRONMENT", raising=False)
    monkeypatch.setenv("ENVIRONMENT", "staging")
    assert load_settings().environment == "staging"


def test_server_takes_defaults_from_settings(monkeypatch):
    monkeypatch.setenv("SUBPAR_PATH", "/push")
    monkeypatch.setenv("PORT", "9001")
    srv = Subpar("test")
    assert srv.path == "/push"
    assert srv.port == 9001
    assert srv.healthcheck_path == "/push/healthcheck"


def test_explicit_options_win_over_settings(monkeypatch):
    monkeypatch.setenv("SUBPAR_PATH", "/push")
    srv = Subpar("test", path="/other", environment="production")
    assert srv.path == "/other"
    assert srv.environment == "production"


def test_settings_frozen():
    settings = Settings()
    with pytest.raises(ValidationError):
        settings.port = 1
    assert settings.port == 8080


def test_dotenv_file_is_read(monkeypatch, tmp_path):
    monkeypatch.delenv("SUBPAR_ENVIRONMENT", raising=False)
    (tmp_path / ".env").write_text("SUBPAR_ENVIRONMENT=production\nSUBPAR_LOG_DIR=/var/log/subpar\nPORT=9100\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    settings = load_settings()
    assert settings.is_production is True
    assert settings.log_dir == "/var/log/subpar"
    assert settings.port == 9100


def test_environment_wins_over_dotenv_file(monkeypatch, tmp_path):
    (tmp_path / ".env").write_text("SUBPAR_ENVIRONMENT=production\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SUBPAR_ENVIRONMENT", "staging")
    assert load_settings().environment == "staging"
