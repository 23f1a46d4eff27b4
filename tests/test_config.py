import pytest
from clarity.config import REQUIRED_VARS, Settings, validate_config


@pytest.fixture
def full_env(monkeypatch):
    for var in REQUIRED_VARS:
        monkeypatch.setenv(var, "x")
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://concierge.example.com/")


class TestValidateConfig:
    def test_missing_required_exits(self, monkeypatch, capsys):
        for var in REQUIRED_VARS:
            monkeypatch.delenv(var, raising=False)
        with pytest.raises(SystemExit) as exc:
            validate_config()
        assert exc.value.code == 1
        assert "TWILIO_ACCOUNT_SID" in capsys.readouterr().err

    def test_all_required_present(self, full_env):
        validate_config()


class TestSettings:
    def test_defaults(self, full_env, monkeypatch):
        for var in ("OPENAI_MODEL", "BRAND_NAME", "TTS_VOICE", "SESSION_TTL_SECONDS", "LOG_LEVEL", "PORT"):
            monkeypatch.delenv(var, raising=False)
        settings = Settings.from_env()
        assert settings.public_base_url == "https://concierge.example.com"
        assert settings.openai_model == "gpt-4o-mini"
        assert settings.brand_name == "Clarity Health Concierge"
        assert settings.tts_voice == "Polly.Joanna-Neural"
        assert settings.session_ttl_seconds == 1800
        assert settings.port == 8000

    def test_overrides(self, full_env, monkeypatch):
        monkeypatch.setenv("SESSION_TTL_SECONDS", "60")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        settings = Settings.from_env()
        assert settings.session_ttl_seconds == 60
        assert settings.log_level == "DEBUG"
