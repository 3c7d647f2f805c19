import pytest
from pydantic import ValidationError

from jsonhttp.config import Settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)  # no stray .env
    for name in (
        "JSONHTTP_HTTP_TIMEOUT",
        "JSONHTTP_ERROR_BODY_LIMIT",
        "JSONHTTP_LOG_LEVEL",
        "JSONHTTP_LOG_JSON",
        "JSONHTTP_LOG_FILE",
        "JSONHTTP_LOG_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)


def test_settings_defaults():
    s = Settings()
    assert s.http_timeout == 30.0
    assert s.error_body_limit == 512
    assert s.log_level == "INFO"
    assert s.log_json is False
    assert s.log_file is None


def test_settings_env_overrides(monkeypatch):
    monkeypatch.setenv("JSONHTTP_HTTP_TIMEOUT", "2.5")
    monkeypatch.setenv("JSONHTTP_LOG_LEVEL", "debug")
    monkeypatch.setenv("JSONHTTP_LOG_JSON", "true")

    s = Settings()
    assert s.http_timeout == 2.5
    assert s.log_level == "DEBUG"
    assert s.log_json is True


def test_settings_dotenv_file(tmp_path):
    (tmp_path / ".env").write_text("JSONHTTP_ERROR_BODY_LIMIT=64\n", encoding="utf-8")
    assert Settings().error_body_limit == 64


def test_settings_init_by_field_name():
    assert Settings(http_timeout=7).http_timeout == 7.0


@pytest.mark.parametrize("env", [{"JSONHTTP_HTTP_TIMEOUT": "0"}, {"JSONHTTP_LOG_LEVEL": "loud"}])
def test_settings_validation(monkeypatch, env):
    for k, v in env.items():
        monkeypatch.setenv(k, v)
    with pytest.raises(ValidationError):
        Settings()
