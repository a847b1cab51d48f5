import uvicorn

from typo_api import __main__ as runner
from typo_api.settings import get_settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("SQLITE_TIMEOUT_SECONDS", "DEFAULT_PAGE_SIZE", "MAX_PAGE_SIZE", "HOST", "PORT"):
            monkeypatch.delenv(name, raising=False)
        settings = get_settings()
        assert settings.sqlite_timeout_seconds == 5.0
        assert settings.default_page_size == 20
        assert settings.max_page_size == 1000
        assert settings.host == "0.0.0.0"
        assert settings.port == 8000

    def test_invalid_numbers_fall_back_to_defaults(self, monkeypatch):
        monkeypatch.setenv("SQLITE_TIMEOUT_SECONDS", "soon")
        monkeypatch.setenv("MAX_PAGE_SIZE", "-5")
        monkeypatch.setenv("PORT", "0")
        settings = get_settings()
        assert settings.sqlite_timeout_seconds == 5.0
        assert settings.max_page_size == 1000
        assert settings.port == 8000

    def test_numbers_keep_their_type(self, monkeypatch):
        monkeypatch.setenv("SQLITE_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("DEFAULT_PAGE_SIZE", "50")
        settings = get_settings()
        assert settings.sqlite_timeout_seconds == 2.5
        assert isinstance(settings.default_page_size, int)
        assert settings.default_page_size == 50


class TestRunner:
    def test_serves_the_app_on_configured_address(self, monkeypatch):
        calls = []
        monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
        monkeypatch.setenv("HOST", "127.0.0.1")
        monkeypatch.setenv("PORT", "9001")
        monkeypatch.setenv("LOG_LEVEL", "warning")

        runner.main()

        assert calls == [("typo_api.main:app", {"host": "127.0.0.1", "port": 9001, "log_level": "warning"})]
