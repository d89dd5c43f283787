from collections.abc import Iterator

import pytest

from ideaforge.config import DEFAULT_GEMINI_MODELS, get_settings


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
  get_settings.cache_clear()
  yield
  get_settings.cache_clear()


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
  monkeypatch.setenv("IDEAFORGE_ALLOWED_ORIGINS", "http://localhost:5173, https://app.example.com")
  monkeypatch.delenv("IDEAFORGE_GEMINI_MODELS", raising=False)
  monkeypatch.delenv("IDEAFORGE_MODULE_TIMEOUT_SECONDS", raising=False)

  settings = get_settings()

  assert settings.allowed_origins == ("http://localhost:5173", "https://app.example.com")
  assert settings.gemini_models == DEFAULT_GEMINI_MODELS
  assert settings.module_timeout_seconds == 90.0
  assert settings.idea_min_chars == 10
  assert settings.idea_max_chars == 5000


def test_wildcard_origin_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
  monkeypatch.setenv("IDEAFORGE_ALLOWED_ORIGINS", "*")
  with pytest.raises(ValueError):
    get_settings()


def test_unknown_content_provider_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
  monkeypatch.setenv("IDEAFORGE_CONTENT_PROVIDER", "oracle")
  with pytest.raises(ValueError):
    get_settings()


def test_idea_bounds_must_be_ordered(monkeypatch: pytest.MonkeyPatch) -> None:
  monkeypatch.setenv("IDEAFORGE_IDEA_MIN_CHARS", "50")
  monkeypatch.setenv("IDEAFORGE_IDEA_MAX_CHARS", "20")
  with pytest.raises(ValueError):
    get_settings()


def test_overrides_are_parsed(monkeypatch: pytest.MonkeyPatch) -> None:
  monkeypatch.setenv("IDEAFORGE_GEMINI_MODELS", "gemini-2.5-pro, gemini-2.5-flash")
  monkeypatch.setenv("IDEAFORGE_ON_DEMAND_MODULES", "code_preview")
  monkeypatch.setenv("IDEAFORGE_MODULE_TIMEOUT_SECONDS", "12.5")
  monkeypatch.setenv("IDEAFORGE_PG_DSN", "postgresql://localhost/ideaforge")
  monkeypatch.setenv("IDEAFORGE_LOG_HTTP_4XX", "yes")

  settings = get_settings()

  assert settings.gemini_models == ("gemini-2.5-pro", "gemini-2.5-flash")
  assert settings.on_demand_modules == ("code_preview",)
  assert settings.module_timeout_seconds == 12.5
  assert settings.pg_dsn == "postgresql://localhost/ideaforge"
  assert settings.log_http_4xx is True


def test_non_positive_timeout_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
  monkeypatch.setenv("IDEAFORGE_MODULE_TIMEOUT_SECONDS", "0")
  with pytest.raises(ValueError):
    get_settings()
