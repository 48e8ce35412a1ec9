import pytest

from digest.config import get_settings

_ENV_KEYS = (
    "APP_ENV",
    "LOG_LEVEL",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "OPENAI_MODEL",
    "FALLBACK_API_KEY",
    "FALLBACK_BASE_URL",
    "FALLBACK_MODEL",
    "GOOGLE_API_KEY",
    "GOOGLE_CSE_CX",
    "GOOGLE_SEARCH_URL",
    "FETCH_PROXY_URL",
    "STEP_RETRY_LIMIT",
    "STEP_RETRY_DELAY_SECONDS",
    "MAX_ITERATIONS",
    "SCHEDULE_MISSED_SLOTS",
    "RUN_MAX_CONCURRENT",
)


@pytest.fixture(autouse=True)
def test_env(tmp_path, monkeypatch):
    # Keep a developer's .env out of the settings under test.
    monkeypatch.chdir(tmp_path)
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-primary")
    monkeypatch.setenv("OPENAI_BASE_URL", "http://primary.local/v1")
    monkeypatch.setenv("GOOGLE_API_KEY", "g-key")
    monkeypatch.setenv("GOOGLE_CSE_CX", "g-cx")
    monkeypatch.setenv("GOOGLE_SEARCH_URL", "http://search.local/customsearch/v1")
    monkeypatch.setenv("FETCH_PROXY_URL", "http://reader.local/")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
