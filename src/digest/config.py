"""Application configuration contract."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MISSED_SLOT_POLICIES = {"run", "skip"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(alias="APP_ENV", default="dev")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO")

    openai_api_key: str = Field(alias="OPENAI_API_KEY", default="")
    openai_base_url: str = Field(alias="OPENAI_BASE_URL", default="https://api.openai.com/v1")
    openai_model: str = Field(alias="OPENAI_MODEL", default="")
    fallback_api_key: str = Field(alias="FALLBACK_API_KEY", default="")
    fallback_base_url: str = Field(alias="FALLBACK_BASE_URL", default="")
    fallback_model: str = Field(alias="FALLBACK_MODEL", default="")
    provider_timeout_seconds: int = Field(alias="PROVIDER_TIMEOUT_SECONDS", default=600)

    google_api_key: str = Field(alias="GOOGLE_API_KEY", default="")
    google_cse_cx: str = Field(alias="GOOGLE_CSE_CX", default="")
    google_search_url: str = Field(
        alias="GOOGLE_SEARCH_URL", default="https://www.googleapis.com/customsearch/v1"
    )
    fetch_proxy_url: str = Field(alias="FETCH_PROXY_URL", default="https://r.jina.ai/")
    tool_timeout_seconds: int = Field(alias="TOOL_TIMEOUT_SECONDS", default=60)

    step_retry_limit: int = Field(alias="STEP_RETRY_LIMIT", default=2)
    step_retry_delay_seconds: float = Field(alias="STEP_RETRY_DELAY_SECONDS", default=60.0)
    # Iteration indices run from 0 to MAX_ITERATIONS - 1.
    max_iterations: int = Field(alias="MAX_ITERATIONS", default=1025)
    schedule_missed_slots: str = Field(alias="SCHEDULE_MISSED_SLOTS", default="run")
    run_max_concurrent: int = Field(alias="RUN_MAX_CONCURRENT", default=4)


def validate_settings_for_env(settings: Settings) -> None:
    problems: list[str] = []
    if settings.schedule_missed_slots.strip().lower() not in MISSED_SLOT_POLICIES:
        problems.append("SCHEDULE_MISSED_SLOTS(run|skip)")
    if settings.step_retry_limit < 0:
        problems.append("STEP_RETRY_LIMIT(>= 0)")
    if settings.max_iterations < 1:
        problems.append("MAX_ITERATIONS(>= 1)")

    if settings.app_env == "prod":
        required_non_empty = {
            "OPENAI_API_KEY": settings.openai_api_key,
            "GOOGLE_API_KEY": settings.google_api_key,
            "GOOGLE_CSE_CX": settings.google_cse_cx,
        }
        for key, value in required_non_empty.items():
            if not value.strip():
                problems.append(key)

    if problems:
        keys = ", ".join(sorted(set(problems)))
        raise ValueError(f"invalid configuration: {keys}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
