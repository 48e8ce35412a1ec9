"""Provider endpoint resolution."""

from digest.config import Settings
from digest.errors import ConfigError
from digest.models import Credentials
from digest.providers.base import ProviderEndpoint

DEFAULT_MODEL = "o3-mini"
DEFAULT_FALLBACK_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_FALLBACK_MODEL = "gemini-2.0-flash"


def resolve_primary_endpoint(
    settings: Settings,
    model_hint: str | None = None,
    credentials: Credentials | None = None,
) -> ProviderEndpoint:
    api_key = (credentials.api_key if credentials else None) or settings.openai_api_key
    base_url = (credentials.base_url if credentials else None) or settings.openai_base_url
    if not api_key.strip():
        raise ConfigError("OPENAI_API_KEY is required (or an api_key override)")
    return ProviderEndpoint(
        api_key=api_key,
        base_url=base_url,
        model=model_hint or settings.openai_model or DEFAULT_MODEL,
    )


def resolve_fallback_endpoint(settings: Settings) -> ProviderEndpoint | None:
    if not settings.fallback_api_key.strip():
        return None
    return ProviderEndpoint(
        api_key=settings.fallback_api_key,
        base_url=settings.fallback_base_url or DEFAULT_FALLBACK_BASE_URL,
        model=settings.fallback_model or DEFAULT_FALLBACK_MODEL,
    )
