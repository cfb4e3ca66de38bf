import logging

from tas_builder.settings import Settings, is_placeholder_key
from tas_builder.errors import ConfigurationError
from tas_builder.agents.llm.base import LLMClient, RetryPolicy
from tas_builder.agents.llm.http import HTTPChatClient
from tas_builder.agents.llm.openai_sdk import OpenAIClient

logger = logging.getLogger(__name__)

PROVIDERS = ("openai", "ollama")


def validate_configuration(settings: Settings) -> None:
    """Fail before any network call when the provider cannot possibly work."""
    errors = []
    if settings.llm_provider not in PROVIDERS:
        errors.append(f"LLM_PROVIDER must be one of {', '.join(PROVIDERS)}, got {settings.llm_provider!r}")
    elif settings.llm_provider == "openai":
        if is_placeholder_key(settings.llm_api_key):
            errors.append("LLM_API_KEY is required. Set it in your environment or .env file.")
        if not settings.llm_model:
            errors.append("LLM_MODEL is required.")
    if settings.max_attempts < 1:
        errors.append("MAX_ATTEMPTS must be at least 1")
    if settings.retry_max_retries < 0:
        errors.append("RETRY_MAX_RETRIES cannot be negative")

    if errors:
        raise ConfigurationError(
            "Environment validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )


def build_llm_client(settings: Settings) -> LLMClient:
    validate_configuration(settings)

    common = dict(
        retry=RetryPolicy(
            max_retries=settings.retry_max_retries,
            initial_delay=settings.retry_initial_delay,
            max_delay=settings.retry_max_delay,
            multiplier=settings.retry_multiplier,
        ),
        max_tokens=settings.max_tokens,
        json_temperature=settings.json_temperature,
        text_temperature=settings.text_temperature,
    )

    if settings.llm_provider == "ollama":
        client = HTTPChatClient(
            base_url=settings.ollama_base_url,
            model=settings.ollama_model,
            api_key=settings.llm_api_key or "ollama",
            timeout=settings.request_timeout_seconds,
            **common,
        )
    else:
        client = OpenAIClient(
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            timeout=settings.request_timeout_seconds,
            **common,
        )

    logger.info(
        "LLM client ready: provider=%s model=%s key=%s",
        settings.llm_provider, client.model_name, settings.masked_api_key(),
    )
    return client
