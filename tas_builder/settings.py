## Application settings configuration

from pydantic_settings import BaseSettings, SettingsConfigDict

APP_VERSION = "0.1.0"
PLACEHOLDER_KEYS = ("your-key-here", "your_api_key_here", "PLACEHOLDER")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = "dev"
    log_level: str = "INFO"

    # Provider: "openai" (any OpenAI-compatible API) or "ollama" (local, plain HTTP)
    llm_provider: str = "openai"
    llm_api_key: str = ""
    llm_base_url: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-4o-mini"

    # Ollama settings
    ollama_base_url: str = "http://localhost:11434/v1"
    ollama_model: str = "llama3.1"

    # Generation budget
    max_tokens: int = 16000
    reflect_max_tokens: int = 2000
    json_temperature: float = 0.3
    text_temperature: float = 0.7
    request_timeout_seconds: float = 120.0

    # Transport retry (per call)
    retry_max_retries: int = 3
    retry_initial_delay: float = 1.0
    retry_max_delay: float = 10.0
    retry_multiplier: float = 2.0

    # Repair loop
    max_attempts: int = 3
    reflect_enabled: bool = True
    max_total_seconds: float | None = 600.0

    history_size: int = 10
    system_prompt_path: str | None = None

    @property
    def is_development(self) -> bool:
        return self.env == "dev"

    def masked_api_key(self) -> str:
        if not self.llm_api_key:
            return "NOT SET"
        return "***" + self.llm_api_key[-4:]


def is_placeholder_key(value: str | None) -> bool:
    if not value or not value.strip():
        return True
    return value in PLACEHOLDER_KEYS or value.startswith("<")


settings = Settings()
