"""Client settings loaded from environment variables (prefix ``GLIF_``)."""

from functools import lru_cache

from pydantic_settings import BaseSettings

from glif.models import (
    DEFAULT_BASE_URL,
    DEFAULT_RATE_BURST,
    DEFAULT_RATE_LIMIT,
    DEFAULT_TIMEOUT,
    ClientConfig,
)


class Settings(BaseSettings):
    # glif API
    base_url: str = DEFAULT_BASE_URL
    api_token: str = ""
    timeout: float = DEFAULT_TIMEOUT  # seconds

    # Client-side rate limiting
    rate_limit: float = DEFAULT_RATE_LIMIT  # requests per second
    rate_burst: int = DEFAULT_RATE_BURST
    rate_limit_timeout: float | None = None  # unset = wait indefinitely

    # Logging
    log_level: str = "INFO"
    log_file: str = ""  # Empty = stdout only

    model_config = {"env_prefix": "GLIF_", "env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    def to_client_config(self) -> ClientConfig:
        return ClientConfig(
            base_url=self.base_url,
            api_token=self.api_token,
            timeout=self.timeout,
            rate_limit=self.rate_limit,
            rate_burst=self.rate_burst,
            rate_limit_timeout=self.rate_limit_timeout,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
