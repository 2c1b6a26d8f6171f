"""Configuration for the key system."""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from .keys import KEY_EXPIRY_HOURS, SWEEP_INTERVAL_SECONDS
from .monetizzy import DEFAULT_TIMEOUT, MONETIZZY_DOMAIN, MONETIZZY_LINK_TYPE, MONETIZZY_SHORTEN_URL


class Settings(BaseSettings):
    """Application configuration, read from the environment and .env."""

    # Monetizzy settings
    monetizzy_token: str = Field(
        default="",
        description="Shared token callers must send as monetizzyToken; also the bearer for Monetizzy. Empty disables /gerar",
    )
    monetizzy_api_url: str = Field(default=MONETIZZY_SHORTEN_URL)
    monetizzy_domain: str = Field(default=MONETIZZY_DOMAIN)
    monetizzy_link_type: int = Field(default=MONETIZZY_LINK_TYPE)
    gateway_timeout_seconds: float = Field(default=DEFAULT_TIMEOUT, gt=0)

    # Storage settings
    keys_file: str = Field(default="keys.json", description="JSON file holding all keys")
    storage_strict: bool = Field(
        default=False,
        description="Refuse to start on a corrupt keys file instead of starting empty",
    )

    # Key lifetime
    key_expiry_hours: float = Field(default=KEY_EXPIRY_HOURS, gt=0)
    sweep_interval_seconds: float = Field(default=SWEEP_INTERVAL_SECONDS, gt=0)

    # Server settings
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)
    allowed_origins: str = Field(
        default="*",
        description="Comma-separated list of origins allowed by CORS",
    )
    max_body_bytes: int = Field(default=100 * 1024, gt=0)
    debug: bool = Field(default=False, description="Include exception details in 500 responses")

    # Logging settings
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)
    log_json: bool = Field(default=False)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def origin_list(self) -> List[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


def load_settings(**overrides) -> Settings:
    """Load configuration from environment."""
    return Settings(**overrides)
