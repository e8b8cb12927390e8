from functools import lru_cache
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ondertekenen.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SIGNHOST_BASE_URL = "https://api.signhost.com/api"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = Field(default="ondertekenen")
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True, description="Render logs as JSON; console output otherwise")

    # Signhost also runs under locale domains such as ondertekenen.nl
    signhost_base_url: str = Field(default=DEFAULT_SIGNHOST_BASE_URL, description="Signhost REST API base URL")
    signhost_app_key: Optional[str] = Field(default=None, description="Application key (APPKey header)")
    signhost_api_key: Optional[str] = Field(default=None, description="User API key (APIKey header)")
    signhost_shared_secret: Optional[str] = Field(default=None, description="Shared secret for postback checksums")
    signhost_timeout_seconds: int = Field(default=30, gt=0, description="Total request timeout in seconds")
    signhost_connect_timeout_seconds: int = Field(default=10, gt=0, description="Connect timeout in seconds")

    @model_validator(mode="before")
    @classmethod
    def validate_signhost_base_url(cls, data: dict) -> dict:
        """
        Normalize the base URL and reject anything that is not HTTPS.

        All communication with Signhost has to go over SSL, so a plain
        http:// URL is a configuration error rather than something to warn about.
        """
        if not isinstance(data, dict):
            return data
        data = data.copy()

        base_url = data.get("signhost_base_url")
        if base_url is None:
            return data

        base_url = str(base_url).strip().rstrip("/")
        if not base_url.lower().startswith("https://"):
            raise ValueError(f"signhost_base_url must use https, got '{base_url}'")

        data["signhost_base_url"] = base_url
        return data

    @model_validator(mode="after")
    def check_production_credentials(self) -> "Settings":
        """
        Require both API keys in production; only warn elsewhere.
        """
        missing = [
            name
            for name in ("signhost_app_key", "signhost_api_key")
            if not (getattr(self, name) or "").strip()
        ]
        if not missing:
            return self

        if self.environment == "production":
            raise ValueError(
                f"When environment='production', the following settings are required: {', '.join(missing)}"
            )

        logger.warning("config.signhost.credentials_missing", missing=missing, environment=self.environment)
        return self


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: The cached settings instance
    """
    return Settings()


def clear_settings_cache() -> None:
    """
    Clear the cached settings instance.

    After calling this function, the next call to get_settings() will
    create a new Settings instance with updated configuration.
    """
    get_settings.cache_clear()
