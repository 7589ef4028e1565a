from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root (one level above server/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Credits
    initial_credits: int = 10
    credits_in_bundle: int = 10

    # Job processing
    processing_delay_seconds: float = 5.0
    generation_timeout_seconds: float = 60.0
    generator_backend: Literal["placeholder", "screenshot"] = "placeholder"

    # Screenshot provider
    screenshot_api_url: str = "https://api.pikwy.com/"
    screenshot_api_token: str = ""

    # Request limits
    default_width: int = 1280
    default_height: int = 1024
    max_dimension: int = 10000
    max_prompt_length: int = 280
    max_images_per_job: int = 4

    # App settings
    require_auth: bool = True
    cors_origins: str = "http://localhost:8080"
    log_level: str = "INFO"

    # Client
    backend_host: str = "http://localhost:3001"
    polling_interval_seconds: float = 1.0
    max_polling_attempts: int = 60

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


settings = Settings()
