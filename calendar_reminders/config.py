"""Runtime configuration for the calendar reminder service."""
import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

# Load environment variables from a local .env if present
load_dotenv()

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Configuration resolved from environment variables."""

    environment: str = "development"
    frontend_url: str = "http://localhost:3000"
    calendar_api_url: str = "http://localhost:8080/api"  # External calendar backend
    calendar_path: str = "/calendar"  # Page notifications navigate back to
    preference_store_path: str = ".notification_preferences.json"
    backend_timeout: float = 10.0  # Seconds
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.environment = os.environ.get("ENVIRONMENT", self.environment)
        self.frontend_url = os.environ.get("FRONTEND_URL", self.frontend_url)
        self.calendar_api_url = os.environ.get("CALENDAR_API_URL", self.calendar_api_url).rstrip("/")
        self.calendar_path = os.environ.get("CALENDAR_PATH", self.calendar_path)
        self.preference_store_path = os.environ.get("PREFERENCE_STORE_PATH", self.preference_store_path)
        self.log_level = os.environ.get("LOG_LEVEL", self.log_level).upper()

        timeout = os.environ.get("BACKEND_TIMEOUT")
        if timeout:
            try:
                self.backend_timeout = float(timeout)
            except ValueError:
                logger.warning(f"Ignoring invalid BACKEND_TIMEOUT value: {timeout}")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()
