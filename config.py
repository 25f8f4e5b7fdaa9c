# config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv
import os

# Load .env file
load_dotenv()

class Settings(BaseSettings):
    # Server settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3001"))
    STATIC_DIR: str = os.getenv("STATIC_DIR", "public")

    # Arweave gateway settings
    ARWEAVE_GATEWAY_URL: str = os.getenv("ARWEAVE_GATEWAY_URL", "https://arweave.net")
    GRAPHQL_PAGE_SIZE: int = int(os.getenv("GRAPHQL_PAGE_SIZE", "100"))

    # Politeness delays between upstream calls (seconds)
    HEIGHT_PROBE_DELAY: float = float(os.getenv("HEIGHT_PROBE_DELAY", "0.2"))
    PAGE_DELAY: float = float(os.getenv("PAGE_DELAY", "0.1"))
    BLOCK_DELAY: float = float(os.getenv("BLOCK_DELAY", "0.5"))

    # Visual search settings
    VISUAL_SEARCH_DAYS: int = int(os.getenv("VISUAL_SEARCH_DAYS", "7"))

    # API settings
    DEBUG: bool = True
    ALLOWED_ORIGINS: str = ""  # Comma-separated list of allowed origins in production
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Monitoring settings
    TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    TELEGRAM_CHAT_ID: str = os.getenv("TELEGRAM_CHAT_ID", "")

    # Notification settings
    NOTIFICATION_WINDOW: int = int(os.getenv("NOTIFICATION_WINDOW", "300"))  # 5 minutes
    MAX_SIMILAR_NOTIFICATIONS: int = int(os.getenv("MAX_SIMILAR_NOTIFICATIONS", "3"))

    # Health check settings
    HEALTH_CHECK_INTERVAL: int = int(os.getenv("HEALTH_CHECK_INTERVAL", "30"))  # seconds, 0 disables
    MAX_UNHEALTHY_COUNT: int = int(os.getenv("MAX_UNHEALTHY_COUNT", "3"))

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def get_allowed_origins(self) -> list:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.TELEGRAM_BOT_TOKEN and self.TELEGRAM_CHAT_ID)

# Create settings instance
settings = Settings()
