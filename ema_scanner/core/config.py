"""Environment-driven settings for the scanner and the status API."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ema_scanner.core.intervals import EmaInterval, parse_interval


class Settings(BaseSettings):
    """Application settings loaded from environment variables or a local .env file."""

    APP_NAME: str = "EMA Crossover Scanner"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    VERSION: str = "0.1.0"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    BINANCE_API_KEY: str = ""
    BINANCE_API_SECRET: str = ""
    BINANCE_BASE_URL: str = "https://api.binance.com"
    BINANCE_TIMEOUT_S: float = 10.0
    QUOTE_ASSET: str = "USDT"

    EMAIL_USER: str = ""
    EMAIL_APP_PASSWORD: str = ""
    EMAIL_NOTIFY_TO: str = ""
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    EMAIL_MAX_ATTEMPTS: int = Field(default=3, gt=0)
    EMAIL_RETRY_DELAY_S: float = 1.0

    EMA_SHORT_PERIOD: int = Field(default=50, gt=0)
    EMA_LONG_PERIOD: int = Field(default=200, gt=0)
    EMA_INTERVAL: str = "OneDay"

    MAX_CONCURRENCY: int = 10
    KLINE_LIMIT: int = 400
    BATCH_SIZE: int = 25
    BATCH_PAUSE_S: float = 2.0
    CYCLE_SLEEP_S: float = 600.0
    CYCLE_ERROR_SLEEP_S: float = 120.0
    STATE_PATH: str = "lastChecked.json"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def ema_interval(self) -> EmaInterval:
        """Return the configured candle interval, falling back to one day."""

        return parse_interval(self.EMA_INTERVAL)

    def max_concurrency(self) -> int:
        return max(1, self.MAX_CONCURRENCY)

    def batch_size(self) -> int:
        return max(1, self.BATCH_SIZE)

    def quote_asset(self) -> str:
        return self.QUOTE_ASSET.strip().upper()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings to avoid repeated environment parsing."""

    return Settings()
