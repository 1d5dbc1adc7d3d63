from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Storage
    database_url: str = Field(
        default="sqlite+aiosqlite:///gold_monitor.db",
        validation_alias="DATABASE_URL",
    )
    history_retention_days: int = Field(default=365, ge=1, validation_alias="HISTORY_RETENTION_DAYS")
    memory_retention_days: int = Field(default=7, ge=1, validation_alias="MEMORY_RETENTION_DAYS")

    # Quote source
    quote_url: str = Field(
        default="https://api.jijinhao.com/realtime/quotejs.htm",
        validation_alias="QUOTE_URL",
    )
    quote_product: str = Field(default="工行积存金", validation_alias="QUOTE_PRODUCT")
    quote_timeout_seconds: float = Field(default=10.0, gt=0, validation_alias="QUOTE_TIMEOUT_SECONDS")

    # Notifications
    notify_enabled: bool = Field(default=False, validation_alias="NOTIFY_ENABLED")
    notify_channel: Literal["serverchan", "telegram"] = Field(
        default="serverchan",
        validation_alias="NOTIFY_CHANNEL",
    )
    notify_key: str = Field(default="", validation_alias="NOTIFY_KEY")
    telegram_bot_token: str = Field(default="", validation_alias="TELEGRAM_BOT_TOKEN")

    # Local alert
    alert_mode: Literal["console", "dialog", "none"] = Field(
        default="console",
        validation_alias="ALERT_MODE",
    )

    # Monitor form defaults (raw text, validated each cycle)
    buy_avg_price: str = Field(default="", validation_alias="BUY_AVG_PRICE")
    target_buy_price: str = Field(default="", validation_alias="TARGET_BUY_PRICE")
    target_sell_price: str = Field(default="", validation_alias="TARGET_SELL_PRICE")
    interval_seconds: str = Field(default="10", validation_alias="INTERVAL_SECONDS")
    stats_window_minutes: str = Field(default="60", validation_alias="STATS_WINDOW_MINUTES")

    profit_fixed_fee: float = Field(default=50.0, validation_alias="PROFIT_FIXED_FEE")
    max_log_lines: int = Field(default=1000, ge=1, validation_alias="MAX_LOG_LINES")

    # Logging / HTTP
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    http_host: str = Field(default="127.0.0.1", validation_alias="HTTP_HOST")
    http_port: int = Field(default=8000, validation_alias="HTTP_PORT")

    def notifications_configured(self) -> bool:
        if not self.notify_enabled or not self.notify_key.strip():
            return False
        if self.notify_channel == "telegram":
            return bool(self.telegram_bot_token.strip())
        return True
