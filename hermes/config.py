from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

VALID_INTERVALS: List[str] = ["1m", "3m", "5m", "15m", "30m", "1h", "2h", "4h", "1d"]


class Settings(BaseSettings):
    # Binance USD-M Futures
    BINANCE_APIKEY: str = Field("", env="BINANCE_APIKEY")
    BINANCE_SECRETKEY: str = Field("", env="BINANCE_SECRETKEY")
    BINANCE_REST_URL: str = Field("https://fapi.binance.com", env="BINANCE_REST_URL")
    BINANCE_WS_URL: str = Field("wss://fstream.binance.com/stream", env="BINANCE_WS_URL")

    # Telegram (production and development bots)
    TELEGRAM_APITOKEN: str = Field("", env="TELEGRAM_APITOKEN")
    TELEGRAM_CHAT_ID: str = Field("", env="TELEGRAM_CHAT_ID")
    DEV_TELEGRAM_APITOKEN: str = Field("", env="DEV_TELEGRAM_APITOKEN")
    DEV_TELEGRAM_CHAT_ID: str = Field("", env="DEV_TELEGRAM_CHAT_ID")
    ON_DEV: bool = Field(True, env="ON_DEV")  # send alerts to the development bot

    # Session
    INTERVAL: str = Field("1h", env="INTERVAL")
    INITIAL_BALANCE: float = Field(1000.0, env="INITIAL_BALANCE")  # ignored when TRADE_SIGNALS=true
    MAX_POSITIONS: int = Field(5, env="MAX_POSITIONS")
    NOTIFY_ON_SIGNALS: bool = Field(False, env="NOTIFY_ON_SIGNALS")
    SIMULATE_TRADES: bool = Field(True, env="SIMULATE_TRADES")
    TRADE_SIGNALS: bool = Field(False, env="TRADE_SIGNALS")  # real orders on the USD-M account

    # Candle buffer and indicators
    CANDLE_LIMIT: int = Field(200, env="CANDLE_LIMIT")
    EMA_FAST: int = Field(5, env="EMA_FAST")
    EMA_SLOW: int = Field(9, env="EMA_SLOW")
    EMA_TREND_SHORT: int = Field(50, env="EMA_TREND_SHORT")
    EMA_TREND_LONG: int = Field(200, env="EMA_TREND_LONG")
    RSI_PERIOD: int = Field(14, env="RSI_PERIOD")

    # Risk
    STOP_LOSS_PCT: float = Field(0.01, env="STOP_LOSS_PCT")
    TAKE_PROFIT_PCT: float = Field(0.04, env="TAKE_PROFIT_PCT")
    BALANCE_MARGIN_PCT: float = Field(0.05, env="BALANCE_MARGIN_PCT")  # kept aside from the wallet balance

    # Startup
    ALERTS_FILE: str = Field("alerts.json", env="ALERTS_FILE")
    BACKFILL_CONCURRENCY: int = Field(20, env="BACKFILL_CONCURRENCY")

    # Application
    APP_PORT: int = Field(8000, env="APP_PORT")
    AUTO_START: bool = Field(False, env="AUTO_START")
    LOG_DIR: str = Field(".", env="LOG_DIR")  # empty string disables the session log file

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("INTERVAL")
    @classmethod
    def _valid_interval(cls, value: str) -> str:
        if value not in VALID_INTERVALS:
            raise ValueError(f"interval must be one of {', '.join(VALID_INTERVALS)}")
        return value

    @field_validator("MAX_POSITIONS", "CANDLE_LIMIT", "BACKFILL_CONCURRENCY")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("STOP_LOSS_PCT", "TAKE_PROFIT_PCT")
    @classmethod
    def _valid_offset(cls, value: float) -> float:
        if not 0 < value < 1:
            raise ValueError("offset must be a fraction between 0 and 1")
        return value

    @property
    def telegram_token(self) -> str:
        return self.DEV_TELEGRAM_APITOKEN if self.ON_DEV else self.TELEGRAM_APITOKEN

    @property
    def telegram_chat_id(self) -> str:
        return self.DEV_TELEGRAM_CHAT_ID if self.ON_DEV else self.TELEGRAM_CHAT_ID


settings = Settings()
