from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Gateway in front of the ledger node (events + listing reads)
    LEDGER_GATEWAY_URL: str = "http://ledger-gateway:8080"
    LEDGER_TIMEOUT_SECONDS: float = 10.0

    # "kafka" reads events from a mirrored topic; listings still come from the gateway
    LEDGER_BACKEND: Literal["http", "kafka"] = "http"

    # --- Scan window ---
    # Position (block height) the booking contract was deployed at. 0 = unknown.
    DEPLOY_POSITION: int = 0
    # When the deploy position is unknown, only the most recent N positions are
    # scanned. Bookings whose Booked event is older than that are not visible.
    DEFAULT_SCAN_WINDOW: int = 500_000

    # --- Booking rendering ---
    CHECKIN_HOUR_UTC: int = 15
    PAYMENT_TOKEN_DECIMALS: int = 6
    PAYMENT_TOKEN_SYMBOL: str = "USDC"

    # --- KAFKA SETTINGS ---
    KAFKA_BOOTSTRAP_SERVERS: str = "kafka:9092"
    KAFKA_LEDGER_TOPIC: str = "staybook_ledger"
    KAFKA_FETCH_TIMEOUT_MS: int = 1000

    # Redis backs the request rate limiter
    REDIS_URL: str = "redis://redis:6379/0"
    RATE_LIMIT_TIMES: int = 30
    RATE_LIMIT_SECONDS: int = 60

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
