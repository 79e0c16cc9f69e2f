import logging
from contextlib import asynccontextmanager

import redis.asyncio as redis
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter

from .config import settings
from .errors import SourceUnavailableError
from .kafka_ledger import KafkaEventLog
from .ledger import HttpLedgerGateway
from .routers import booking_router, listing_router

# Setup logger
logger = logging.getLogger("availability_service")


def build_ledger():
    """
    Builds the LedgerSource selected by LEDGER_BACKEND. Listing reads always
    go through the HTTP gateway.
    """
    gateway = HttpLedgerGateway(settings.LEDGER_GATEWAY_URL, timeout=settings.LEDGER_TIMEOUT_SECONDS)
    if settings.LEDGER_BACKEND == "kafka":
        return KafkaEventLog(
            bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
            topic=settings.KAFKA_LEDGER_TOPIC,
            listings=gateway,
            fetch_timeout_ms=settings.KAFKA_FETCH_TIMEOUT_MS,
        )
    return gateway


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manages application startup and shutdown events.
    """
    logger.info("Availability Service starting up...")

    redis_client = redis.from_url(settings.REDIS_URL, encoding="utf-8")
    try:
        await FastAPILimiter.init(redis_client)
        logger.info("FastAPILimiter initialized with Redis.")
    except Exception as e:
        logger.error(f"Failed to initialize FastAPILimiter: {e}")

    ledger = build_ledger()
    try:
        if isinstance(ledger, KafkaEventLog):
            await ledger.start()
    except SourceUnavailableError:
        logger.error("Ledger source failed to start; closing connections.")
        await ledger.aclose()
        await redis_client.aclose()
        raise
    app.state.ledger = ledger
    logger.info(f"Ledger source ready ({settings.LEDGER_BACKEND}).")

    yield  # The application is now running

    # --- Code to run on shutdown ---
    logger.info("Availability Service shutting down...")
    await ledger.aclose()
    await redis_client.aclose()


app = FastAPI(
    title="Availability Service API",
    description="Booking state and per-day availability reconstructed from the booking ledger.",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(booking_router.router)
app.include_router(listing_router.router)


@app.get("/")
def read_root():
    return {"message": "Welcome to the Availability Service"}


@app.get("/health")
def health():
    return {"status": "ok", "service": "availability-service", "ledger_backend": settings.LEDGER_BACKEND}
