# subscriber_sync/main.py
"""
Application entry point: builds the record store, the Mailchimp client and the
lifecycle service from explicit settings and ties their lifetime to the app.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from subscriber_sync.config import Settings, get_settings
from subscriber_sync.infrastructure.observability.logging import (
    get_logger,
    log_request,
    setup_logging,
)
from subscriber_sync.middleware.request_context import RequestContextMiddleware
from subscriber_sync.routes import admin, health, mailing_list
from subscriber_sync.services.mailchimp.client import MailchimpClient
from subscriber_sync.services.record_store import RecordStore
from subscriber_sync.services.redis_client import RedisClient
from subscriber_sync.services.subscriber_lifecycle import SubscriberLifecycle
from subscriber_sync.services.subscription_service import SubscriptionService

logger = get_logger(__name__)


def build_services(app: FastAPI, settings: Settings) -> None:
    """Construct the service graph and attach it to ``app.state``."""
    redis_client = RedisClient(settings)
    mailchimp_client = MailchimpClient(settings)

    record_store = RecordStore(redis_client, collection=settings.SUBSCRIBER_COLLECTION)
    subscription_service = SubscriptionService(mailchimp_client, settings)

    app.state.settings = settings
    app.state.redis_client = redis_client
    app.state.mailchimp_client = mailchimp_client
    app.state.record_store = record_store
    app.state.subscription_service = subscription_service
    app.state.lifecycle = SubscriberLifecycle(record_store, subscription_service, settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""
    settings = get_settings()
    setup_logging(log_level=settings.LOG_LEVEL)

    logger.info(
        "Application starting",
        environment=settings.environment,
        debug=settings.debug,
        list_name=settings.MAILCHIMP_LIST_NAME,
    )

    build_services(app, settings)

    try:
        logger.info("Initializing Redis connection")
        await app.state.redis_client.initialize()
    except Exception as e:
        logger.error("Failed to initialize services", error=str(e))
        await app.state.mailchimp_client.close()
        raise

    logger.info("All services initialized successfully")

    yield

    # Shutdown sequence (reverse order)
    logger.info("Application shutting down")

    shutdown_errors = []

    try:
        await app.state.mailchimp_client.close()
    except Exception as e:
        logger.error("Error closing Mailchimp client", error=str(e))
        shutdown_errors.append(f"Mailchimp: {e}")

    try:
        await app.state.redis_client.close()
    except Exception as e:
        logger.error("Error closing Redis", error=str(e))
        shutdown_errors.append(f"Redis: {e}")

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Subscriber Sync",
    description="Mailing list subscribers kept in sync between Redis and Mailchimp",
    version="0.1.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(health.router)
app.include_router(mailing_list.router)
app.include_router(admin.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response


# Added last so it wraps the logging middleware and the request id is bound first
app.add_middleware(RequestContextMiddleware)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
