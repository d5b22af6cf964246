# subscriber_sync/routes/health.py
"""
Health check endpoints for the record store and the Mailchimp API.
"""

import time

from fastapi import APIRouter, Depends

from subscriber_sync.dependencies import get_record_store, get_subscription_service
from subscriber_sync.infrastructure.observability.logging import log_health_check
from subscriber_sync.services.record_store import RecordStore
from subscriber_sync.services.subscription_service import SubscriptionService

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "subscriber-sync"}


@router.get("/readyz")
async def readyz(
    store: RecordStore = Depends(get_record_store),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
):
    """
    Readiness check for both backing systems.
    """
    checks = {}
    overall_ok = True

    # 1) Redis record store
    t0 = time.time()
    try:
        redis_ok = await store.ping()
        latency_ms = round((time.time() - t0) * 1000, 1)
        checks["redis"] = {"ok": bool(redis_ok), "latency_ms": latency_ms}
        log_health_check("redis", bool(redis_ok), latency_ms)
        overall_ok = overall_ok and bool(redis_ok)
    except Exception as e:
        checks["redis"] = {"ok": False, "error": f"{type(e).__name__}: {e}"}
        overall_ok = False

    # 2) Mailchimp API
    t0 = time.time()
    try:
        mailchimp_ok = await subscriptions.ping()
        latency_ms = round((time.time() - t0) * 1000, 1)
        checks["mailchimp"] = {"ok": bool(mailchimp_ok), "latency_ms": latency_ms}
        log_health_check("mailchimp", bool(mailchimp_ok), latency_ms)
        overall_ok = overall_ok and bool(mailchimp_ok)
    except Exception as e:
        checks["mailchimp"] = {"ok": False, "error": f"{type(e).__name__}: {e}"}
        overall_ok = False

    return {"overall_ok": overall_ok, "checks": checks}
