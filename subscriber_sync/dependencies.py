"""
FastAPI dependencies exposing the services built in the application lifespan.
Tests swap these out through ``app.dependency_overrides``.
"""

from fastapi import Request

from subscriber_sync.services.record_store import RecordStore
from subscriber_sync.services.subscriber_lifecycle import SubscriberLifecycle
from subscriber_sync.services.subscription_service import SubscriptionService


def get_record_store(request: Request) -> RecordStore:
    return request.app.state.record_store


def get_subscription_service(request: Request) -> SubscriptionService:
    return request.app.state.subscription_service


def get_lifecycle(request: Request) -> SubscriberLifecycle:
    return request.app.state.lifecycle
