"""
Administrative routes for Mailchimp list setup.
List creation is rare and not idempotent; every call creates a new list.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from subscriber_sync.dependencies import get_subscription_service
from subscriber_sync.infrastructure.observability.logging import get_logger
from subscriber_sync.models.api.subscriber_request import CreateGroupRequest, CreateListRequest
from subscriber_sync.models.api.subscriber_response import RemoteListResponse
from subscriber_sync.services.mailchimp.client import (
    MailchimpError,
    MailchimpNotFoundError,
    MailchimpValidationError,
)
from subscriber_sync.services.subscription_service import SubscriptionService

logger = get_logger(__name__)

router = APIRouter(prefix="/admin/lists", tags=["admin"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=RemoteListResponse)
async def create_list(
    request: CreateListRequest,
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Create a Mailchimp list from the configured template."""
    try:
        remote_list = await service.create_list(
            request.name,
            contact=request.contact,
            campaign_defaults=request.campaign_defaults,
            permission_reminder=request.permission_reminder,
        )
    except MailchimpValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.detail or str(e))
    except MailchimpError as e:
        logger.error("Error creating list", list_name=request.name, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create list"
        )

    return RemoteListResponse(id=remote_list.id, name=remote_list.name)


@router.post(
    "/{list_name}/groups",
    status_code=status.HTTP_201_CREATED,
    response_model=RemoteListResponse,
)
async def create_group(
    list_name: str,
    request: CreateGroupRequest,
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Create an interest category in an existing list."""
    try:
        category = await service.create_group(list_name, request.title, request.type)
    except MailchimpNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except MailchimpValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.detail or str(e))
    except MailchimpError as e:
        logger.error("Error creating group", list_name=list_name, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create group"
        )

    return RemoteListResponse(id=category.id, name=category.title)
