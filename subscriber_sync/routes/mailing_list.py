"""
Mailing List API Routes
HTTP endpoints for adding, reading, tagging and deleting subscribers.
Lifecycle outcomes are translated to status codes here and nowhere else.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from subscriber_sync.dependencies import get_lifecycle, get_record_store
from subscriber_sync.infrastructure.observability.logging import get_logger
from subscriber_sync.models.api.subscriber_request import AddSubscriberRequest, AddTagRequest
from subscriber_sync.models.api.subscriber_response import (
    RemoteMemberResponse,
    SubscriberListResponse,
    SubscriberOperationResponse,
    SubscriberRecordResponse,
)
from subscriber_sync.models.domain.subscriber_domain import LifecycleResult, SubscriberOutcome
from subscriber_sync.services.mailchimp.client import MailchimpError
from subscriber_sync.services.record_store import RecordStore, StorageError
from subscriber_sync.services.subscriber_lifecycle import SubscriberLifecycle

logger = get_logger(__name__)

router = APIRouter(prefix="/mailing-list", tags=["mailing-list"])

FAILURE_STATUS_CODES = {
    SubscriberOutcome.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    SubscriberOutcome.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    SubscriberOutcome.STORAGE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    SubscriberOutcome.REMOTE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    SubscriberOutcome.CRITICAL_INCONSISTENCY: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _to_response(result: LifecycleResult, success_code: int) -> JSONResponse:
    body = SubscriberOperationResponse(
        email=result.email,
        operation=result.operation,
        status="success" if result.ok else "failed",
        outcome=result.outcome.value,
        message=result.message,
        warnings=result.warnings,
    )
    status_code = success_code if result.ok else FAILURE_STATUS_CODES[result.outcome]
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.get("", response_model=SubscriberListResponse)
async def list_subscribers(
    limit: int = Query(default=0, ge=0, description="Maximum records to return (0 = all)"),
    store: RecordStore = Depends(get_record_store),
):
    """List stored subscribers."""
    try:
        records = await store.get_all(limit)
    except StorageError as e:
        logger.error("Error listing subscribers", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list subscribers",
        )

    return SubscriberListResponse(
        items=len(records),
        data=[record.model_dump() for record in records],
    )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SubscriberOperationResponse)
async def add_subscriber(
    request: AddSubscriberRequest,
    lifecycle: SubscriberLifecycle = Depends(get_lifecycle),
):
    """Add an email to the store and subscribe it in Mailchimp."""
    result = await lifecycle.add_subscriber(request.email, request.group)
    return _to_response(result, status.HTTP_201_CREATED)


@router.get("/{email}", response_model=SubscriberRecordResponse)
async def get_subscriber(email: str, store: RecordStore = Depends(get_record_store)):
    """Get a stored subscriber by email."""
    try:
        record = await store.get_by_key(email)
    except StorageError as e:
        logger.error("Error reading subscriber", email=email, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to read subscriber",
        )

    if record is None:
        body = SubscriberOperationResponse(
            email=email,
            operation="get",
            status="failed",
            outcome=SubscriberOutcome.NOT_FOUND.value,
            message="Email not found",
        )
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=body.model_dump())

    return SubscriberRecordResponse(email=email, data=record.model_dump())


@router.delete("/{email}", response_model=SubscriberOperationResponse)
async def delete_subscriber(email: str, lifecycle: SubscriberLifecycle = Depends(get_lifecycle)):
    """Delete a subscriber from the store."""
    result = await lifecycle.remove_subscriber(email)
    return _to_response(result, status.HTTP_200_OK)


@router.get("/{email}/mailchimp", response_model=RemoteMemberResponse)
async def get_mailchimp_member(
    email: str, lifecycle: SubscriberLifecycle = Depends(get_lifecycle)
):
    """Look up the email's membership in the Mailchimp list."""
    try:
        remote = await lifecycle.lookup_remote_status(email)
    except MailchimpError as e:
        logger.error("Error looking up Mailchimp member", email=email, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to query Mailchimp",
        )

    if not remote.is_member:
        body = SubscriberOperationResponse(
            email=email,
            operation="get",
            status="failed",
            outcome=SubscriberOutcome.NOT_FOUND.value,
            message="User not found in Mailchimp",
        )
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=body.model_dump())

    return RemoteMemberResponse(email=email, result=remote.member.to_dict())


@router.post("/{email}/tags", response_model=SubscriberOperationResponse)
async def tag_subscriber(
    email: str,
    request: AddTagRequest,
    lifecycle: SubscriberLifecycle = Depends(get_lifecycle),
):
    """Tag a subscriber in Mailchimp, subscribing them if needed."""
    result = await lifecycle.tag_subscriber(email, request.tag)
    return _to_response(result, status.HTTP_200_OK)
