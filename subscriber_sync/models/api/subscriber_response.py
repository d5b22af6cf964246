# subscriber_sync/models/api/subscriber_response.py
"""
Mailing list API response models.
Used by routes for output formatting.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field


class SubscriberOperationResponse(BaseModel):
    """Envelope returned by every single-email operation."""

    email: str | None = Field(None, description="Email the operation applied to")
    operation: str = Field(..., description="Operation name (get, add, delete, tag)")
    status: Literal["success", "failed"] = Field(..., description="Overall status")
    outcome: str | None = Field(None, description="Detailed lifecycle outcome")
    message: str | None = Field(None, description="Human readable result")
    warnings: list[str] = Field(default_factory=list, description="Non-fatal problems")


class SubscriberRecordResponse(BaseModel):
    """Stored subscriber record."""

    email: str = Field(..., description="Subscriber email")
    operation: str = Field(default="get")
    status: Literal["success", "failed"] = Field(default="success")
    data: dict[str, Any] = Field(..., description="Stored record")


class SubscriberListResponse(BaseModel):
    """Response for listing stored subscribers."""

    operation: str = Field(default="get")
    status: Literal["success", "failed"] = Field(default="success")
    items: int = Field(..., description="Number of records returned")
    data: list[dict[str, Any]] = Field(..., description="Stored records")


class RemoteMemberResponse(BaseModel):
    """Mailchimp membership lookup."""

    email: str = Field(..., description="Email looked up")
    operation: str = Field(default="get")
    status: Literal["success", "failed"] = Field(default="success")
    result: dict[str, Any] = Field(..., description="Mailchimp member")


class RemoteListResponse(BaseModel):
    """Created Mailchimp list or interest category."""

    id: str | None = Field(None, description="Mailchimp identifier")
    name: str = Field(..., description="List name or category title")
    operation: str = Field(default="create")
    status: Literal["success", "failed"] = Field(default="success")
