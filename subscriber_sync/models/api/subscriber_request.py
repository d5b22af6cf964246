# subscriber_sync/models/api/subscriber_request.py
"""
Mailing list API request models.
Used by routes for input parsing. Email format is checked by the lifecycle
service, not here, so malformed addresses get the "invalid input" response
instead of a schema error.
"""

from pydantic import BaseModel, Field


class AddSubscriberRequest(BaseModel):
    """Request to add an email to the mailing list."""

    email: str = Field(..., description="Email address to subscribe")
    group: str | None = Field(None, description="Mailchimp group (interest) name")


class AddTagRequest(BaseModel):
    """Request to tag a subscriber in Mailchimp."""

    tag: str = Field(..., min_length=1, max_length=100, description="Tag name")


class CreateListRequest(BaseModel):
    """Request to create a Mailchimp list from the configured template."""

    name: str = Field(..., min_length=1, max_length=100, description="List name")
    contact: dict[str, str] | None = Field(None, description="Overrides for the contact block")
    campaign_defaults: dict[str, str] | None = Field(
        None, description="Overrides for campaign defaults"
    )
    permission_reminder: str | None = Field(None, description="Permission reminder text")


class CreateGroupRequest(BaseModel):
    """Request to create an interest category in a list."""

    title: str = Field(..., min_length=1, max_length=100, description="Category title")
    type: str = Field(
        default="hidden",
        pattern="^(checkboxes|dropdown|radio|hidden)$",
        description="Mailchimp category display type",
    )
