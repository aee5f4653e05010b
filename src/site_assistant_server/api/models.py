"""
API Models

Pydantic request/response models for the assistant, newsletter and health
endpoints. Field aliases keep the camelCase wire format used by the website's
JavaScript while the Python side stays snake_case.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------
# Assistant Models
# ---------------------------------------------------------------------

class AssistantRequest(BaseModel):
    """
    Visitor question. ``website`` is the hidden honeypot field.

    Both fields accept any JSON value; the route checks the honeypot before
    validating ``query``.
    """
    query: Optional[Any] = None
    website: Optional[Any] = None

    model_config = ConfigDict(extra="ignore")


class AssistantResponse(BaseModel):
    """
    Generated answer. ``remaining`` is only present when rate limiting is on.
    """
    text: str
    remaining: Optional[int] = Field(default=None, ge=0)

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------
# Newsletter Models
# ---------------------------------------------------------------------

class SubscriptionRequest(BaseModel):
    """
    Newsletter signup payload.

    Fields are loosely typed so the honeypot is checked before anything
    else; the route validates values and answers in the subscription shape.
    """
    email: Optional[Any] = None
    list_id: Optional[Any] = Field(default=None, alias="listId")
    base_url: Optional[Any] = Field(default=None, alias="baseUrl")
    template_id: Optional[Any] = Field(default=None, alias="templateId")
    website: Optional[Any] = None

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SubscriptionResponse(BaseModel):
    success: bool
    message: str

    model_config = ConfigDict(extra="forbid")


class NonceResponse(BaseModel):
    nonce: Optional[str] = None

    model_config = ConfigDict(extra="forbid")
