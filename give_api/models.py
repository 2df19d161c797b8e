"""
Pydantic response models for the API.

Record payloads are flattened GiveWP records whose fields depend on the
GiveWP version, so they are typed as plain JSON objects.  The envelope key is
always the resource kind.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class DonationEnvelope(BaseModel):
    """Response body for GET /donation/{id}."""
    donation: dict[str, Any] = Field(
        ...,
        description="Donation fields plus nested donor (with meta), form, campaign "
                    "(with goal_stats) and subscription; missing relations are null",
    )


class DonorEnvelope(BaseModel):
    """Response body for GET /donor/{id}."""
    donor: dict[str, Any] = Field(..., description="Donor fields plus every custom field under 'meta'")


class SubscriptionEnvelope(BaseModel):
    """Response body for GET /subscription/{id}."""
    subscription: dict[str, Any] = Field(..., description="Subscription fields")


class CampaignEnvelope(BaseModel):
    """Response body for GET /campaign/{id}."""
    campaign: dict[str, Any] = Field(..., description="Campaign fields")


class FormEnvelope(BaseModel):
    """Response body for GET /form/{id}."""
    form: dict[str, Any] = Field(..., description="Donation form fields including levels")


class ErrorResponse(BaseModel):
    """Standard error response body."""
    code: str = Field(..., description="Machine-readable error code", examples=["donation_not_found"])
    error: str = Field(..., description="Human-readable message", examples=["Donation not found."])
    status_code: int = Field(..., ge=400, le=599, description="HTTP status code", examples=[404])


class HealthOut(BaseModel):
    status: str = Field(..., examples=["ok"])
    database: str = Field(..., description="Configured GiveWP database path")
    tables_missing: list[str] = Field(default_factory=list)
