"""Pydantic schemas for the rate-limited intake endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class RegistrationRequest(BaseModel):
    """Account registration payload."""

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(..., min_length=8, description="Account password (never logged).")


class ResendVerificationRequest(BaseModel):
    """Request to send another verification email to ``email``."""

    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)


class SupportRequest(BaseModel):
    """Support ticket submission."""

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    subject: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=10)
    urgency: Literal["low", "medium", "high"]
    category: Literal["technical", "account", "billing", "other"]


class SalesInquiryRequest(BaseModel):
    """Sales inquiry submission. Accepts camelCase field names from clients."""

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    organization: str = Field(..., min_length=1, max_length=255)
    organization_size: str | None = Field(None, alias="organizationSize")
    interested_modules: list[str] = Field(..., min_length=1, alias="interestedModules")
    message: str = Field(..., min_length=10)
    inquiry_type: Literal["pricing", "demo", "features", "other"] = Field(..., alias="inquiryType")

    model_config = ConfigDict(populate_by_name=True)


class IntakeAcknowledgement(BaseModel):
    """Response returned once an intake request has been accepted."""

    success: bool = True
    message: str
