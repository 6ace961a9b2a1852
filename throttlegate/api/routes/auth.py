from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from throttlegate.core.rate_limit import rate_limiters
from throttlegate.schemas.intake import (
    IntakeAcknowledgement,
    RegistrationRequest,
    ResendVerificationRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=IntakeAcknowledgement,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limiters.registration)],
)
async def register(payload: RegistrationRequest) -> IntakeAcknowledgement:
    """Accept an account registration.

    Throttled per client IP by the registration preset.
    """
    logger.info("registration.received", extra={"email": payload.email})
    return IntakeAcknowledgement(
        message="Registration received. Check your email to verify your account.",
    )


@router.post(
    "/resend-verification",
    response_model=IntakeAcknowledgement,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(rate_limiters.resend_verification)],
)
async def resend_verification(payload: ResendVerificationRequest) -> IntakeAcknowledgement:
    """Queue another verification email.

    Throttled per email address, so one client cannot flood an inbox by
    rotating IPs.
    """
    logger.info("verification.resend_requested", extra={"email": payload.email})
    return IntakeAcknowledgement(
        message="If an account exists for this email, a verification email has been sent.",
    )
