from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from throttlegate.core.rate_limit import rate_limiters
from throttlegate.schemas.intake import (
    IntakeAcknowledgement,
    SalesInquiryRequest,
    SupportRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Intake"])


@router.post(
    "/support/request",
    response_model=IntakeAcknowledgement,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limiters.support)],
)
async def submit_support_request(payload: SupportRequest) -> IntakeAcknowledgement:
    """Accept a support ticket (throttled per client IP)."""
    logger.info(
        "support_request.received",
        extra={"urgency": payload.urgency, "category": payload.category},
    )
    return IntakeAcknowledgement(
        message=(
            "Your support request has been submitted successfully. "
            "Our team will respond to you shortly."
        ),
    )


@router.post(
    "/sales/inquiry",
    response_model=IntakeAcknowledgement,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limiters.sales)],
)
async def submit_sales_inquiry(payload: SalesInquiryRequest) -> IntakeAcknowledgement:
    """Accept a sales inquiry (throttled per client IP)."""
    logger.info(
        "sales_inquiry.received",
        extra={
            "inquiry_type": payload.inquiry_type,
            "module_count": len(payload.interested_modules),
        },
    )
    return IntakeAcknowledgement(
        message="Thank you for your interest. Our sales team will contact you soon.",
    )
