"""
Cal.com Webhook Handler.
Verifies signatures, stores the delivery and applies it to bookings.
"""

import logging

from fastapi import APIRouter, Request, HTTPException, Depends
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.services.cal_webhook_service import (
    CalWebhookEnvelope,
    CalWebhookService,
    verify_signature,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/cal")
async def cal_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """
    Handle Cal.com webhook events.

    Key events:
    - BOOKING_CREATED: new booking mirrored and announced
    - BOOKING_CONFIRMED / CANCELLED / REJECTED / MEETING_ENDED: status change
    - BOOKING_RESCHEDULED: times updated
    - PAYMENT_COMPLETED: payment fields set
    """
    body = await request.body()

    signature = request.headers.get("cal-webhook-signature")
    user_agent = request.headers.get("user-agent")
    ip_address = (
        request.headers.get("x-forwarded-for")
        or request.headers.get("x-real-ip")
        or (request.client.host if request.client else None)
    )

    if not verify_signature(body, signature):
        logger.warning(f"Invalid Cal webhook signature from {ip_address}")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    try:
        envelope = CalWebhookEnvelope.model_validate_json(body)
    except ValidationError as e:
        logger.error(f"Invalid Cal webhook payload: {e}")
        raise HTTPException(status_code=400, detail="Invalid webhook payload")

    logger.info(
        f"Cal webhook received: {envelope.trigger_event} "
        f"booking={envelope.payload.id} uid={envelope.payload.uid}"
    )

    service = CalWebhookService(db)
    event = await service.record_event(
        envelope,
        signature=signature,
        ip_address=ip_address,
        user_agent=user_agent,
    )

    # Processing failures stay on the stored row; Cal.com still gets 200
    processed = await service.process_event(event, envelope)

    return {"status": "ok", "processed": processed}
