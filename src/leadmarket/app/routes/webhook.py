"""Stripe webhook endpoint.

The raw body is read before parsing so the signature is checked against
exactly the bytes Stripe signed.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from leadmarket.domain.schemas import WebhookAck
from leadmarket.infra.database import get_db
from leadmarket.infra.stripe_client import WebhookVerificationError, verify_webhook
from leadmarket.services.billing_service import BillingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhook"])


@router.post("/api/webhook", response_model=WebhookAck)
async def stripe_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    body_bytes = await request.body()
    try:
        event = verify_webhook(body_bytes, request.headers.get("stripe-signature"))
    except WebhookVerificationError as e:
        logger.warning("Webhook signature verification failed: %s", e)
        raise HTTPException(status_code=400, detail=f"Webhook Error: {e}")

    logger.info("Stripe webhook: id=%s type=%s", event["id"], event["type"])
    duplicate = await BillingService(db).handle_event(event)
    return WebhookAck(received=True, duplicate=duplicate)
