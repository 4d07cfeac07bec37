"""Thin async wrapper around the Stripe SDK.

The SDK is synchronous, so calls run in a worker thread via asyncio.to_thread.
"""

import asyncio
import logging

import stripe

from leadmarket.app.config import get_settings

logger = logging.getLogger(__name__)


class WebhookVerificationError(Exception):
    """Raised when a webhook payload or its signature cannot be trusted."""


def is_configured() -> bool:
    return bool(get_settings().stripe_secret_key)


async def create_payment_intent(amount_cents: int, currency: str, metadata: dict[str, str]) -> dict:
    """Create a PaymentIntent and return ``{"id", "client_secret"}``."""

    def _create():
        intent = stripe.PaymentIntent.create(
            api_key=get_settings().stripe_secret_key,
            amount=amount_cents,
            currency=currency,
            automatic_payment_methods={"enabled": True},
            metadata=metadata,
        )
        return {"id": intent.id, "client_secret": intent.client_secret}

    result = await asyncio.to_thread(_create)
    logger.info("Created PaymentIntent %s for %d %s", result["id"], amount_cents, currency)
    return result


def verify_webhook(payload: bytes, signature: str | None) -> stripe.Event:
    """Verify a ``Stripe-Signature`` header and return the constructed event.

    Raises WebhookVerificationError for a missing/invalid signature or a
    payload that is not JSON.
    """
    secret = get_settings().stripe_webhook_secret
    if not secret:
        raise WebhookVerificationError("Webhook signing secret is not configured")
    if not signature:
        raise WebhookVerificationError("Missing Stripe-Signature header")
    try:
        return stripe.Webhook.construct_event(payload, signature, secret)
    except ValueError as e:
        raise WebhookVerificationError("Invalid payload") from e
    except stripe.SignatureVerificationError as e:
        raise WebhookVerificationError(str(e)) from e
