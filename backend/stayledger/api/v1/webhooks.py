"""Stripe webhook endpoint: card payments settling booking fees."""

import logging

import stripe
from fastapi import APIRouter, HTTPException, Request, status

from stayledger.database import async_session_factory
from stayledger.payments.stripe_client import construct_webhook_event
from stayledger.payments.webhooks import (
    handle_payment_intent_failed,
    handle_payment_intent_succeeded,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/webhooks", tags=["webhooks"])

EVENT_HANDLERS = {
    "payment_intent.succeeded": handle_payment_intent_succeeded,
    "payment_intent.payment_failed": handle_payment_intent_failed,
}


def _verified_event(payload: bytes, sig_header: str) -> stripe.Event:
    try:
        return construct_webhook_event(payload, sig_header)
    except stripe.SignatureVerificationError as e:
        logger.warning("Rejected Stripe webhook with a bad signature")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature") from e
    except ValueError as e:
        logger.warning("Rejected unparseable Stripe webhook payload")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload") from e


@router.post("/stripe")
async def stripe_webhook(request: Request) -> dict[str, str]:
    """Apply a verified Stripe event to its booking.

    There is no caller identity here, so the handler runs in its own
    transaction. A database failure propagates as a 503 and Stripe retries
    the delivery; ``confirm_payment`` is idempotent for repeats.
    """
    event = _verified_event(await request.body(), request.headers.get("stripe-signature", ""))

    handler = EVENT_HANDLERS.get(event.type)
    if handler is None:
        logger.debug("Ignoring Stripe event %s (%s)", event.id, event.type)
        return {"status": "ignored"}

    logger.info("Applying Stripe event %s (%s)", event.id, event.type)
    async with async_session_factory() as db, db.begin():
        await handler(db, event)

    return {"status": "processed"}
