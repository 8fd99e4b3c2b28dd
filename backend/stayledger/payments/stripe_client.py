"""Async Stripe API wrapper for card payments of booking fees."""

import logging

import stripe
from stripe import StripeClient

from stayledger.config import settings
from stayledger.models.booking import Booking

logger = logging.getLogger(__name__)

# Stripe amounts are in the smallest currency unit (paisa for BDT).
MINOR_UNITS = 100


def get_stripe_client() -> StripeClient:
    """Create a StripeClient instance with async HTTP support."""
    return StripeClient(
        settings.stripe_secret_key,
        http_client=stripe.HTTPXClient(),
    )


def to_minor_units(amount: int) -> int:
    return amount * MINOR_UNITS


def from_minor_units(amount: int) -> int:
    return amount // MINOR_UNITS


async def create_payment_intent(booking: Booking, amount: int) -> stripe.PaymentIntent:
    """Create a PaymentIntent collecting ``amount`` for the booking."""
    client = get_stripe_client()
    logger.info("Creating payment intent for booking %s: %d %s", booking.id, amount, settings.stripe_currency)
    return await client.v1.payment_intents.create_async(
        params={
            "amount": to_minor_units(amount),
            "currency": settings.stripe_currency,
            "metadata": {
                "booking_id": str(booking.id),
                "hotel_id": str(booking.hotel_id),
                "user_id": str(booking.user_id),
            },
            "automatic_payment_methods": {"enabled": True},
        }
    )


def construct_webhook_event(payload: bytes, sig_header: str) -> stripe.Event:
    """Verify and construct a Stripe webhook event (synchronous)."""
    client = get_stripe_client()
    return client.construct_event(payload, sig_header, settings.stripe_webhook_secret)
