import asyncio
import logging

import stripe

from core.errors import GatewayError
from data_access.gateways import ChargeConfig

logger = logging.getLogger(__name__)


class StripePaymentGateway:
    """
    Confirms a PaymentIntent in one call using the payment method collected
    by the client. The charge reference doubles as the Stripe idempotency key.
    """

    def __init__(self, api_key: str):
        self.api_key = api_key

    async def charge(self, config: ChargeConfig) -> str:
        if not config.payment_token:
            raise GatewayError("No payment method supplied", entity_id=config.reference,
                               operation="charge")
        try:
            intent = await asyncio.to_thread(
                stripe.PaymentIntent.create,
                api_key=self.api_key,
                amount=config.amount_minor,
                currency=config.currency,
                payment_method=config.payment_token,
                confirm=True,
                receipt_email=config.email,
                automatic_payment_methods={"enabled": True, "allow_redirects": "never"},
                metadata={**config.metadata, "reference": config.reference},
                idempotency_key=config.reference,
            )
        except stripe.StripeError as e:
            logger.error(f"Error charging {config.reference}: {e}",
                         extra={"operation": "charge", "entity_id": config.reference})
            raise GatewayError(f"Charge {config.reference} failed",
                               entity_id=config.reference, operation="charge") from e

        if intent.status != "succeeded":
            logger.warning(f"Charge {config.reference} ended in status {intent.status}.",
                           extra={"operation": "charge", "entity_id": config.reference})
            raise GatewayError(f"Charge {config.reference} not settled: {intent.status}",
                               entity_id=config.reference, operation="charge")

        logger.info(f"Successfully settled charge {config.reference} as {intent.id}.")
        return intent.id
