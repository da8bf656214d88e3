import logging
from dataclasses import dataclass, field
from typing import Any

from core.errors import GatewayError, ValidationError
from data_access.gateways import ChargeConfig, NullNotifier, PaymentGateway, PersistenceGateway, UserNotifier
from services.payments import PaymentOptions, new_reference, parse_amount, record_gateway_donation, to_minor_units

logger = logging.getLogger(__name__)

PLATFORM_DONATION_TYPE = "platform_support"
ANONYMOUS_DONOR_NAME = "Anonymous Donor"


@dataclass
class PlatformDonationResult:
    reference: str
    record: dict | None = None
    warnings: list[str] = field(default_factory=list)


class PlatformSupportService:
    """Standalone contributions to the platform, not tied to a campaign."""

    def __init__(self, persistence: PersistenceGateway, payments: PaymentGateway,
                 notifier: UserNotifier | None = None, options: PaymentOptions | None = None):
        self.persistence = persistence
        self.payments = payments
        self.notifier = notifier or NullNotifier()
        self.options = options or PaymentOptions()

    async def donate(self, amount: Any, email: str, donor_name: str | None = None,
                     payment_token: str | None = None) -> PlatformDonationResult:
        value = parse_amount(amount)
        if not email or not email.strip():
            raise ValidationError("Please enter an email address for the receipt.", field="email")

        config = ChargeConfig(
            reference=new_reference(self.options.platform_reference_prefix),
            email=email,
            amount_minor=to_minor_units(value),
            currency=self.options.currency,
            metadata={"donation_type": PLATFORM_DONATION_TYPE},
            payment_token=payment_token,
        )
        try:
            gateway_reference = await self.payments.charge(config)
        except GatewayError as e:
            logger.warning(f"Platform donation {config.reference} not settled: {e}",
                           extra={"operation": "charge_platform", "entity_id": config.reference})
            self.notifier.notify_user("error", "Payment Failed", e.user_message)
            raise

        signed_in = bool(donor_name and donor_name.strip())
        record, warnings = await record_gateway_donation(
            self.persistence,
            self.notifier,
            amount=value,
            gateway_reference=gateway_reference,
            local_reference=config.reference,
            options=self.options,
            is_anonymous=not signed_in,
            guest_name=donor_name.strip() if signed_in else ANONYMOUS_DONOR_NAME,
            guest_email=email,
        )
        if record is not None:
            self.notifier.notify_user("success", "Thank you!", "Your support keeps UniFund running.")
        return PlatformDonationResult(config.reference, record, warnings)
