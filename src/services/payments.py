import logging
import secrets
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from core.errors import PersistenceError, ValidationError
from data_access.gateways import Collection, PersistenceGateway, UserNotifier
from models.donation import Donation, DonationStatus

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ANONYMOUS_NAME = "Anonymous"
RECORDING_FAILED_MESSAGE = "Donation processed but failed to record in system. Please contact support."


@dataclass(frozen=True)
class PaymentOptions:
    currency: str = "zar"
    tip_reference_prefix: str = "TIP_"
    platform_reference_prefix: str = "PLATFORM_"
    gateway_reference_prefix: str = "stripe_ref_"
    guest_email_placeholder: str = "guest@unifund.co.za"


def parse_amount(value, field: str = "amount") -> Decimal:
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Please enter a valid amount.", field=field) from None
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Please enter a valid amount.", field=field)
    # the gateway charges whole cents
    if amount != amount.quantize(CENT):
        raise ValidationError("Amounts can have at most two decimal places.", field=field)
    return amount


def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).to_integral_value(rounding=ROUND_HALF_UP))


def new_reference(prefix: str) -> str:
    return f"{prefix}{secrets.randbelow(1_000_000_000) + 1}"


async def record_gateway_donation(
    persistence: PersistenceGateway,
    notifier: UserNotifier,
    *,
    amount: Decimal,
    gateway_reference: str,
    local_reference: str,
    options: PaymentOptions,
    is_anonymous: bool,
    guest_name: str | None,
    guest_email: str | None,
) -> tuple[dict | None, list[str]]:
    """
    Store a gateway-settled contribution as a platform-level donation.

    The gateway has already moved the money, so a failed insert is reported
    rather than raised.
    """
    reference = gateway_reference or local_reference
    donation = Donation(
        campaign_id=None,
        amount=amount,
        is_anonymous=is_anonymous,
        guest_name=guest_name,
        guest_email=guest_email,
        proof_of_payment_url=f"{options.gateway_reference_prefix}{reference}",
        status=DonationStatus.RECEIVED,
    )
    try:
        records = await persistence.insert(Collection.DONATIONS, donation.to_item())
    except PersistenceError as e:
        logger.error(f"Settled payment {reference} could not be recorded: {e}",
                     extra={"operation": "record_gateway_donation", "entity_id": reference})
        notifier.notify_user("error", "Error", RECORDING_FAILED_MESSAGE)
        return None, [f"Payment {reference} settled but was not recorded; reconcile manually."]

    logger.info(f"Recorded settled payment {reference} as donation {donation.id}.")
    return records[0], []
