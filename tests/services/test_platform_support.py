"""Tests: standalone platform support donations."""

from decimal import Decimal

import pytest

from core.errors import GatewayError, ValidationError
from data_access.gateways import Collection
from services.platform_support import PlatformSupportService

from tests.fakes import FakePaymentGateway, InMemoryPersistence, RecordingNotifier


@pytest.fixture
def service_parts():
    return InMemoryPersistence(), FakePaymentGateway(reference="pi_platform_1"), RecordingNotifier()


async def test_guest_donation_is_anonymous(service_parts):
    persistence, payments, notifier = service_parts
    service = PlatformSupportService(persistence, payments, notifier)

    result = await service.donate("50", "guest@x.com", payment_token="pm_card_visa")

    [config] = payments.charges
    assert config.reference.startswith("PLATFORM_")
    assert config.amount_minor == 5000
    assert config.metadata == {"donation_type": "platform_support"}

    [row] = persistence.rows(Collection.DONATIONS)
    assert row["campaign_id"] is None
    assert row["status"] == "received"
    assert row["is_anonymous"] is True
    assert row["guest_name"] == "Anonymous Donor"
    assert row["guest_email"] == "guest@x.com"
    assert row["proof_of_payment_url"] == "stripe_ref_pi_platform_1"
    assert result.reference == config.reference
    assert notifier.kinds() == ["success"]


async def test_signed_in_donor_is_named(service_parts):
    persistence, payments, notifier = service_parts

    await PlatformSupportService(persistence, payments, notifier).donate(
        Decimal("100"), "thandi@uct.ac.za", donor_name=" Thandi Mokoena ")

    row = persistence.rows(Collection.DONATIONS)[0]
    assert row["is_anonymous"] is False
    assert row["guest_name"] == "Thandi Mokoena"


@pytest.mark.parametrize("amount,email", [
    ("0", "a@b.com"), ("-1", "a@b.com"), ("0.004", "a@b.com"), ("10", ""), ("10", "  "),
])
async def test_amount_and_email_are_required(service_parts, amount, email):
    persistence, payments, notifier = service_parts

    with pytest.raises(ValidationError):
        await PlatformSupportService(persistence, payments, notifier).donate(amount, email)

    assert payments.charges == []


async def test_gateway_failure_records_nothing(service_parts):
    persistence, payments, notifier = service_parts
    payments.cancel()

    with pytest.raises(GatewayError):
        await PlatformSupportService(persistence, payments, notifier).donate("10", "a@b.com")

    assert persistence.writes == []
    assert notifier.kinds() == ["error"]
