import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from pydantic import Field

from models.base import StoredModel


class DonationStatus(str, Enum):
    PENDING = "pending"
    RECEIVED = "received"
    REJECTED = "rejected"


class Donation(StoredModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    # None marks a platform-level tip
    campaign_id: str | None = None

    amount: Decimal = Field(gt=0)
    is_anonymous: bool = False
    guest_name: str | None = None
    guest_email: str | None = None

    # storage path for proof uploads, synthetic gateway reference for tips
    proof_of_payment_url: str
    status: DonationStatus = DonationStatus.PENDING

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
