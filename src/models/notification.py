import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import Field

from models.base import StoredModel


class NotificationType(str, Enum):
    DONATION_RECEIVED = "donation_received"
    VERIFICATION_UPDATE = "verification_update"
    CAMPAIGN_UPDATE = "campaign_update"
    PAYMENT_MADE = "payment_made"
    SUCCESS = "success"
    ERROR = "error"


class UserRole(str, Enum):
    STUDENT = "student"
    DONOR = "donor"
    ADMIN = "admin"


class Notification(StoredModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    title: str
    message: str
    type: NotificationType
    read: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Profile(StoredModel):
    id: str
    email: str | None = None
    role: UserRole = UserRole.DONOR
