import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from pydantic import Field

from models.base import StoredModel


class CampaignStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"
    COMPLETED = "completed"
    EXPIRED = "expired"


class VerificationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class University(StoredModel):
    id: str
    name: str
    bank_name: str
    account_number: str
    branch_code: str
    account_name: str


class Student(StoredModel):
    id: str
    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    university_id: str | None = None
    # payment reference used by the university back-office, never reformat
    student_number: str
    verification_status: VerificationStatus = VerificationStatus.PENDING


class Campaign(StoredModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    student_id: str | None = None
    title: str = ""
    goal: Decimal = Decimal("0")
    raised: Decimal = Decimal("0")
    donors: int = 0
    status: CampaignStatus = CampaignStatus.PENDING
    is_urgent: bool = False
    end_date: str | None = None

    fee_statement_url: str | None = None
    id_url: str | None = None
    enrollment_url: str | None = None
    invoice_url: str | None = None


class VerificationRequest(StoredModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    student_id: str
    document_type: str
    document_url: str
    status: VerificationStatus = VerificationStatus.PENDING
    rejection_reason: str | None = None
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    reviewed_at: datetime | None = None
