from decimal import Decimal
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional

from models.donation import Donation

class CognitoUser(BaseModel):
    sub: str  # The unique user ID from Cognito
    email: EmailStr
    email_verified: bool
    name: Optional[str] = None
    groups: list[str] = Field(default_factory=list, alias="cognito:groups")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("groups", mode="before")
    @classmethod
    def split_groups(cls, value):
        # API Gateway flattens list claims to "[a, b]" or "a,b"
        if isinstance(value, str):
            return [g.strip() for g in value.strip("[]").replace(",", " ").split() if g.strip()]
        return value

class UserMessage(BaseModel):
    kind: str
    title: str
    message: str

class BankDetailsResponse(BaseModel):
    bank_name: str
    account_name: str
    account_number: str
    branch_code: str
    reference: str

class TipRequest(BaseModel):
    amount: Decimal
    payment_token: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    is_anonymous: bool = False

class StepResponse(BaseModel):
    step: str
    donation: Optional[Donation] = None
    warnings: list[str] = []
    messages: list[UserMessage] = []

class PlatformDonationRequest(BaseModel):
    amount: Decimal
    email: EmailStr
    payment_token: Optional[str] = None

class PlatformDonationResponse(BaseModel):
    reference: str
    donation: Optional[Donation] = None
    warnings: list[str] = []
    messages: list[UserMessage] = []

class ApproveRequest(BaseModel):
    confirmed: bool = False

class RejectRequest(BaseModel):
    reason: Optional[str] = None

class ReviewResponse(BaseModel):
    decision: str
    applied: bool
    requests_updated: int
    reload_required: bool
    warnings: list[str] = []
    messages: list[UserMessage] = []

class ReviewControlsResponse(BaseModel):
    can_approve: bool
    can_reject: bool

class SignedUrlResponse(BaseModel):
    url: str

class VerificationSubmitRequest(BaseModel):
    documents: dict[str, str]

class VerificationSubmitResponse(BaseModel):
    request_ids: list[str]
    warnings: list[str] = []
