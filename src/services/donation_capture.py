"""
Donor-facing donation flow: bank transfer details, proof of payment upload,
an optional platform tip settled through the payment gateway, and a final
success state.

The step graph lives in ``transition`` so it can be exercised without any
I/O. ``DonationCapture`` drives one donor through it and performs the side
effects each step owns.
"""
import logging
import secrets
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Callable

from core.errors import (
    FlowBusyError,
    GatewayError,
    InvalidTransitionError,
    PersistenceError,
    StorageError,
    UniFundError,
    ValidationError,
)
from data_access.gateways import (
    Bucket,
    ChargeConfig,
    Collection,
    DocumentStore,
    NullNotifier,
    PaymentGateway,
    PersistenceGateway,
    UserNotifier,
)
from models.donation import Donation, DonationStatus
from services.campaigns import CampaignContext
from services.notification_service import NotificationEvent, NotificationService
from services.payments import (
    ANONYMOUS_NAME,
    PaymentOptions,
    new_reference,
    parse_amount,
    record_gateway_donation,
    to_minor_units,
)

logger = logging.getLogger(__name__)

TIP_DONATION_TYPE = "platform_tip_post_campaign"


class DonationStep(str, Enum):
    BANK_DETAILS = "bank_details"
    PROOF_UPLOAD = "proof_upload"
    TIP_PROMPT = "tip_prompt"
    TIP_AMOUNT = "tip_amount"
    SUCCESS = "success"


class DonationEvent(str, Enum):
    CONFIRM_TRANSFER = "confirm_transfer"
    BACK = "back"
    PROOF_ACCEPTED = "proof_accepted"
    ACCEPT_TIP = "accept_tip"
    DECLINE_TIP = "decline_tip"
    TIP_SETTLED = "tip_settled"


TRANSITIONS: dict[tuple[DonationStep, DonationEvent], DonationStep] = {
    (DonationStep.BANK_DETAILS, DonationEvent.CONFIRM_TRANSFER): DonationStep.PROOF_UPLOAD,
    (DonationStep.PROOF_UPLOAD, DonationEvent.BACK): DonationStep.BANK_DETAILS,
    (DonationStep.PROOF_UPLOAD, DonationEvent.PROOF_ACCEPTED): DonationStep.TIP_PROMPT,
    (DonationStep.TIP_PROMPT, DonationEvent.ACCEPT_TIP): DonationStep.TIP_AMOUNT,
    (DonationStep.TIP_PROMPT, DonationEvent.DECLINE_TIP): DonationStep.SUCCESS,
    (DonationStep.TIP_AMOUNT, DonationEvent.BACK): DonationStep.TIP_PROMPT,
    (DonationStep.TIP_AMOUNT, DonationEvent.TIP_SETTLED): DonationStep.SUCCESS,
}


def transition(step: DonationStep, event: DonationEvent) -> DonationStep:
    try:
        return TRANSITIONS[(DonationStep(step), DonationEvent(event))]
    except KeyError:
        raise InvalidTransitionError(f"Cannot {DonationEvent(event).value} from {DonationStep(step).value}",
                                     operation=DonationEvent(event).value) from None


@dataclass(frozen=True)
class BankDetails:
    bank_name: str
    account_name: str
    account_number: str
    branch_code: str
    reference: str


@dataclass(frozen=True)
class ProofSubmission:
    file_name: str
    content: bytes
    content_type: str | None = None
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    is_anonymous: bool = False


@dataclass(frozen=True)
class DonorIdentity:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    is_anonymous: bool = False

    @property
    def guest_name(self) -> str | None:
        if self.is_anonymous:
            return ANONYMOUS_NAME
        return f"{self.first_name} {self.last_name}".strip() or None

    @property
    def guest_email(self) -> str | None:
        if self.is_anonymous:
            return None
        return self.email or None


@dataclass
class StepResult:
    """Primary outcome of a step plus the non-fatal problems met along the way."""
    step: DonationStep
    record: dict | None = None
    warnings: list[str] = field(default_factory=list)


def validate_donor(submission: ProofSubmission) -> DonorIdentity:
    if not submission.content:
        raise ValidationError("Please upload your proof of payment.", field="proof")
    if not submission.is_anonymous:
        for name in ("first_name", "last_name", "email"):
            if not getattr(submission, name).strip():
                raise ValidationError(f"{name.replace('_', ' ').capitalize()} is required.", field=name)
    return DonorIdentity(
        first_name=submission.first_name,
        last_name=submission.last_name,
        email=submission.email,
        is_anonymous=submission.is_anonymous,
    )


def proof_path(campaign_id: str, file_name: str) -> str:
    suffix = PurePosixPath(file_name).suffix
    return f"proofs/{campaign_id}/{int(time.time() * 1000)}_{secrets.token_hex(4)}{suffix}"


class DonationCapture:
    def __init__(
        self,
        context: CampaignContext,
        amount: Decimal,
        persistence: PersistenceGateway,
        documents: DocumentStore,
        payments: PaymentGateway,
        notifications: NotificationService,
        notifier: UserNotifier | None = None,
        options: PaymentOptions | None = None,
        *,
        step: DonationStep = DonationStep.BANK_DETAILS,
        donor: DonorIdentity | None = None,
    ):
        self.context = context
        self.amount = amount
        self.persistence = persistence
        self.documents = documents
        self.payments = payments
        self.notifications = notifications
        self.notifier = notifier or NullNotifier()
        self.options = options or PaymentOptions()
        self.step = DonationStep(step)
        self.donor = donor or DonorIdentity()
        self.busy = False

    @property
    def campaign_id(self) -> str:
        return self.context.campaign_id

    def _fire(self, event: DonationEvent) -> DonationStep:
        self.step = transition(self.step, event)
        return self.step

    def _check(self, event: DonationEvent) -> None:
        # raises before any side effect when the event is not allowed here
        transition(self.step, event)
        if self.busy:
            raise FlowBusyError(f"{event.value} while another step is running",
                                entity_id=self.campaign_id, operation=event.value)

    @asynccontextmanager
    async def _in_flight(self):
        self.busy = True
        try:
            yield
        finally:
            self.busy = False

    def _surface(self, error: UniFundError, title: str) -> None:
        self.notifier.notify_user("error", title, error.user_message)

    def bank_details(self) -> BankDetails:
        university = self.context.university
        return BankDetails(
            bank_name=university.bank_name,
            account_name=university.account_name,
            account_number=university.account_number,
            branch_code=university.branch_code,
            reference=self.context.student.student_number,
        )

    def confirm_transfer(self) -> StepResult:
        self._check(DonationEvent.CONFIRM_TRANSFER)
        return StepResult(self._fire(DonationEvent.CONFIRM_TRANSFER))

    def back(self) -> StepResult:
        self._check(DonationEvent.BACK)
        return StepResult(self._fire(DonationEvent.BACK))

    def accept_tip(self) -> StepResult:
        self._check(DonationEvent.ACCEPT_TIP)
        return StepResult(self._fire(DonationEvent.ACCEPT_TIP))

    def decline_tip(self) -> StepResult:
        self._check(DonationEvent.DECLINE_TIP)
        return StepResult(self._fire(DonationEvent.DECLINE_TIP))

    async def submit_proof(self, submission: ProofSubmission) -> StepResult:
        self._check(DonationEvent.PROOF_ACCEPTED)
        donor = validate_donor(submission)
        amount = parse_amount(self.amount)

        async with self._in_flight():
            try:
                stored_path = await self.documents.upload(
                    Bucket.DOCUMENTS,
                    proof_path(self.campaign_id, submission.file_name),
                    submission.content,
                    submission.content_type,
                )
            except StorageError as e:
                logger.error(f"Proof upload failed for campaign {self.campaign_id}: {e}",
                             extra={"operation": "upload_proof", "entity_id": self.campaign_id})
                self._surface(e, "Submission Failed")
                raise

            donation = Donation(
                campaign_id=self.campaign_id,
                amount=amount,
                is_anonymous=donor.is_anonymous,
                guest_name=donor.guest_name,
                guest_email=donor.guest_email,
                proof_of_payment_url=stored_path,
                status=DonationStatus.PENDING,
            )
            try:
                records = await self.persistence.insert(Collection.DONATIONS, donation.to_item())
            except PersistenceError as e:
                # the uploaded proof is left in place
                logger.error(f"Donation insert failed for campaign {self.campaign_id}, "
                             f"proof {stored_path} orphaned: {e}",
                             extra={"operation": "insert_donation", "entity_id": self.campaign_id})
                self._surface(e, "Submission Failed")
                raise

            warnings = await self.notifications.notify(
                NotificationEvent.DONATION_PENDING,
                {
                    "student_id": self.context.student.id,
                    "amount": amount,
                    "donor_name": None if donor.is_anonymous else donor.guest_name,
                    "campaign_title": self.context.campaign.title,
                },
            )

        self.donor = donor
        logger.info(f"Pending donation {donation.id} recorded for campaign {self.campaign_id}.")
        return StepResult(self._fire(DonationEvent.PROOF_ACCEPTED), records[0], warnings)

    def prepare_tip(self, tip_amount: Decimal, payment_token: str | None = None) -> ChargeConfig:
        return ChargeConfig(
            reference=new_reference(self.options.tip_reference_prefix),
            email=self.donor.email or self.options.guest_email_placeholder,
            amount_minor=to_minor_units(tip_amount),
            currency=self.options.currency,
            metadata={
                "donation_type": TIP_DONATION_TYPE,
                "linked_campaign_id": self.campaign_id,
            },
            payment_token=payment_token,
        )

    async def submit_tip(self, tip_amount: Any, payment_token: str | None = None) -> StepResult:
        self._check(DonationEvent.TIP_SETTLED)
        amount = parse_amount(tip_amount, field="tip_amount")
        config = self.prepare_tip(amount, payment_token)

        async with self._in_flight():
            try:
                gateway_reference = await self.payments.charge(config)
            except GatewayError as e:
                logger.warning(f"Tip {config.reference} for campaign {self.campaign_id} not settled: {e}",
                               extra={"operation": "charge_tip", "entity_id": config.reference})
                self._surface(e, "Payment Failed")
                raise

            record, warnings = await record_gateway_donation(
                self.persistence,
                self.notifier,
                amount=amount,
                gateway_reference=gateway_reference,
                local_reference=config.reference,
                options=self.options,
                is_anonymous=self.donor.is_anonymous,
                guest_name=self.donor.guest_name,
                guest_email=self.donor.guest_email,
            )

        return StepResult(self._fire(DonationEvent.TIP_SETTLED), record, warnings)

    def close(self, on_refresh: Callable[[], Any] | None = None) -> None:
        if self.step != DonationStep.SUCCESS:
            raise InvalidTransitionError(f"Cannot close from {self.step.value}",
                                         entity_id=self.campaign_id, operation="close")
        if on_refresh is not None:
            on_refresh()
        self.notifier.notify_user("success", "Thank you!",
                                  "All proofs have been submitted for verification.")
