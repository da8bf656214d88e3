import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Sequence

from core.errors import UniFundError
from data_access.gateways import Collection, PersistenceGateway
from models.notification import Notification, NotificationType, UserRole

logger = logging.getLogger(__name__)

CURRENCY_SYMBOL = "R"


class NotificationEvent(str, Enum):
    DONATION_PENDING = "donation_pending"
    CAMPAIGN_APPROVED = "campaign_approved"
    CAMPAIGN_REJECTED = "campaign_rejected"
    VERIFICATION_SUBMITTED = "verification_submitted"


@dataclass(frozen=True)
class Audience:
    user_id: str | None = None
    role: UserRole | None = None

    @classmethod
    def direct(cls, user_id: str) -> "Audience":
        return cls(user_id=user_id)

    @classmethod
    def of_role(cls, role: UserRole) -> "Audience":
        return cls(role=role)


@dataclass(frozen=True)
class NotificationPlan:
    audience: Audience
    title: str
    message: str
    type: NotificationType


def format_amount(amount: Decimal | int | float) -> str:
    value = Decimal(str(amount))
    if value == value.to_integral_value():
        return f"{CURRENCY_SYMBOL}{value.to_integral_value():f}"
    return f"{CURRENCY_SYMBOL}{value:f}"


def build_notifications(event: NotificationEvent, context: Mapping[str, Any]) -> list[NotificationPlan]:
    """Map an event to the notifications it produces. No I/O."""
    if event == NotificationEvent.DONATION_PENDING:
        amount = format_amount(context["amount"])
        donor = context.get("donor_name") or "an anonymous donor"
        return [
            NotificationPlan(
                audience=Audience.direct(context["student_id"]),
                title="New Donation Received",
                message=(
                    f"You have received a new donation of {amount} from {donor}. "
                    f"It is currently pending verification."
                ),
                type=NotificationType.DONATION_RECEIVED,
            ),
            NotificationPlan(
                audience=Audience.of_role(UserRole.ADMIN),
                title="New Pending Donation",
                message=f'A new donation of {amount} for "{context["campaign_title"]}" needs verification.',
                type=NotificationType.VERIFICATION_UPDATE,
            ),
        ]

    if event == NotificationEvent.CAMPAIGN_APPROVED:
        return [
            NotificationPlan(
                audience=Audience.direct(context["student_id"]),
                title="Campaign Approved!",
                message=(
                    f'Your campaign "{context["campaign_title"]}" has been approved and is now live! '
                    f"Your account has been verified."
                ),
                type=NotificationType.SUCCESS,
            )
        ]

    if event == NotificationEvent.CAMPAIGN_REJECTED:
        return [
            NotificationPlan(
                audience=Audience.direct(context["student_id"]),
                title="Campaign Rejected",
                message=f'Your campaign "{context["campaign_title"]}" was rejected. Reason: {context["reason"]}.',
                type=NotificationType.ERROR,
            )
        ]

    if event == NotificationEvent.VERIFICATION_SUBMITTED:
        student = context.get("student_name") or "Student"
        return [
            NotificationPlan(
                audience=Audience.of_role(UserRole.ADMIN),
                title="New Verification Request",
                message=f"{student} has submitted profile verification documents.",
                type=NotificationType.VERIFICATION_UPDATE,
            )
        ]

    raise ValueError(f"Unhandled notification event: {event}")


class NotificationService:
    """
    Resolves recipients and stores notifications. Never raises: failures
    come back as warning strings so the caller's primary change stands.
    """

    def __init__(self, persistence: PersistenceGateway):
        self.persistence = persistence

    async def resolve_recipients(self, audience: Audience) -> list[str]:
        if audience.user_id is not None:
            return [audience.user_id]
        profiles = await self.persistence.read(Collection.PROFILES, {"role": UserRole(audience.role).value})
        return [profile["id"] for profile in profiles]

    async def dispatch(self, plans: Sequence[NotificationPlan]) -> list[str]:
        warnings = []
        for plan in plans:
            try:
                recipients = await self.resolve_recipients(plan.audience)
                if not recipients:
                    logger.info(f"No recipients for notification '{plan.title}'.")
                    continue

                records = [
                    Notification(user_id=user_id, title=plan.title,
                                 message=plan.message, type=plan.type).to_item()
                    for user_id in recipients
                ]
                await self.persistence.insert(Collection.NOTIFICATIONS, records)
            except UniFundError as e:
                target = plan.audience.user_id or UserRole(plan.audience.role).value
                logger.warning(f"Failed to send notification '{plan.title}': {e}",
                               extra={"operation": "notify", "entity_id": target})
                warnings.append(f"Notification '{plan.title}' to {target} was not delivered.")
        return warnings

    async def notify(self, event: NotificationEvent, context: Mapping[str, Any]) -> list[str]:
        return await self.dispatch(build_notifications(event, context))
