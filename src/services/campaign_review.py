import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from core.errors import CampaignNotFoundError, PersistenceError, ValidationError
from data_access.gateways import Collection, NullNotifier, PersistenceGateway, UserNotifier
from models.campaign import Campaign, CampaignStatus, Student, VerificationStatus
from services.campaigns import load_campaign, load_student
from services.notification_service import NotificationEvent, NotificationService

logger = logging.getLogger(__name__)


class ReviewDecision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


@dataclass
class ReviewResult:
    decision: ReviewDecision
    campaign_id: str
    applied: bool = True
    requests_updated: int = 0
    # the caller reloads campaign state from storage rather than patching it
    reload_required: bool = True
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ReviewControls:
    can_approve: bool
    can_reject: bool


def review_controls(campaign: Campaign, student: Student | None) -> ReviewControls:
    approved = (
        campaign.status == CampaignStatus.ACTIVE
        and student is not None
        and student.verification_status == VerificationStatus.APPROVED
    )
    return ReviewControls(
        can_approve=not approved,
        can_reject=campaign.status != CampaignStatus.REJECTED,
    )


def rejection_reason(reason: str) -> str:
    return f"Campaign rejected: {reason}"


class CampaignReviewService:
    """
    Admin approve/reject of a campaign, cascading to the owning student and
    the student's pending verification requests.

    Only the campaign status change is primary. Student status, verification
    requests and the notification are best-effort and come back as warnings.
    """

    def __init__(self, persistence: PersistenceGateway, notifications: NotificationService,
                 notifier: UserNotifier | None = None,
                 clock: Callable[[], datetime] | None = None):
        self.persistence = persistence
        self.notifications = notifications
        self.notifier = notifier or NullNotifier()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def controls_for(self, campaign_id: str) -> ReviewControls:
        campaign = await load_campaign(self.persistence, campaign_id)
        student = await load_student(self.persistence, campaign.student_id) if campaign.student_id else None
        return review_controls(campaign, student)

    async def approve(self, campaign_id: str, confirmed: bool) -> ReviewResult:
        if not confirmed:
            return ReviewResult(ReviewDecision.APPROVE, campaign_id, applied=False, reload_required=False)

        campaign = await self._load_reviewable(campaign_id)
        result = await self._apply(
            ReviewDecision.APPROVE,
            campaign,
            campaign_status=CampaignStatus.ACTIVE,
            student_status=VerificationStatus.APPROVED,
            request_patch={"status": VerificationStatus.APPROVED.value},
        )
        result.warnings += await self.notifications.notify(
            NotificationEvent.CAMPAIGN_APPROVED,
            {"student_id": campaign.student_id, "campaign_title": campaign.title},
        )
        self.notifier.notify_user("success", "Approved", "Campaign approved and student verified!")
        return result

    async def reject(self, campaign_id: str, reason: str | None) -> ReviewResult:
        if reason is None or not reason.strip():
            raise ValidationError("A rejection reason is required.", field="reason")

        campaign = await self._load_reviewable(campaign_id)
        result = await self._apply(
            ReviewDecision.REJECT,
            campaign,
            campaign_status=CampaignStatus.REJECTED,
            student_status=VerificationStatus.REJECTED,
            request_patch={
                "status": VerificationStatus.REJECTED.value,
                "rejection_reason": rejection_reason(reason),
            },
        )
        result.warnings += await self.notifications.notify(
            NotificationEvent.CAMPAIGN_REJECTED,
            {"student_id": campaign.student_id, "campaign_title": campaign.title, "reason": reason},
        )
        self.notifier.notify_user("success", "Rejected", "Campaign rejected.")
        return result

    async def _load_reviewable(self, campaign_id: str) -> Campaign:
        campaign = await load_campaign(self.persistence, campaign_id)
        if not campaign.student_id:
            raise CampaignNotFoundError(f"Campaign {campaign_id} has no student",
                                        entity_id=campaign_id, operation="review")
        return campaign

    async def _apply(self, decision: ReviewDecision, campaign: Campaign, *,
                     campaign_status: CampaignStatus, student_status: VerificationStatus,
                     request_patch: dict) -> ReviewResult:
        result = ReviewResult(decision, campaign.id)

        try:
            await self.persistence.update(Collection.CAMPAIGNS,
                                          {"status": campaign_status.value}, {"id": campaign.id})
        except PersistenceError as e:
            logger.error(f"Error trying to {decision.value} campaign {campaign.id}: {e}",
                         extra={"operation": f"{decision.value}_campaign", "entity_id": campaign.id})
            self.notifier.notify_user("error", "Error", f"Failed to {decision.value} campaign.")
            raise

        try:
            students_updated = await self.persistence.update(
                Collection.STUDENTS,
                {"verification_status": student_status.value},
                {"id": campaign.student_id},
            )
            if not students_updated:
                logger.warning(f"Student {campaign.student_id} of campaign {campaign.id} does not exist.",
                               extra={"operation": "update_student", "entity_id": campaign.student_id})
                result.warnings.append(f"Student {campaign.student_id} was not found.")
        except PersistenceError as e:
            logger.error(f"Error setting student {campaign.student_id} to {student_status.value}: {e}",
                         extra={"operation": "update_student", "entity_id": campaign.student_id})
            result.warnings.append(f"Student {campaign.student_id} was not marked {student_status.value}.")

        patch = {**request_patch, "reviewed_at": self.clock().isoformat()}
        try:
            # only pending requests; reviewed ones are history
            result.requests_updated = await self.persistence.update(
                Collection.VERIFICATION_REQUESTS,
                patch,
                {"student_id": campaign.student_id, "status": VerificationStatus.PENDING.value},
            )
        except PersistenceError as e:
            logger.error(f"Error closing verification requests of {campaign.student_id}: {e}",
                         extra={"operation": "update_verification_requests",
                                "entity_id": campaign.student_id})
            result.warnings.append(f"Pending verification requests of {campaign.student_id} were not updated.")

        logger.info(f"Campaign {campaign.id} {campaign_status.value}; "
                    f"{result.requests_updated} verification request(s) closed.")
        return result
