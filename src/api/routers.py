from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Request,
    UploadFile,
)
from fastapi.security import HTTPBearer
from decimal import Decimal
from typing import Optional
import logging

from core.config import settings
from core.dependencies import (
    get_document_store,
    get_payment_gateway,
    get_payment_options,
    get_persistence,
)
from core.errors import (
    CampaignNotFoundError,
    FlowBusyError,
    GatewayError,
    InvalidTransitionError,
    PersistenceError,
    StorageError,
    UniFundError,
    ValidationError,
)
from models.donation import Donation
from services.campaign_review import CampaignReviewService
from services.campaigns import load_campaign_context
from services.document_service import CampaignDocument, DocumentService, owned_by
from services.donation_capture import DonationCapture, DonationStep, DonorIdentity, ProofSubmission
from services.notification_service import NotificationService
from services.platform_support import PlatformSupportService
from services.verification import submit_verification_request
from api.schemas import (
    ApproveRequest,
    BankDetailsResponse,
    CognitoUser,
    PlatformDonationRequest,
    PlatformDonationResponse,
    RejectRequest,
    ReviewControlsResponse,
    ReviewResponse,
    SignedUrlResponse,
    StepResponse,
    TipRequest,
    UserMessage,
    VerificationSubmitRequest,
    VerificationSubmitResponse,
)

router = APIRouter()
security = HTTPBearer(auto_error=False)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: 422,
    CampaignNotFoundError: 404,
    InvalidTransitionError: 409,
    FlowBusyError: 409,
    GatewayError: 402,
    StorageError: 502,
    PersistenceError: 502,
}


class CollectingNotifier:
    """Gathers user-facing messages so they travel back in the response."""

    def __init__(self):
        self.messages: list[UserMessage] = []

    def notify_user(self, kind: str, title: str, message: str) -> None:
        self.messages.append(UserMessage(kind=kind, title=title, message=message))


def to_http_error(e: UniFundError) -> HTTPException:
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(e, error_type)), 500
    )
    return HTTPException(status_code=status_code, detail=e.user_message)


def _donation(record: dict | None) -> Donation | None:
    return Donation.from_item(record) if record else None


async def get_current_user(
    request: Request,
    token: Optional[str] = Depends(security)
) -> CognitoUser:
    auth = request.scope.get("aws.event", {}).get("requestContext", {}).get("authorizer", {})
    claims = auth.get("claims", {})

    if not claims:
        raise HTTPException(status_code=401, detail="Could not find user claims")

    try:
        user = CognitoUser(**claims)
    except ValueError as e:
        raise HTTPException(
            status_code=401,
            detail=f"Invalid authentication credentials: {e}"
        )

    if not user.email_verified:
        raise HTTPException(status_code=403, detail="Email not verified")

    return user

async def require_admin(user: CognitoUser = Depends(get_current_user)) -> CognitoUser:
    if settings.ADMIN_GROUP not in user.groups:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


@router.get(
    "/campaigns/{campaign_id}/bank-details",
    response_model=BankDetailsResponse
)
async def get_bank_details(campaign_id: str, persistence=Depends(get_persistence)):
    try:
        context = await load_campaign_context(persistence, campaign_id)
    except UniFundError as e:
        raise to_http_error(e)

    university = context.university
    return BankDetailsResponse(
        bank_name=university.bank_name,
        account_name=university.account_name,
        account_number=university.account_number,
        branch_code=university.branch_code,
        reference=context.student.student_number,
    )


@router.post(
    "/campaigns/{campaign_id}/donations/proof",
    response_model=StepResponse,
    status_code=201
)
async def submit_proof_of_payment(
    campaign_id: str,
    amount: Decimal = Form(...),
    proof: UploadFile = File(...),
    first_name: str = Form(""),
    last_name: str = Form(""),
    email: str = Form(""),
    is_anonymous: bool = Form(False),
    persistence=Depends(get_persistence),
    documents=Depends(get_document_store),
    payments=Depends(get_payment_gateway),
    options=Depends(get_payment_options),
):
    notifier = CollectingNotifier()
    try:
        context = await load_campaign_context(persistence, campaign_id)
        capture = DonationCapture(
            context, amount, persistence, documents, payments,
            NotificationService(persistence), notifier, options,
            step=DonationStep.PROOF_UPLOAD,
        )
        result = await capture.submit_proof(ProofSubmission(
            file_name=proof.filename or "",
            content=await proof.read(),
            content_type=proof.content_type,
            first_name=first_name,
            last_name=last_name,
            email=email,
            is_anonymous=is_anonymous,
        ))
    except UniFundError as e:
        raise to_http_error(e)

    return StepResponse(step=result.step.value, donation=_donation(result.record),
                        warnings=result.warnings, messages=notifier.messages)


@router.post(
    "/campaigns/{campaign_id}/donations/tip",
    response_model=StepResponse
)
async def submit_platform_tip(
    campaign_id: str,
    body: TipRequest,
    persistence=Depends(get_persistence),
    documents=Depends(get_document_store),
    payments=Depends(get_payment_gateway),
    options=Depends(get_payment_options),
):
    notifier = CollectingNotifier()
    try:
        context = await load_campaign_context(persistence, campaign_id)
        capture = DonationCapture(
            context, Decimal("0"), persistence, documents, payments,
            NotificationService(persistence), notifier, options,
            step=DonationStep.TIP_AMOUNT,
            donor=DonorIdentity(
                first_name=body.first_name,
                last_name=body.last_name,
                email=body.email,
                is_anonymous=body.is_anonymous,
            ),
        )
        result = await capture.submit_tip(body.amount, body.payment_token)
    except UniFundError as e:
        raise to_http_error(e)

    return StepResponse(step=result.step.value, donation=_donation(result.record),
                        warnings=result.warnings, messages=notifier.messages)


@router.post(
    "/platform/donations",
    response_model=PlatformDonationResponse,
    status_code=201
)
async def donate_to_platform(
    request: Request,
    body: PlatformDonationRequest,
    persistence=Depends(get_persistence),
    payments=Depends(get_payment_gateway),
    options=Depends(get_payment_options),
):
    # signed-in donors are named on the record, guests stay anonymous
    claims = request.scope.get("aws.event", {}).get("requestContext", {}) \
        .get("authorizer", {}).get("claims", {})

    notifier = CollectingNotifier()
    service = PlatformSupportService(persistence, payments, notifier, options)
    try:
        result = await service.donate(body.amount, body.email, donor_name=claims.get("name"),
                                      payment_token=body.payment_token)
    except UniFundError as e:
        raise to_http_error(e)

    return PlatformDonationResponse(reference=result.reference, donation=_donation(result.record),
                                    warnings=result.warnings, messages=notifier.messages)


@router.get(
    "/admin/campaigns/{campaign_id}/review-controls",
    response_model=ReviewControlsResponse
)
async def get_review_controls(
    campaign_id: str,
    admin: CognitoUser = Depends(require_admin),
    persistence=Depends(get_persistence),
):
    service = CampaignReviewService(persistence, NotificationService(persistence))
    try:
        controls = await service.controls_for(campaign_id)
    except UniFundError as e:
        raise to_http_error(e)
    return ReviewControlsResponse(can_approve=controls.can_approve, can_reject=controls.can_reject)


@router.post(
    "/admin/campaigns/{campaign_id}/approve",
    response_model=ReviewResponse
)
async def approve_campaign(
    campaign_id: str,
    body: ApproveRequest,
    admin: CognitoUser = Depends(require_admin),
    persistence=Depends(get_persistence),
):
    notifier = CollectingNotifier()
    service = CampaignReviewService(persistence, NotificationService(persistence), notifier)
    try:
        result = await service.approve(campaign_id, confirmed=body.confirmed)
    except UniFundError as e:
        raise to_http_error(e)

    logger.info(f"Admin {admin.sub} approve on campaign {campaign_id}: applied={result.applied}.")
    return ReviewResponse(
        decision=result.decision.value,
        applied=result.applied,
        requests_updated=result.requests_updated,
        reload_required=result.reload_required,
        warnings=result.warnings,
        messages=notifier.messages,
    )


@router.post(
    "/admin/campaigns/{campaign_id}/reject",
    response_model=ReviewResponse
)
async def reject_campaign(
    campaign_id: str,
    body: RejectRequest,
    admin: CognitoUser = Depends(require_admin),
    persistence=Depends(get_persistence),
):
    notifier = CollectingNotifier()
    service = CampaignReviewService(persistence, NotificationService(persistence), notifier)
    try:
        result = await service.reject(campaign_id, body.reason)
    except UniFundError as e:
        raise to_http_error(e)

    logger.info(f"Admin {admin.sub} rejected campaign {campaign_id}.")
    return ReviewResponse(
        decision=result.decision.value,
        applied=result.applied,
        requests_updated=result.requests_updated,
        reload_required=result.reload_required,
        warnings=result.warnings,
        messages=notifier.messages,
    )


@router.get(
    "/documents/signed-url",
    response_model=SignedUrlResponse
)
async def get_signed_document_url(
    ref: str,
    user: CognitoUser = Depends(get_current_user),
    persistence=Depends(get_persistence),
    documents=Depends(get_document_store),
):
    # admins review everything, everyone else only their own uploads
    if settings.ADMIN_GROUP not in user.groups and not owned_by(ref, user.sub):
        logger.warning(f"User {user.sub} denied access to document {ref}.")
        raise HTTPException(status_code=403, detail="You do not have access to this document")

    service = DocumentService(documents, persistence, ttl_seconds=settings.SIGNED_URL_TTL_SECONDS)
    try:
        url = await service.signed_url(ref)
    except UniFundError as e:
        raise to_http_error(e)
    return SignedUrlResponse(url=url)


@router.get(
    "/admin/campaigns/{campaign_id}/documents/{document}",
    response_model=SignedUrlResponse
)
async def get_campaign_document_url(
    campaign_id: str,
    document: CampaignDocument,
    admin: CognitoUser = Depends(require_admin),
    persistence=Depends(get_persistence),
    documents=Depends(get_document_store),
):
    service = DocumentService(documents, persistence, ttl_seconds=settings.SIGNED_URL_TTL_SECONDS)
    try:
        url = await service.campaign_document_url(campaign_id, document)
    except UniFundError as e:
        raise to_http_error(e)
    return SignedUrlResponse(url=url)


@router.post(
    "/students/me/verification-requests",
    response_model=VerificationSubmitResponse,
    status_code=201
)
async def submit_verification(
    body: VerificationSubmitRequest,
    user: CognitoUser = Depends(get_current_user),
    persistence=Depends(get_persistence),
):
    try:
        submission = await submit_verification_request(
            persistence, user.sub, body.documents, NotificationService(persistence)
        )
    except UniFundError as e:
        raise to_http_error(e)
    return VerificationSubmitResponse(request_ids=submission.request_ids, warnings=submission.warnings)
