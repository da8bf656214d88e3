import logging
from dataclasses import dataclass, field
from typing import Mapping

from core.errors import PersistenceError, ValidationError
from data_access.dynamodb import SUBMIT_VERIFICATION_REQUEST
from data_access.gateways import PersistenceGateway
from models.campaign import VerificationRequest
from services.campaigns import load_student
from services.notification_service import NotificationEvent, NotificationService

logger = logging.getLogger(__name__)


@dataclass
class VerificationSubmission:
    request_ids: list[str]
    warnings: list[str] = field(default_factory=list)


async def submit_verification_request(persistence: PersistenceGateway, student_id: str,
                                      documents: Mapping[str, str],
                                      notifications: NotificationService | None = None
                                      ) -> VerificationSubmission:
    """
    Open one pending verification request per uploaded document and put the
    student back into review, in a single atomic call. Admins are told
    afterwards; that part only ever produces warnings.

    ``documents`` maps document type to its storage path.
    """
    uploaded = {kind: path for kind, path in documents.items() if path}
    if not uploaded:
        raise ValidationError("Upload at least one verification document.", field="documents")

    requests = [
        VerificationRequest(student_id=student_id, document_type=kind, document_url=path).to_item()
        for kind, path in uploaded.items()
    ]
    request_ids = await persistence.rpc(
        SUBMIT_VERIFICATION_REQUEST, {"student_id": student_id, "requests": requests}
    )
    logger.info(f"Student {student_id} submitted {len(request_ids)} verification document(s).")

    submission = VerificationSubmission(request_ids)
    if notifications is None:
        return submission

    student_name = None
    try:
        student = await load_student(persistence, student_id)
        student_name = student.first_name if student else None
    except PersistenceError as e:
        logger.warning(f"Could not load name of student {student_id}: {e}",
                       extra={"operation": "notify", "entity_id": student_id})

    submission.warnings += await notifications.notify(
        NotificationEvent.VERIFICATION_SUBMITTED, {"student_name": student_name}
    )
    return submission