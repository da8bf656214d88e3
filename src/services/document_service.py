import logging
from enum import Enum

from core.errors import StorageError, ValidationError
from data_access.gateways import DocumentStore, PersistenceGateway
from data_access.s3 import resolve_document_reference
from services.campaigns import load_campaign

logger = logging.getLogger(__name__)


class CampaignDocument(str, Enum):
    FEE_STATEMENT = "fee_statement"
    ID = "id"
    ENROLLMENT = "enrollment"
    INVOICE = "invoice"


def owned_by(reference: str, user_id: str) -> bool:
    """
    True when the object sits in the user's own folder, either at the bucket
    root (``<user>/...``) or one level down (``verification/<user>/...``).
    """
    if not reference or not user_id:
        return False
    _, path = resolve_document_reference(reference)
    segments = path.split("/")
    if ".." in segments:
        return False
    folders = segments[:-1]
    return user_id in folders[:2]


class DocumentService:
    """Short-lived links for viewing verification documents."""

    def __init__(self, documents: DocumentStore, persistence: PersistenceGateway,
                 ttl_seconds: int = 60 * 60):
        self.documents = documents
        self.persistence = persistence
        self.ttl_seconds = ttl_seconds

    async def signed_url(self, reference: str) -> str:
        if not reference:
            raise ValidationError("No document to open.", field="ref")
        bucket, path = resolve_document_reference(reference)
        try:
            return await self.documents.get_signed_url(bucket, path, self.ttl_seconds)
        except StorageError as e:
            logger.error(f"Could not open document {path}: {e}",
                         extra={"operation": "signed_url", "entity_id": path})
            raise

    async def campaign_document_url(self, campaign_id: str, document: CampaignDocument) -> str:
        campaign = await load_campaign(self.persistence, campaign_id)
        reference = getattr(campaign, f"{CampaignDocument(document).value}_url")
        if not reference:
            raise ValidationError(f"Campaign has no {CampaignDocument(document).value} document.",
                                  field="document")
        return await self.signed_url(reference)
