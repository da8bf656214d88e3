import asyncio
import logging
from urllib.parse import unquote

from botocore.exceptions import BotoCoreError, ClientError

from core.errors import StorageError
from data_access.gateways import Bucket

logger = logging.getLogger(__name__)


class S3DocumentStore:
    def __init__(self, client, bucket_names: dict[Bucket, str]):
        self.client = client
        self.bucket_names = bucket_names

    def _bucket_name(self, bucket: Bucket) -> str:
        return self.bucket_names[Bucket(bucket)]

    async def upload(self, bucket: Bucket, path: str, blob: bytes,
                     content_type: str | None = None) -> str:
        params = {"Bucket": self._bucket_name(bucket), "Key": path, "Body": blob}
        if content_type:
            params["ContentType"] = content_type
        try:
            await asyncio.to_thread(self.client.put_object, **params)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error uploading {path} to {bucket}: {e}",
                         extra={"operation": "upload", "entity_id": path})
            raise StorageError(f"Upload of {path} failed",
                               operation="upload", entity_id=path) from e
        return path

    async def get_signed_url(self, bucket: Bucket, path: str, ttl_seconds: int) -> str:
        try:
            return await asyncio.to_thread(
                self.client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self._bucket_name(bucket), "Key": path},
                ExpiresIn=ttl_seconds,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error signing {path} in {bucket}: {e}",
                         extra={"operation": "sign", "entity_id": path})
            raise StorageError(f"Signing {path} failed", operation="sign", entity_id=path,
                               user_message="Could not open document.") from e


def resolve_document_reference(reference: str) -> tuple[Bucket, str]:
    """
    Split a stored document reference into bucket and object path.

    References are either bare paths inside the documents bucket or full
    URLs containing ``/documents/`` or ``/invoices/``. Paths are
    percent-decoded.
    """
    bucket = Bucket.DOCUMENTS
    path = reference
    if reference.startswith("http"):
        for candidate in (Bucket.INVOICES, Bucket.DOCUMENTS):
            marker = f"/{candidate.value}/"
            if marker in reference:
                bucket = candidate
                path = reference.split(marker, 1)[1]
                break
    return bucket, unquote(path)
