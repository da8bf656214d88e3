from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Protocol, Sequence


class Collection(str, Enum):
    CAMPAIGNS = "campaigns"
    STUDENTS = "students"
    UNIVERSITIES = "universities"
    DONATIONS = "donations"
    VERIFICATION_REQUESTS = "verification_requests"
    NOTIFICATIONS = "notifications"
    PROFILES = "profiles"


class Bucket(str, Enum):
    DOCUMENTS = "documents"
    INVOICES = "invoices"


class PersistenceGateway(Protocol):
    """Record store addressed by collection name.

    ``filters`` are equality conditions joined with AND. Failures raise
    ``PersistenceError``.
    """

    async def read(self, collection: Collection, filters: Mapping[str, Any]) -> list[dict]: ...

    async def read_one(self, collection: Collection, record_id: str) -> dict | None: ...

    async def insert(self, collection: Collection, records: dict | Sequence[dict]) -> list[dict]: ...

    async def update(self, collection: Collection, patch: Mapping[str, Any],
                     filters: Mapping[str, Any]) -> int: ...

    async def rpc(self, name: str, args: Mapping[str, Any]) -> Any: ...


class DocumentStore(Protocol):
    """Blob storage. Failures raise ``StorageError``."""

    async def upload(self, bucket: Bucket, path: str, blob: bytes,
                     content_type: str | None = None) -> str: ...

    async def get_signed_url(self, bucket: Bucket, path: str, ttl_seconds: int) -> str: ...


@dataclass(frozen=True)
class ChargeConfig:
    reference: str
    email: str
    amount_minor: int
    currency: str
    metadata: dict[str, str] = field(default_factory=dict)
    payment_token: str | None = None


class PaymentGateway(Protocol):
    """Settles a charge. Returns the gateway's reference (may be empty);
    raises ``GatewayError`` when the charge fails or is cancelled."""

    async def charge(self, config: ChargeConfig) -> str: ...


class UserNotifier(Protocol):
    """Fire-and-forget feedback to the acting user (toast/alert)."""

    def notify_user(self, kind: str, title: str, message: str) -> None: ...


class NullNotifier:
    def notify_user(self, kind: str, title: str, message: str) -> None:
        pass
