"""Root conftest: shared test configuration and seeded in-memory stores."""

import os

# Settings are read at import time; never point tests at real services
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_fake")
os.environ.setdefault("AWS_REGION", "af-south-1")
os.environ.setdefault("DOCUMENTS_BUCKET", "unifund-test-documents")
os.environ.setdefault("INVOICES_BUCKET", "unifund-test-invoices")

import pytest

from data_access.gateways import Collection
from services.notification_service import NotificationService

from tests.fakes import (
    FakeDocumentStore,
    FakePaymentGateway,
    InMemoryPersistence,
    RecordingNotifier,
)

CAMPAIGN_ID = "camp-1"
STUDENT_ID = "stud-1"
UNIVERSITY_ID = "uni-1"
ADMIN_IDS = ["admin-1", "admin-2"]


def seed_campaign(persistence, *, campaign_status="pending", student_status="pending",
                  pending_requests=1, reviewed_requests=0, admins=ADMIN_IDS):
    persistence.seed(Collection.UNIVERSITIES, {
        "id": UNIVERSITY_ID,
        "name": "University of Cape Town",
        "bank_name": "Standard Bank",
        "account_number": "070 123 456",
        "branch_code": "051001",
        "account_name": "UCT Student Fees",
    })
    persistence.seed(Collection.STUDENTS, {
        "id": STUDENT_ID,
        "first_name": "Thandi",
        "last_name": "Mokoena",
        "email": "thandi@uct.ac.za",
        "university_id": UNIVERSITY_ID,
        "student_number": "MKNTHA001",
        "verification_status": student_status,
    })
    persistence.seed(Collection.CAMPAIGNS, {
        "id": CAMPAIGN_ID,
        "student_id": STUDENT_ID,
        "title": "Final year tuition",
        "goal": 45000,
        "raised": 0,
        "donors": 0,
        "status": campaign_status,
        "is_urgent": False,
        "fee_statement_url": "fees/stud-1/statement.pdf",
        "invoice_url": "https://xyz.supabase.co/storage/v1/object/public/invoices/stud-1/inv%201.pdf",
    })
    for i in range(pending_requests):
        persistence.seed(Collection.VERIFICATION_REQUESTS, {
            "id": f"vr-pending-{i}", "student_id": STUDENT_ID, "document_type": "id",
            "document_url": f"docs/{i}.pdf", "status": "pending",
            "rejection_reason": None, "reviewed_at": None,
        })
    for i in range(reviewed_requests):
        persistence.seed(Collection.VERIFICATION_REQUESTS, {
            "id": f"vr-old-{i}", "student_id": STUDENT_ID, "document_type": "enrollment",
            "document_url": f"docs/old-{i}.pdf", "status": "rejected",
            "rejection_reason": "Blurry scan", "reviewed_at": "2025-01-01T00:00:00+00:00",
        })
    # another student's pending request must never be touched
    persistence.seed(Collection.VERIFICATION_REQUESTS, {
        "id": "vr-other", "student_id": "stud-2", "document_type": "id",
        "document_url": "docs/other.pdf", "status": "pending",
        "rejection_reason": None, "reviewed_at": None,
    })
    for admin_id in admins:
        persistence.seed(Collection.PROFILES, {"id": admin_id, "email": f"{admin_id}@unifund.co.za", "role": "admin"})
    persistence.seed(Collection.PROFILES, {"id": "donor-9", "email": "d@x.com", "role": "donor"})
    return persistence


@pytest.fixture
def persistence():
    return seed_campaign(InMemoryPersistence())


@pytest.fixture
def documents():
    return FakeDocumentStore()


@pytest.fixture
def payments():
    return FakePaymentGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def notifications(persistence):
    return NotificationService(persistence)
