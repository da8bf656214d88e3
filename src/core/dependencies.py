import boto3
from functools import lru_cache

from core.config import settings
from data_access.dynamodb import DynamoPersistenceGateway
from data_access.gateways import Bucket
from data_access.s3 import S3DocumentStore
from data_access.stripe_gateway import StripePaymentGateway
from services.payments import PaymentOptions


@lru_cache()
def get_boto_session() -> boto3.Session:
    return boto3.Session(region_name=settings.AWS_REGION)

@lru_cache()
def get_persistence() -> DynamoPersistenceGateway:
    session = get_boto_session()
    return DynamoPersistenceGateway(
        resource=session.resource('dynamodb'),
        table_prefix=settings.DYNAMODB_TABLE_PREFIX
    )

@lru_cache()
def get_document_store() -> S3DocumentStore:
    session = get_boto_session()
    return S3DocumentStore(
        client=session.client('s3'),
        bucket_names={
            Bucket.DOCUMENTS: settings.DOCUMENTS_BUCKET,
            Bucket.INVOICES: settings.INVOICES_BUCKET,
        }
    )

@lru_cache()
def get_payment_gateway() -> StripePaymentGateway:
    return StripePaymentGateway(api_key=settings.STRIPE_SECRET_KEY)

@lru_cache()
def get_payment_options() -> PaymentOptions:
    return PaymentOptions(
        currency=settings.PAYMENT_CURRENCY,
        tip_reference_prefix=settings.TIP_REFERENCE_PREFIX,
        platform_reference_prefix=settings.PLATFORM_REFERENCE_PREFIX,
        gateway_reference_prefix=settings.GATEWAY_REFERENCE_PREFIX,
        guest_email_placeholder=settings.GUEST_EMAIL_PLACEHOLDER
    )
