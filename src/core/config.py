from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

class Settings(BaseSettings):

    STRIPE_SECRET_KEY: str
    PAYMENT_CURRENCY: str = "zar"

    AWS_REGION: str
    DYNAMODB_TABLE_PREFIX: str = "unifund-"
    DOCUMENTS_BUCKET: str
    INVOICES_BUCKET: str
    SIGNED_URL_TTL_SECONDS: int = 60 * 60

    TIP_REFERENCE_PREFIX: str = "TIP_"
    PLATFORM_REFERENCE_PREFIX: str = "PLATFORM_"
    GATEWAY_REFERENCE_PREFIX: str = "stripe_ref_"
    GUEST_EMAIL_PLACEHOLDER: str = "guest@unifund.co.za"

    ADMIN_GROUP: str = "admin"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
