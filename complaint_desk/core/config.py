"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./complaint_desk.db"

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 24 * 20

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Auto-assignment target for complaints raised by technicians
    DEFAULT_TECHNICIAN_PHONE: str = ""

    # Photo storage
    STORAGE_BACKEND: str = "local"  # local | s3
    LOCAL_STORAGE_PATH: str = "/tmp/complaint-desk-photos"
    LOCAL_STORAGE_BASE_URL: str = "/photos/local"
    S3_BUCKET: str = "complaint-desk-photos"
    S3_REGION: str = "ap-south-1"
    S3_ENDPOINT_URL: str = ""
    S3_PUBLIC_BASE_URL: str = ""  # e.g. CDN in front of the bucket
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""

    # Upload limits
    MAX_COMPLAINT_PHOTOS: int = 5
    MAX_PHOTO_SIZE_BYTES: int = 5 * 1024 * 1024  # 5 MB

    # MSG91 WhatsApp channel
    MSG91_AUTHKEY: str = ""
    MSG91_INTEGRATED_NUMBER: str = ""
    MSG91_NAMESPACE: str = ""
    MSG91_API_URL: str = "https://api.msg91.com/api/v5/whatsapp/whatsapp-outbound-message/bulk/"
    MSG91_TIMEOUT_SECONDS: float = 20.0

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets

    @property
    def msg91_configured(self) -> bool:
        return bool(self.MSG91_AUTHKEY and self.MSG91_INTEGRATED_NUMBER and self.MSG91_NAMESPACE)


settings = Settings()
