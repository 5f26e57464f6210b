"""Settings read from the environment (and .env in development)."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"  # dev / test / prod
    VERSION: str = "0.01.00"

    DATABASE_URL: str

    # Session cookie JWT; PREVIOUS keeps old cookies valid during a rotation
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""
    JWT_EXPIRES_HOURS: int = 12

    CORS_ORIGINS: str = "http://localhost:3000"

    # Business calendar ("today", fiscal years, attendance dates)
    TIMEZONE: str = "Asia/Tokyo"

    # File storage
    STORAGE_BACKEND: str = "local"  # "local" or "s3"
    LOCAL_STORAGE_PATH: str = "/tmp/backoffice-files"
    S3_BUCKET: str = "backoffice-files"
    S3_REGION: str = "ap-northeast-1"
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    SIGNED_URL_EXPIRES_SECONDS: int = 3600
    MAX_UPLOAD_BYTES: int = 20 * 1024 * 1024

    # AI provider (postal code estimation); empty provider uses the lookup API
    AI_PROVIDER: str = ""  # "openai" or "gemini"
    AI_API_KEY: str = ""
    AI_MODEL: str = ""
    POSTAL_CODE_LOOKUP_URL: str = "https://api.excelapi.org/post/zipcode"

    # Invoices
    CONSUMPTION_TAX_RATE: float = 0.10

    # Sentry is only initialised outside dev
    SENTRY_DSN: str = ""
    LOG_LEVEL: str = "INFO"

    # Requests per minute per client address
    RATE_LIMIT_AUTH: int = 5
    RATE_LIMIT_API: int = 120

    @field_validator("STORAGE_BACKEND", "AI_PROVIDER")
    @classmethod
    def lower_choice(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("STORAGE_BACKEND")
    @classmethod
    def known_backend(cls, v: str) -> str:
        if v not in ("local", "s3"):
            raise ValueError("STORAGE_BACKEND must be local or s3")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        return [s for s in (self.JWT_SECRET, self.JWT_SECRET_PREVIOUS) if s]

    @property
    def cookie_secure(self) -> bool:
        """Local development runs over plain http."""
        return self.ENV != "dev"

    @property
    def ai_enabled(self) -> bool:
        return bool(self.AI_PROVIDER and self.AI_API_KEY)


settings = Settings()
