import json

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str

    REDIS_URL: str = "redis://redis:6379/0"

    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    EMAIL_BACKEND: str = "console"
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM_EMAIL: str = "noreply@zlp.vn"
    SMTP_FROM_NAME: str = "ZLP Academy"

    FRONTEND_URL: str = "http://localhost:3000"

    BACKEND_CORS_ORIGINS: str = '["http://localhost:3000","http://localhost:5173"]'

    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "ZLP Learning Commerce API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    RATE_LIMIT_ENABLED: bool = True

    # Flat processing fee added to every payable amount (VND)
    PAYMENT_FEE: int = 700

    # SePay bank-transfer gateway
    SEPAY_API_KEY: str = ""
    SEPAY_BASE_URL: str = "https://my.sepay.vn"
    SEPAY_QR_BASE_URL: str = "https://qr.sepay.vn/img"
    PAYMENT_QR_BANK_ACCOUNT: str = ""
    PAYMENT_QR_BANK_CODE: str = ""
    PAYMENT_WEBHOOK_SECRET_KEY: str = ""

    SEPAY_TIMEOUT_SECONDS: float = 10.0
    SEPAY_MAX_ATTEMPTS: int = 3
    SEPAY_RETRY_DELAY_SECONDS: float = 0.5
    SEPAY_CIRCUIT_FAILURE_THRESHOLD: int = 5
    SEPAY_CIRCUIT_RESET_SECONDS: float = 60.0

    SUBSCRIPTION_PERIOD_DAYS: int = 30
    LESSON_COMPLETION_THRESHOLD: int = 70

    STUDENT_COURSE_CACHE_TTL_SECONDS: int = 600
    PROGRESS_SUMMARY_CACHE_TTL_SECONDS: int = 300

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def cors_origins(self) -> list[str]:
        if isinstance(self.BACKEND_CORS_ORIGINS, str):
            try:
                parsed: list[str] = json.loads(self.BACKEND_CORS_ORIGINS)
                return parsed
            except json.JSONDecodeError:
                return ["http://localhost:3000"]
        return self.BACKEND_CORS_ORIGINS


settings = Settings()
