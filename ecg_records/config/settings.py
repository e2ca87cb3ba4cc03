"""Configuration settings for the ECG record lookup service."""

import os
from typing import Optional


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        # S3 layout
        self.S3_BUCKET: str = os.environ.get("S3_BUCKET", "deck-backend-demo")
        self.AWS_REGION: str = os.environ.get("AWS_REGION", "us-east-1")
        self.JSON_PREFIX: str = os.environ.get("JSON_PREFIX", "ecg-data/")
        self.PDF_PREFIX: str = os.environ.get("PDF_PREFIX", "ecg-reports/")
        self.REVIEWED_PREFIX: str = os.environ.get("REVIEWED_PREFIX", "ecg-reports/reviewed/")

        # Lookup / signing
        self.PRESIGNED_URL_TTL: int = int(os.environ.get("PRESIGNED_URL_TTL", "300"))
        self.SEARCH_WINDOW_DAYS: int = int(os.environ.get("SEARCH_WINDOW_DAYS", "7"))
        self.S3_CONNECT_TIMEOUT: float = float(os.environ.get("S3_CONNECT_TIMEOUT", "5"))
        self.S3_READ_TIMEOUT: float = float(os.environ.get("S3_READ_TIMEOUT", "5"))

        # Protection
        self.RATE_LIMIT_MAX_REQUESTS: int = int(os.environ.get("RATE_LIMIT_MAX_REQUESTS", "100"))
        self.RATE_LIMIT_WINDOW_SECONDS: float = float(os.environ.get("RATE_LIMIT_WINDOW_SECONDS", "60"))
        self.BREAKER_FAILURE_THRESHOLD: int = int(os.environ.get("BREAKER_FAILURE_THRESHOLD", "3"))
        self.BREAKER_RESET_TIMEOUT: float = float(os.environ.get("BREAKER_RESET_TIMEOUT", "30"))

        # Runtime
        self.ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")
        self.LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")
        self.LAMBDA_NAME: Optional[str] = os.environ.get("AWS_LAMBDA_FUNCTION_NAME")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the environment is read again."""
    global _settings
    _settings = None
