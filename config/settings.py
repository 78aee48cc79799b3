# config/settings.py
import os
import sys
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import Environment


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(..., validation_alias="APP_ENV")
    REDIS_URL: str = Field(..., validation_alias="REDIS_URL")

    # Backend
    API_BASE_URL: str = Field(..., validation_alias="API_BASE_URL")
    REQUEST_TIMEOUT_SECONDS: float = Field(
        default=30.0, validation_alias="REQUEST_TIMEOUT_SECONDS"
    )
    UPLOAD_CONCURRENCY: int = Field(default=4, validation_alias="UPLOAD_CONCURRENCY")

    # Job polling
    JOB_POLL_INTERVAL_MS: int = Field(default=2000, validation_alias="JOB_POLL_INTERVAL_MS")

    # Local simulation of backend post-processing
    PROCESSING_DELAY_MIN_MS: int = Field(
        default=1200, validation_alias="PROCESSING_DELAY_MIN_MS"
    )
    PROCESSING_DELAY_MAX_MS: int = Field(
        default=2400, validation_alias="PROCESSING_DELAY_MAX_MS"
    )

    # Manifest cache
    MANIFEST_CACHE_TTL_SECONDS: int = Field(
        default=5 * 60, validation_alias="MANIFEST_CACHE_TTL_SECONDS"
    )
    MANIFEST_CACHE_MAX_AGE_SECONDS: int = Field(
        default=60 * 60 * 24, validation_alias="MANIFEST_CACHE_MAX_AGE_SECONDS"
    )
    MANIFEST_CACHE_MAX_BYTES: int = Field(
        default=4096, validation_alias="MANIFEST_CACHE_MAX_BYTES"
    )
    IDENTITY_MAX_AGE_SECONDS: int = Field(
        default=60 * 60 * 24 * 365, validation_alias="IDENTITY_MAX_AGE_SECONDS"
    )

    # Logging knobs
    LOGGER_NAME: str = "form-fill-client"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="client.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
