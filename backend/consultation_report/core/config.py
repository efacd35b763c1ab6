import os
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    """Runtime settings for the consultation report service."""

    APP_TITLE: str = os.getenv("APP_TITLE", "Consultation Report Service")
    # Comma separated list of origins allowed to call the API
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "http://127.0.0.1:8081,http://localhost:8081")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_STRUCTURED: bool = os.getenv("LOG_STRUCTURED", "true").lower() == "true"

    # Report defaults
    REPORT_DATE_FORMAT: str = os.getenv("REPORT_DATE_FORMAT", "%d/%m/%Y")

    class Config:
        case_sensitive = True

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


settings = Settings()
