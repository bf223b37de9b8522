"""
Configuration management for the loan closing package triangulation service.
Loads upstream pipeline and API settings from environment variables.
"""
import os
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()


DEFAULT_STAGE_CATALOG = [
    'DocumentLoaderAgent',
    'PageClassifierAgent',
    'FieldExtractionAgent',
    'NoiseFilterAgent',
    'MajorityVoteAgent',
    'Pipeline',
]


def _split_list(raw: Optional[str], default: List[str]) -> List[str]:
    if not raw:
        return list(default)
    items = [item.strip() for item in raw.split(',')]
    return [item for item in items if item]


class Config:
    """Configuration class for the upstream pipeline and the relay API."""

    # Upstream pipeline backend
    PIPELINE_API_BASE_URL: str = os.getenv('PIPELINE_API_BASE_URL', 'https://pdf.hukcep.com').strip()
    HTTP_TIMEOUT: float = float(os.getenv('HTTP_TIMEOUT', '30'))

    # Job polling
    POLL_INTERVAL_MS: int = int(os.getenv('POLL_INTERVAL_MS', '1000'))
    MAX_WAIT_SECONDS: Optional[float] = float(os.getenv('MAX_WAIT_SECONDS')) if os.getenv('MAX_WAIT_SECONDS') else None
    SUBMIT_RETRIES: int = int(os.getenv('SUBMIT_RETRIES', '0'))
    STAGE_CATALOG: List[str] = _split_list(os.getenv('STAGE_CATALOG'), DEFAULT_STAGE_CATALOG)

    # Display
    DEFAULT_LANGUAGE: str = os.getenv('DEFAULT_LANGUAGE', 'tr').lower()

    # API Settings
    API_HOST: str = os.getenv('API_HOST', '0.0.0.0')
    API_PORT: int = int(os.getenv('API_PORT', '8000'))
    CORS_ORIGINS: list = os.getenv('CORS_ORIGINS', 'http://localhost:3000').split(',')
    RELAY_RETENTION_SECONDS: float = float(os.getenv('RELAY_RETENTION_SECONDS', '300'))
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO').upper()

    @classmethod
    def validate(cls) -> bool:
        """
        Validate that required configuration is present and consistent.
        """
        if not cls.PIPELINE_API_BASE_URL:
            raise ValueError("PIPELINE_API_BASE_URL environment variable is required.")

        if not cls.PIPELINE_API_BASE_URL.startswith(('http://', 'https://')):
            raise ValueError(
                f"PIPELINE_API_BASE_URL must be an http(s) URL, got: {cls.PIPELINE_API_BASE_URL}"
            )

        if cls.POLL_INTERVAL_MS <= 0:
            raise ValueError("POLL_INTERVAL_MS must be a positive number of milliseconds.")

        if cls.MAX_WAIT_SECONDS is not None and cls.MAX_WAIT_SECONDS <= 0:
            raise ValueError("MAX_WAIT_SECONDS must be positive when set.")

        if cls.SUBMIT_RETRIES < 0:
            raise ValueError("SUBMIT_RETRIES cannot be negative.")

        if cls.DEFAULT_LANGUAGE not in ('en', 'tr'):
            raise ValueError(
                f"DEFAULT_LANGUAGE must be 'en' or 'tr', got: {cls.DEFAULT_LANGUAGE}"
            )

        if cls.RELAY_RETENTION_SECONDS < 0:
            raise ValueError("RELAY_RETENTION_SECONDS cannot be negative.")

        if not cls.STAGE_CATALOG:
            raise ValueError("STAGE_CATALOG must contain at least one stage label.")
        return True

    @classmethod
    def poll_interval_seconds(cls) -> float:
        """Poll interval converted to seconds for time.sleep."""
        return cls.POLL_INTERVAL_MS / 1000.0

    @classmethod
    def api_base_url(cls) -> str:
        """Base URL without a trailing slash."""
        return cls.PIPELINE_API_BASE_URL.rstrip('/')
