"""
HTTP client for the upstream document-processing backend.

Endpoints:
- POST /process        multipart PDF upload -> {"job_id": ...}
- GET  /status/{id}    job snapshot
- GET  /config         labels, extraction schema and label weights
"""
import logging
from pathlib import Path
from typing import BinaryIO, Optional, Tuple, Union

import requests

from loan_triangulation.config import Config
from loan_triangulation.models import BackendConfig, PipelineJobStatus, SubmitResponse
from loan_triangulation.utils.translations import translate
from loan_triangulation.services.errors import FailureKind, PipelineError

logger = logging.getLogger(__name__)

Document = Union[str, Path, bytes, bytearray, BinaryIO]


def read_document(document: Document, filename: Optional[str] = None) -> Tuple[bytes, str]:
    """
    Load a document into memory.

    Args:
        document: File path, raw bytes or a binary file object
        filename: Optional upload name (derived from the path/file when omitted)

    Returns:
        Tuple of (content: bytes, filename: str)
    """
    if isinstance(document, (str, Path)):
        path = Path(document)
        return path.read_bytes(), filename or path.name
    if isinstance(document, (bytes, bytearray)):
        return bytes(document), filename or 'document.pdf'

    content = document.read()
    name = filename or Path(getattr(document, 'name', '') or 'document.pdf').name
    return content, name


class PipelineClient:
    """Thin requests-based client; every failure is raised as PipelineError."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        language: Optional[str] = None,
    ):
        """
        Initialize the pipeline client.

        Args:
            base_url: Backend base URL (defaults to Config.PIPELINE_API_BASE_URL)
            timeout: Per-request timeout in seconds
            session: Optional pre-configured requests session
            language: Language for fallback error messages
        """
        self.base_url = (base_url or Config.api_base_url()).rstrip('/')
        self.timeout = timeout or Config.HTTP_TIMEOUT
        self.session = session or requests.Session()
        self.language = language or Config.DEFAULT_LANGUAGE

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _check(self, response, fallback_key: str) -> None:
        """Raise a transport failure carrying the response body for non-2xx."""
        if not response.ok:
            message = (response.text or '').strip()
            logger.warning(f"Backend returned HTTP {response.status_code}: {message[:200]}")
            raise PipelineError(
                message or translate(fallback_key, self.language),
                FailureKind.TRANSPORT,
                status_code=response.status_code,
            )

    def fetch_config(self) -> BackendConfig:
        """Fetch labels, extraction schema and label weights."""
        try:
            response = self.session.get(self._url('/config'), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Config fetch failed: {e}")
            raise PipelineError(translate('config_failed', self.language), FailureKind.TRANSPORT) from e

        if not response.ok:
            raise PipelineError(
                translate('config_failed', self.language),
                FailureKind.TRANSPORT,
                status_code=response.status_code,
            )
        try:
            return BackendConfig.model_validate(response.json())
        except ValueError as e:
            raise PipelineError(translate('config_failed', self.language), FailureKind.PROTOCOL) from e

    def submit(self, document: Document, filename: Optional[str] = None) -> str:
        """
        Upload a document for processing.

        Returns:
            The backend job id
        """
        content, name = read_document(document, filename)
        logger.info(f"Submitting {name} ({len(content)} bytes) to {self.base_url}")

        try:
            response = self.session.post(
                self._url('/process'),
                files={'file': (name, content, 'application/pdf')},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Upload of {name} failed: {e}")
            raise PipelineError(str(e) or translate('processing_failed', self.language), FailureKind.TRANSPORT) from e

        self._check(response, 'processing_failed')

        try:
            payload = SubmitResponse.model_validate(response.json())
        except ValueError as e:
            raise PipelineError(translate('missing_job_id', self.language), FailureKind.MISSING_JOB_ID) from e

        if not payload.job_id:
            raise PipelineError(translate('missing_job_id', self.language), FailureKind.MISSING_JOB_ID)

        logger.info(f"Backend accepted {name} as job {payload.job_id}")
        return payload.job_id

    def get_status(self, job_id: str) -> PipelineJobStatus:
        """Fetch the current snapshot of a job."""
        try:
            response = self.session.get(self._url(f'/status/{job_id}'), timeout=self.timeout)
        except requests.RequestException as e:
            raise PipelineError(str(e) or translate('polling_failed', self.language), FailureKind.TRANSPORT) from e

        self._check(response, 'status_failed')

        try:
            return PipelineJobStatus.model_validate(response.json())
        except ValueError as e:
            logger.error(f"Malformed status payload for job {job_id}: {e}")
            raise PipelineError(translate('polling_failed', self.language), FailureKind.PROTOCOL) from e

    def close(self) -> None:
        self.session.close()
