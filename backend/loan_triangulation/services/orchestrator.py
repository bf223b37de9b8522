"""
Closing Package Pipeline
========================

Facade over submission, job polling and result hydration.

Flow:
-----
1. POST the document to the backend and receive a job id
2. Poll the job, relaying StatusUpdate events to the caller
3. On completion, hydrate pages and choose final field values:
   the backend's reconciled record when present, otherwise client-side
   triangulation of the per-page extractions

Retry policy lives here, not in the poller: with `retries > 0` a document
is re-submitted as a new job after connection failures and 5xx responses.
Rejected uploads (4xx), backend-reported failures and protocol violations
are never retried.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Union

from loan_triangulation.config import Config
from loan_triangulation.models import BackendConfig
from loan_triangulation.utils.translations import translate
from loan_triangulation.services.errors import FailureKind, PipelineError
from loan_triangulation.services.job_poller import JobFailed, JobStatusPoller, JobSucceeded, StatusUpdate
from loan_triangulation.services.pipeline_client import Document, PipelineClient, read_document
from loan_triangulation.services.presentation import ProcessedPackage, build_package
from loan_triangulation.services.stages import StagePosition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageProcessed:
    """Terminal success event of ClosingPackagePipeline.stream."""
    job_id: str
    package: ProcessedPackage
    stage: Optional[StagePosition] = None


PipelineEvent = Union[StatusUpdate, PackageProcessed, JobFailed]


class ClosingPackagePipeline:
    """
    Submits closing packages and tracks them to a final record.

    Example usage:

        pipeline = ClosingPackagePipeline(language='en')
        config = pipeline.fetch_config()
        package = pipeline.process('closing_package.pdf', config=config,
                                   on_status_update=lambda e: print(e.progress))
        for card in build_final_fields(package, 'en'):
            print(card.name, card.value)
    """

    def __init__(
        self,
        client: Optional[PipelineClient] = None,
        poller: Optional[JobStatusPoller] = None,
        language: Optional[str] = None,
        retries: Optional[int] = None,
    ):
        """
        Initialize the facade.

        Args:
            client: Backend client (defaults to one built from Config)
            poller: Job poller (defaults to one sharing `client`)
            language: Display language for results and messages
            retries: Re-submissions allowed after connection failures and 5xx responses
        """
        self.language = language or Config.DEFAULT_LANGUAGE
        self.client = client or PipelineClient(language=self.language)
        self.poller = poller or JobStatusPoller(self.client, language=self.language)
        self.retries = retries if retries is not None else Config.SUBMIT_RETRIES

        logger.info(
            f"Initialized ClosingPackagePipeline - backend: {self.client.base_url}, "
            f"poll interval: {self.poller.interval_seconds}s, retries: {self.retries}"
        )

    def fetch_config(self) -> BackendConfig:
        """Fetch the backend's labels, extraction schema and label weights."""
        return self.client.fetch_config()

    def submit(self, document: Document, filename: Optional[str] = None) -> str:
        """Upload a document and return the backend job id."""
        return self.client.submit(document, filename)

    def _attempt(
        self,
        content: bytes,
        filename: str,
        config: Optional[BackendConfig],
    ) -> Iterator[PipelineEvent]:
        try:
            job_id = self.client.submit(content, filename)
        except PipelineError as e:
            yield JobFailed(job_id=None, message=e.message, kind=e.kind, status_code=e.status_code)
            return

        for event in self.poller.events(job_id):
            if isinstance(event, JobSucceeded):
                package = build_package(event.result, job_id=job_id, config=config, language=self.language)
                yield PackageProcessed(job_id=job_id, package=package, stage=event.stage)
                return
            yield event

    def stream(
        self,
        document: Document,
        filename: Optional[str] = None,
        config: Optional[BackendConfig] = None,
    ) -> Iterator[PipelineEvent]:
        """
        Process a document, yielding progress and exactly one terminal event.

        Args:
            document: File path, bytes or binary file object
            filename: Optional upload name
            config: Backend config (schema and label weights); optional

        Yields:
            StatusUpdate events, then PackageProcessed or JobFailed
        """
        content, name = read_document(document, filename)
        attempts = self.retries + 1

        for attempt in range(1, attempts + 1):
            failure: Optional[JobFailed] = None
            for event in self._attempt(content, name, config):
                if isinstance(event, JobFailed):
                    failure = event
                    break
                yield event
                if isinstance(event, PackageProcessed):
                    return

            if failure is None:
                failure = JobFailed(
                    job_id=None,
                    message=translate('polling_failed', self.language),
                    kind=FailureKind.PROTOCOL,
                )

            if failure.retryable and attempt < attempts:
                logger.warning(
                    f"Attempt {attempt}/{attempts} for {name} failed ({failure.message}); re-submitting"
                )
                continue

            yield failure
            return

    def process(
        self,
        document: Document,
        on_status_update: Optional[Callable[[StatusUpdate], None]] = None,
        config: Optional[BackendConfig] = None,
        filename: Optional[str] = None,
    ) -> ProcessedPackage:
        """
        Process a document and return the hydrated package.

        Raises:
            PipelineError: When the job cannot produce a result
        """
        for event in self.stream(document, filename=filename, config=config):
            if isinstance(event, StatusUpdate):
                if on_status_update:
                    on_status_update(event)
            elif isinstance(event, PackageProcessed):
                return event.package
            else:
                raise event.to_error()

        raise PipelineError(translate('polling_failed', self.language), FailureKind.PROTOCOL)

    def close(self) -> None:
        self.client.close()
