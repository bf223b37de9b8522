"""
Job Status Poller
=================

Follows one backend job from submission to a terminal state.

Protocol:
---------
- Fetch the job snapshot, emit a StatusUpdate, wait the poll interval,
  repeat. Exactly one request is outstanding at a time.
- status == failed                 -> JobFailed(backend error or generic message)
- status == completed with result  -> JobSucceeded(result)
- status == completed, no result   -> JobFailed (protocol violation)
- request/transport failure        -> JobFailed immediately, never retried here
- optional wall-clock ceiling      -> JobFailed(kind=timeout)

Every loop yields exactly one terminal event and then stops. Callers that
lose interest simply stop iterating; a closed generator issues no further
requests and schedules no further waits.

State transitions are taken from the backend's reported status only; the
poller never infers one.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Sequence, Union

from loan_triangulation.config import Config
from loan_triangulation.models import BackendPipelineResponse, JobStatus, PipelineJobStatus
from loan_triangulation.utils.translations import translate
from loan_triangulation.services.errors import FailureKind, PipelineError, is_retryable
from loan_triangulation.services.pipeline_client import PipelineClient
from loan_triangulation.services.stages import StagePosition, StageTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusUpdate:
    """Progress report derived from one job snapshot."""
    job_id: str
    status: str
    progress: int
    stage: StagePosition
    snapshot: PipelineJobStatus

    @property
    def stage_label(self) -> Optional[str]:
        return self.stage.label


@dataclass(frozen=True)
class JobSucceeded:
    """Terminal success carrying the pipeline result."""
    job_id: str
    result: BackendPipelineResponse
    stage: Optional[StagePosition] = None


@dataclass(frozen=True)
class JobFailed:
    """Terminal failure with a human readable message."""
    job_id: Optional[str]
    message: str
    kind: FailureKind
    status_code: Optional[int] = None

    @property
    def retryable(self) -> bool:
        return is_retryable(self.kind, self.status_code)

    def to_error(self) -> PipelineError:
        return PipelineError(self.message, self.kind, self.status_code)


PollEvent = Union[StatusUpdate, JobSucceeded, JobFailed]


def normalize_progress(value, previous: int = 0) -> int:
    """
    Clamp progress to [0, 100] and round half up to an integer.

    Non-numeric values keep the previous progress.
    """
    if value is None or isinstance(value, bool):
        return previous
    try:
        number = float(value)
    except (TypeError, ValueError):
        return previous
    if math.isnan(number):
        return previous
    number = min(100.0, max(0.0, number))
    return int(math.floor(number + 0.5))


class JobStatusPoller:
    """
    Polls GET /status/{job_id} until the job reaches a terminal state.

    Example usage:

        poller = JobStatusPoller(PipelineClient())
        for event in poller.events(job_id):
            if isinstance(event, StatusUpdate):
                print(event.progress, event.stage.label)
            elif isinstance(event, JobSucceeded):
                result = event.result
            else:
                print("failed:", event.message)
    """

    def __init__(
        self,
        client: PipelineClient,
        interval_seconds: Optional[float] = None,
        stage_catalog: Optional[Sequence[str]] = None,
        max_wait_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        language: Optional[str] = None,
    ):
        """
        Initialize the poller.

        Args:
            client: Backend client used for status requests
            interval_seconds: Wait between polls (defaults to Config.POLL_INTERVAL_MS)
            stage_catalog: Ordered stage labels used to derive missing stage indexes
            max_wait_seconds: Optional wall-clock ceiling for the whole loop
            sleep: Wait function, injectable for tests
            clock: Monotonic clock, injectable for tests
            language: Language for generic failure messages
        """
        self.client = client
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else Config.poll_interval_seconds()
        )
        self.stage_catalog = list(stage_catalog) if stage_catalog else list(Config.STAGE_CATALOG)
        self.max_wait_seconds = max_wait_seconds if max_wait_seconds is not None else Config.MAX_WAIT_SECONDS
        self.sleep = sleep
        self.clock = clock
        self.language = language or Config.DEFAULT_LANGUAGE

    def events(self, job_id: str) -> Iterator[PollEvent]:
        """
        Yield StatusUpdate events followed by exactly one terminal event.

        Args:
            job_id: Backend job identifier; the loop never looks at other jobs

        Yields:
            StatusUpdate for every snapshot, then JobSucceeded or JobFailed
        """
        tracker = StageTracker(self.stage_catalog)
        progress = 0
        started = self.clock()
        polls = 0

        while True:
            try:
                snapshot = self.client.get_status(job_id)
            except PipelineError as e:
                logger.error(f"Polling job {job_id} failed: {e.message}")
                yield JobFailed(job_id=job_id, message=e.message, kind=e.kind, status_code=e.status_code)
                return
            except Exception as e:
                logger.error(f"Polling job {job_id} failed: {e}", exc_info=True)
                yield JobFailed(
                    job_id=job_id,
                    message=str(e) or translate('polling_failed', self.language),
                    kind=FailureKind.TRANSPORT,
                )
                return

            polls += 1
            progress = normalize_progress(snapshot.progress, progress)
            stage = tracker.update(snapshot.stage)

            logger.debug(
                f"Job {job_id} poll #{polls}: status={snapshot.status} progress={progress} "
                f"stage={stage.label} ({stage.index}/{stage.total})"
            )
            yield StatusUpdate(
                job_id=job_id,
                status=snapshot.status,
                progress=progress,
                stage=stage,
                snapshot=snapshot,
            )

            if snapshot.is_terminal:
                if snapshot.status == JobStatus.FAILED.value:
                    message = snapshot.error or translate('pipeline_failed', self.language)
                    logger.warning(f"Job {job_id} failed after {polls} polls: {message}")
                    yield JobFailed(job_id=job_id, message=message, kind=FailureKind.BACKEND_FAILED)
                elif snapshot.result is not None:
                    logger.info(f"Job {job_id} completed after {polls} polls")
                    yield JobSucceeded(job_id=job_id, result=snapshot.result, stage=tracker.complete())
                else:
                    logger.error(f"Job {job_id} reported completed without a result payload")
                    yield JobFailed(
                        job_id=job_id,
                        message=translate('missing_result', self.language),
                        kind=FailureKind.PROTOCOL,
                    )
                return

            if self.max_wait_seconds is not None and self.clock() - started >= self.max_wait_seconds:
                logger.error(f"Job {job_id} still {snapshot.status} after {self.max_wait_seconds}s")
                yield JobFailed(
                    job_id=job_id,
                    message=translate('timed_out', self.language),
                    kind=FailureKind.TIMEOUT,
                )
                return

            self.sleep(self.interval_seconds)

    def wait(
        self,
        job_id: str,
        on_status_update: Optional[Callable[[StatusUpdate], None]] = None,
    ) -> BackendPipelineResponse:
        """
        Block until the job finishes.

        Args:
            job_id: Backend job identifier
            on_status_update: Optional callback for every StatusUpdate

        Returns:
            The pipeline result of a completed job

        Raises:
            PipelineError: On any terminal failure
        """
        for event in self.events(job_id):
            if isinstance(event, StatusUpdate):
                if on_status_update:
                    on_status_update(event)
            elif isinstance(event, JobSucceeded):
                return event.result
            else:
                raise event.to_error()

        # events() always ends with a terminal event
        raise PipelineError(translate('polling_failed', self.language), FailureKind.PROTOCOL)
