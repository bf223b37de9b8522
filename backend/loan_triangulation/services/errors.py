"""
Failure signal shared by the pipeline client, poller and orchestrator.
"""
from enum import Enum
from typing import Optional


class FailureKind(str, Enum):
    """Where a pipeline failure came from."""
    TRANSPORT = "transport"            # request could not complete or non-2xx
    BACKEND_FAILED = "backend_failed"  # job reported status == failed
    PROTOCOL = "protocol"              # completed without a result payload
    MISSING_JOB_ID = "missing_job_id"  # submission returned no job id
    TIMEOUT = "timeout"                # optional wall-clock ceiling exceeded


def is_retryable(kind: FailureKind, status_code: Optional[int] = None) -> bool:
    """True for connection failures and 5xx responses; 4xx rejections are final."""
    if kind is not FailureKind.TRANSPORT:
        return False
    return status_code is None or status_code >= 500


class PipelineError(Exception):
    """A pipeline job could not produce a result."""

    def __init__(
        self,
        message: str,
        kind: FailureKind = FailureKind.TRANSPORT,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return is_retryable(self.kind, self.status_code)

    def __str__(self) -> str:
        return self.message
