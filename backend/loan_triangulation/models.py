"""
Pydantic models for the upstream pipeline backend's JSON payloads.
"""
from enum import Enum
from typing import Optional, List, Dict, Any, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


def _scalar_to_str(value: Any) -> Any:
    """Backends sometimes send numeric field values (e.g. a loan number as int)."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class JobStatus(str, Enum):
    """Backend job states; COMPLETED and FAILED are terminal."""
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = {JobStatus.COMPLETED.value, JobStatus.FAILED.value}


class BackendLayoutBlock(BaseModel):
    """OCR layout block on a page."""
    text: Optional[str] = None
    bbox: List[float] = Field(default_factory=list, description="[x1, y1, x2, y2]")


class BackendPage(BaseModel):
    """Page text as produced by the backend OCR stage."""
    page_number: int
    text: Optional[str] = None
    group_id: Optional[str] = None
    layout: List[BackendLayoutBlock] = Field(default_factory=list)


class BackendClassification(BaseModel):
    """Predicted document label for one page."""
    page_number: int
    label: Optional[str] = None
    confidence: Optional[float] = None
    group_id: Optional[str] = None


class BackendExtraction(BaseModel):
    """
    Extracted field values for one page.

    Schema fields beyond the three built-in ones arrive as extra keys.
    """
    model_config = ConfigDict(extra='allow')

    page_number: int
    borrower_name: Optional[str] = None
    property_address: Optional[str] = None
    loan_number: Optional[str] = None
    errors: List[str] = Field(default_factory=list)

    coerce_scalar_values = field_validator('borrower_name', 'property_address', 'loan_number', mode='before')(_scalar_to_str)

    def value_for(self, field_name: str) -> Any:
        """Value of a field whether declared or carried as an extra key."""
        if field_name in ('page_number', 'errors'):
            return None
        if field_name in type(self).model_fields:
            return getattr(self, field_name)
        return (self.model_extra or {}).get(field_name)


class LoanRecordSummary(BaseModel):
    """Backend-side reconciled record with its decision log."""
    model_config = ConfigDict(extra='allow')

    borrower_name: Optional[str] = None
    property_address: Optional[str] = None
    loan_number: Optional[str] = None
    decision_log: Dict[str, List[str]] = Field(default_factory=dict)
    field_confidence: Optional[Dict[str, float]] = None

    coerce_scalar_values = field_validator('borrower_name', 'property_address', 'loan_number', mode='before')(_scalar_to_str)


class BackendDocument(BaseModel):
    """Document summary in the backend UI result."""
    label: str
    pages: List[Union[int, str]] = Field(default_factory=list)
    average_confidence: Optional[float] = None


class BackendUIResult(BaseModel):
    """Presentation-ready reconciled result from the backend."""
    model_config = ConfigDict(extra='allow')

    borrower_name: Optional[str] = None
    property_address: Optional[str] = None
    loan_number: Optional[str] = None
    field_confidence: Optional[Dict[str, float]] = None
    confidence: Optional[float] = None
    warnings: List[str] = Field(default_factory=list)
    documents: List[BackendDocument] = Field(default_factory=list)
    decision_log: Dict[str, List[str]] = Field(default_factory=dict)

    coerce_scalar_values = field_validator('borrower_name', 'property_address', 'loan_number', mode='before')(_scalar_to_str)

    def value_for(self, field_name: str) -> Optional[str]:
        if field_name in type(self).model_fields:
            value = getattr(self, field_name)
        else:
            value = (self.model_extra or {}).get(field_name)
        return value if isinstance(value, str) or value is None else str(value)


class BackendDocGroup(BaseModel):
    """Consecutive pages grouped into one document, for display only."""
    group_id: str
    label: str
    pages: List[int] = Field(default_factory=list)
    average_confidence: Optional[float] = None


class BackendPipelineResponse(BaseModel):
    """Full pipeline output attached to a completed job."""
    pages: List[BackendPage] = Field(default_factory=list)
    classifications: List[BackendClassification] = Field(default_factory=list)
    extractions: List[BackendExtraction] = Field(default_factory=list)
    record: Optional[LoanRecordSummary] = None
    ui: Optional[BackendUIResult] = None
    doc_groups: List[BackendDocGroup] = Field(default_factory=list)


class PipelineJobStage(BaseModel):
    """Stage descriptor; any part may be missing."""
    label: Optional[str] = None
    index: Optional[int] = None
    total: Optional[int] = None


class PipelineJobStatus(BaseModel):
    """Snapshot returned by GET /status/{job_id}."""
    job_id: str
    filename: Optional[str] = None
    status: str = Field(..., description="Status: queued, running, completed, failed")
    progress: Optional[float] = None
    stage: Optional[PipelineJobStage] = None
    created_at: Optional[float] = None
    updated_at: Optional[float] = None
    error: Optional[str] = None
    result: Optional[BackendPipelineResponse] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class BackendConfig(BaseModel):
    """Response of GET /config."""
    labels: List[str] = Field(default_factory=list)
    extraction_schema: Dict[str, str] = Field(default_factory=dict)
    label_weights: Dict[str, float] = Field(default_factory=dict)


class SubmitResponse(BaseModel):
    """Response of POST /process."""
    job_id: Optional[str] = None
