"""
Turns a completed pipeline result into what a reviewer looks at.

- Hydration: join pages, classifications and extractions by page number.
- Final fields: one card per schema field, taken from the backend's
  reconciled record when it has one, otherwise from client-side
  triangulation of the raw per-page extractions.
- Decision log: backend log lines are parsed into (page, value, label).
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from loan_triangulation.models import (
    BackendConfig,
    BackendDocGroup,
    BackendPipelineResponse,
    BackendUIResult,
    LoanRecordSummary,
)
from loan_triangulation.utils.translations import field_display_name
from loan_triangulation.services.triangulation import (
    DEFAULT_FIELDS,
    Confidence,
    LoanRecord,
    Page,
    display_label,
    fields_from_schema,
    triangulate,
)

logger = logging.getLogger(__name__)

# Numeric stand-ins for the client-side confidence buckets
BUCKET_CONFIDENCE: Dict[Confidence, float] = {
    Confidence.HIGH: 0.9,
    Confidence.MEDIUM: 0.7,
    Confidence.NONE: 0.0,
}

HIGH_CONFIDENCE_THRESHOLD = 0.85
MEDIUM_CONFIDENCE_THRESHOLD = 0.6

_CLASSIC_ENTRY = re.compile(
    r'^pg(?P<page>\d+):(?P<value>.*?)(?:\s*\(label=(?P<label>[^)]+)\))?\s*$',
    re.IGNORECASE,
)
_SCORE_ENTRY = re.compile(r'value=(?P<value>.+?)\s*\[score=(?P<score>[\d.]+)', re.IGNORECASE)


@dataclass
class DecisionEntry:
    """One line of a field's decision log."""
    raw: str
    value: Optional[str] = None
    page: Optional[int] = None
    label_text: Optional[str] = None
    score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'raw': self.raw,
            'value': self.value,
            'page': self.page,
            'label_text': self.label_text,
            'score': self.score,
        }


@dataclass
class FinalField:
    """Presentation card for one field."""
    key: str
    name: str
    value: Optional[str]
    confidence: float
    confidence_label: str
    origin: str  # "backend" | "client"
    entries: List[DecisionEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'name': self.name,
            'value': self.value,
            'confidence': self.confidence,
            'confidence_label': self.confidence_label,
            'origin': self.origin,
            'entries': [entry.to_dict() for entry in self.entries],
        }


@dataclass
class ProcessedPackage:
    """Hydrated outcome of a completed pipeline job."""
    job_id: Optional[str]
    pages: List[Page]
    fields: List[str]
    doc_groups: List[BackendDocGroup] = field(default_factory=list)
    reconciled: Optional[Union[BackendUIResult, LoanRecordSummary]] = None
    triangulated: Optional[LoanRecord] = None
    result: Optional[BackendPipelineResponse] = None

    @property
    def has_backend_reconciliation(self) -> bool:
        return self.reconciled is not None


def hydrate_pages(result: BackendPipelineResponse, fields: Optional[Sequence[str]] = None) -> List[Page]:
    """
    Join backend pages with their classification and extraction.

    Args:
        result: Completed pipeline result
        fields: Extraction fields to carry over (defaults to DEFAULT_FIELDS)

    Returns:
        Pages in the backend's page order
    """
    field_names = list(fields) if fields else list(DEFAULT_FIELDS)
    classifications = {item.page_number: item for item in result.classifications}
    extractions = {item.page_number: item for item in result.extractions}

    pages = []
    for backend_page in result.pages:
        classification = classifications.get(backend_page.page_number)
        extraction = extractions.get(backend_page.page_number)

        extracted_fields = None
        if extraction is not None:
            extracted_fields = {name: extraction.value_for(name) for name in field_names}
            if extraction.errors:
                logger.debug(f"Page {backend_page.page_number} extraction errors: {extraction.errors}")

        pages.append(Page(
            page_number=backend_page.page_number,
            raw_text=backend_page.text or "",
            predicted_label=classification.label if classification else None,
            confidence=classification.confidence if classification else None,
            extracted_fields=extracted_fields,
        ))
    return pages


def build_package(
    result: BackendPipelineResponse,
    job_id: Optional[str] = None,
    config: Optional[BackendConfig] = None,
    language: str = 'tr',
) -> ProcessedPackage:
    """
    Hydrate a pipeline result and pick the source of the final values.

    The backend's reconciled record (`ui`, else `record`) is preferred;
    client-side triangulation only runs when neither is present.
    """
    schema = config.extraction_schema if config else None
    fields = fields_from_schema(schema)
    pages = hydrate_pages(result, fields)
    reconciled = result.ui or result.record

    triangulated = None
    if reconciled is None:
        label_weights = config.label_weights if config else None
        triangulated = triangulate(pages, language=language, label_weights=label_weights, fields=fields)
        logger.info(f"No backend reconciliation for job {job_id}; using client-side triangulation")

    return ProcessedPackage(
        job_id=job_id,
        pages=pages,
        fields=fields,
        doc_groups=list(result.doc_groups),
        reconciled=reconciled,
        triangulated=triangulated,
        result=result,
    )


def parse_decision_entry(entry: str, language: str = 'en') -> DecisionEntry:
    """
    Parse one backend decision log line.

    Recognized forms:
        "pg7: 20414784 (label=Lender - Rate Note)"
        "value=20414784 [score=0.93]"
    Anything else is kept as raw text.
    """
    classic = _CLASSIC_ENTRY.match(entry)
    if classic:
        label = classic.group('label')
        return DecisionEntry(
            raw=entry,
            value=(classic.group('value') or '').strip(),
            page=int(classic.group('page')),
            label_text=display_label(label, language) if label else None,
        )

    scored = _SCORE_ENTRY.search(entry)
    if scored:
        return DecisionEntry(
            raw=entry,
            value=(scored.group('value') or '').strip(),
            score=float(scored.group('score')),
        )

    return DecisionEntry(raw=entry)


def confidence_label(value: float) -> str:
    """Bucket a numeric confidence for display."""
    if value >= HIGH_CONFIDENCE_THRESHOLD:
        return Confidence.HIGH.value
    if value >= MEDIUM_CONFIDENCE_THRESHOLD:
        return Confidence.MEDIUM.value
    return Confidence.NONE.value


def _value_of(reconciled: Union[BackendUIResult, LoanRecordSummary], key: str) -> Optional[str]:
    if isinstance(reconciled, BackendUIResult):
        return reconciled.value_for(key)
    if key in type(reconciled).model_fields:
        return getattr(reconciled, key)
    return (reconciled.model_extra or {}).get(key)


def _backend_field(
    key: str,
    reconciled: Union[BackendUIResult, LoanRecordSummary],
    language: str,
) -> FinalField:
    field_confidence: Mapping[str, float] = reconciled.field_confidence or {}
    overall = reconciled.confidence if isinstance(reconciled, BackendUIResult) else None
    confidence = field_confidence.get(key)
    if confidence is None:
        confidence = overall if overall is not None else 0.0

    return FinalField(
        key=key,
        name=field_display_name(key, language),
        value=_value_of(reconciled, key),
        confidence=confidence,
        confidence_label=confidence_label(confidence),
        origin='backend',
        entries=[parse_decision_entry(line, language) for line in reconciled.decision_log.get(key, [])],
    )


def _client_field(key: str, record: LoanRecord, language: str) -> Optional[FinalField]:
    result = record.get(key)
    if result is None:
        return None

    confidence = BUCKET_CONFIDENCE[result.confidence]
    entries = [
        DecisionEntry(
            raw=f"{entry.value} (source={entry.source} p{entry.page_number})",
            value=entry.value,
            page=entry.page_number,
            label_text=entry.source,
            score=entry.score,
        )
        for entry in result.all_values
    ]
    return FinalField(
        key=key,
        name=field_display_name(key, language),
        value=result.final_value,
        confidence=confidence,
        confidence_label=result.confidence.value,
        origin='client',
        entries=entries,
    )


def build_final_fields(package: ProcessedPackage, language: str = 'tr') -> List[FinalField]:
    """One presentation card per field, in field-set order."""
    cards = []
    if package.reconciled is not None:
        for key in package.fields:
            cards.append(_backend_field(key, package.reconciled, language))
        return cards

    record = package.triangulated or {}
    for key in package.fields:
        card = _client_field(key, record, language)
        if card is not None:
            cards.append(card)
    return cards
