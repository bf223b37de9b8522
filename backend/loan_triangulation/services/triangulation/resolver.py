"""
Field Resolver
==============

Chooses one authoritative value for a single field from the values
extracted on every page of a closing package.

Algorithm:
----------
1. Every page with a non-blank value for the field and a predicted label
   contributes a Candidate, scored by the trust table for (field, label).
2. Candidates are ranked by score, highest first. The sort is stable, so
   equal scores keep page enumeration order and the first page wins.
3. The winner's ORIGINAL text becomes the final value; values are never
   merged or rewritten.
4. Confidence is bucketed from the winning trust score (not a probability).
5. The audit trail lists every candidate by ascending page number,
   independent of the ranking used for selection.

A field with no candidates is a normal result (confidence "None"), not an
error.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from loan_triangulation.utils.translations import translate
from .labels import DocumentLabel, label_display_name, parse_label
from .normalizer import normalize
from .trust_table import DefaultTrustTable, TrustTable

logger = logging.getLogger(__name__)

# Winning score at or above which a result is High confidence
HIGH_CONFIDENCE_SCORE = 8


class Confidence(str, Enum):
    """Confidence bucket of a triangulated field."""
    HIGH = "High"
    MEDIUM = "Medium"
    NONE = "None"


@dataclass(frozen=True)
class Page:
    """
    One physical page as produced by the upstream pipeline.

    `extracted_fields` maps field name to the extracted value; a value may
    be missing, None or empty.
    """
    page_number: int
    raw_text: str = ""
    predicted_label: Optional[str] = None
    confidence: Optional[float] = None
    extracted_fields: Optional[Mapping[str, Any]] = None

    def field_value(self, field_name: str) -> Optional[str]:
        """Extracted value for a field, or None when absent or blank."""
        if not self.extracted_fields:
            return None
        value = self.extracted_fields.get(field_name)
        if value is None:
            return None
        text = value if isinstance(value, str) else str(value)
        if not text.strip():
            return None
        return text


@dataclass
class Candidate:
    """One page's proposed value for one field."""
    field_name: str
    value: str  # normalized, for comparison only
    original: str
    label: DocumentLabel
    page_number: int
    score: Union[int, float]


@dataclass
class AuditEntry:
    """A candidate as shown in the decision log."""
    value: str
    source: str
    page_number: int
    score: Union[int, float]
    label: DocumentLabel

    def to_dict(self) -> Dict[str, Any]:
        return {
            'value': self.value,
            'source': self.source,
            'page_number': self.page_number,
            'score': self.score,
            'label': self.label.value,
        }


@dataclass
class TriangulationResult:
    """Final decision for one field plus its audit trail."""
    final_value: Optional[str]
    source: str
    confidence: Confidence
    all_values: List[AuditEntry] = field(default_factory=list)

    # Audit metadata
    source_label: Optional[DocumentLabel] = None
    score: Optional[Union[int, float]] = None
    agreeing_pages: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'final_value': self.final_value,
            'source': self.source,
            'confidence': self.confidence.value,
            'all_values': [entry.to_dict() for entry in self.all_values],
            'source_label': self.source_label.value if self.source_label else None,
            'score': self.score,
            'agreeing_pages': list(self.agreeing_pages),
        }


def collect_candidates(
    field_name: str,
    pages: Iterable[Page],
    trust_table: TrustTable,
) -> List[Candidate]:
    """Build candidates for a field in page enumeration order."""
    candidates = []
    for page in pages:
        original = page.field_value(field_name)
        if original is None or not page.predicted_label:
            continue

        label = parse_label(page.predicted_label)
        candidates.append(Candidate(
            field_name=field_name,
            value=normalize(original),
            original=original,
            label=label,
            page_number=page.page_number,
            score=trust_table.score(field_name, label),
        ))
    return candidates


def bucket_confidence(score: Optional[Union[int, float]]) -> Confidence:
    """Map a winning trust score to a confidence bucket."""
    if score is None:
        return Confidence.NONE
    if score >= HIGH_CONFIDENCE_SCORE:
        return Confidence.HIGH
    return Confidence.MEDIUM


def resolve_field(
    field_name: str,
    pages: Iterable[Page],
    trust_table: Optional[TrustTable] = None,
    language: str = 'en',
) -> TriangulationResult:
    """
    Resolve the authoritative value of `field_name` across `pages`.

    Args:
        field_name: Extraction field to resolve (e.g. 'loan_number')
        pages: Pages in enumeration order; ties go to the earlier page
        trust_table: Scoring strategy (defaults to the built-in table)
        language: Display language for source labels

    Returns:
        TriangulationResult; never raises for missing data
    """
    trust_table = trust_table or DefaultTrustTable()
    candidates = collect_candidates(field_name, pages, trust_table)

    if not candidates:
        return TriangulationResult(
            final_value=None,
            source=translate('none', language),
            confidence=Confidence.NONE,
            all_values=[],
        )

    ranked = sorted(candidates, key=lambda c: c.score, reverse=True)
    winner = ranked[0]

    by_page = sorted(candidates, key=lambda c: c.page_number)
    all_values = [
        AuditEntry(
            value=c.original,
            source=label_display_name(c.label, language),
            page_number=c.page_number,
            score=c.score,
            label=c.label,
        )
        for c in by_page
    ]
    agreeing_pages = [c.page_number for c in by_page if c.value == winner.value]

    logger.debug(
        f"Resolved {field_name}: {winner.original!r} from page {winner.page_number} "
        f"({winner.label.value}, score={winner.score}, {len(candidates)} candidates)"
    )

    return TriangulationResult(
        final_value=winner.original,
        source=label_display_name(winner.label, language),
        confidence=bucket_confidence(winner.score),
        all_values=all_values,
        source_label=winner.label,
        score=winner.score,
        agreeing_pages=agreeing_pages,
    )
