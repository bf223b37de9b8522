"""
Triangulation Engine: runs the field resolver over the whole field set.

Every call recomputes every field from scratch; there is no caching or
incremental update.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Union

from .resolver import Page, TriangulationResult, resolve_field
from .trust_table import build_trust_table

logger = logging.getLogger(__name__)

DEFAULT_FIELDS: List[str] = ['borrower_name', 'property_address', 'loan_number']

# Ordered field name -> result
LoanRecord = Dict[str, TriangulationResult]


def fields_from_schema(extraction_schema: Optional[Mapping[str, str]] = None) -> List[str]:
    """Field set in display order: the schema's keys, else the default fields."""
    if extraction_schema:
        return list(extraction_schema.keys())
    return list(DEFAULT_FIELDS)


def triangulate(
    pages: Sequence[Page],
    language: str = 'tr',
    label_weights: Optional[Mapping[str, Union[int, float]]] = None,
    fields: Optional[Sequence[str]] = None,
) -> LoanRecord:
    """
    Build a LoanRecord from per-page extractions.

    Args:
        pages: Hydrated pages in enumeration order
        language: Display language for source labels
        label_weights: Optional label-only trust overrides
        fields: Field set; defaults to DEFAULT_FIELDS

    Returns:
        Mapping of field name to TriangulationResult in field-set order
    """
    trust_table = build_trust_table(label_weights)
    field_names = list(fields) if fields else list(DEFAULT_FIELDS)

    record: LoanRecord = {}
    for field_name in field_names:
        record[field_name] = resolve_field(field_name, pages, trust_table, language)

    resolved = sum(1 for result in record.values() if result.final_value is not None)
    logger.info(f"Triangulated {resolved}/{len(field_names)} fields across {len(pages)} pages")
    return record


def record_to_dict(record: LoanRecord) -> Dict[str, Dict]:
    """Convert a LoanRecord to plain dictionaries for JSON serialization."""
    return {field_name: result.to_dict() for field_name, result in record.items()}
