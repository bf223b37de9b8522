"""
Field Triangulation
===================

Selects one authoritative value per loan field from conflicting per-page
extractions of a closing package.

Components:
- labels: closed set of document types and strict label parsing
- normalizer: comparison-only canonical form of extracted values
- trust_table: (field, document type) -> trust score strategies
- resolver: per-field candidate ranking with an audit trail
- engine: runs the resolver over the whole field set

All functions here are pure: the same pages and settings always give the
same LoanRecord.
"""

from .labels import DocumentLabel, parse_label, label_display_name, display_label
from .normalizer import normalize
from .trust_table import (
    DEFAULT_TRUST_SCORES,
    DefaultTrustTable,
    OverrideTrustTable,
    build_trust_table,
)
from .resolver import (
    Page,
    Candidate,
    AuditEntry,
    Confidence,
    TriangulationResult,
    resolve_field,
)
from .engine import DEFAULT_FIELDS, LoanRecord, triangulate, fields_from_schema, record_to_dict

__all__ = [
    'DocumentLabel',
    'parse_label',
    'label_display_name',
    'display_label',
    'normalize',
    'DEFAULT_TRUST_SCORES',
    'DefaultTrustTable',
    'OverrideTrustTable',
    'build_trust_table',
    'Page',
    'Candidate',
    'AuditEntry',
    'Confidence',
    'TriangulationResult',
    'resolve_field',
    'DEFAULT_FIELDS',
    'LoanRecord',
    'triangulate',
    'fields_from_schema',
    'record_to_dict',
]
