"""
Trust Table
===========

How authoritative each document type is as the source of each field.

Rationale for the defaults:
- The rate note is the legal debt instrument, so it owns the loan number.
- The closing disclosure carries the final legal name of record.
- The rider is attached to the security instrument and carries the legal
  description of the property.

Two strategies share one interface, `score(field, label)`:
- DefaultTrustTable: nested (field -> label -> score) domain table.
- OverrideTrustTable: flat (label -> score) weights applied to every field,
  e.g. the `label_weights` a backend publishes on /config. Labels it does
  not list fall through to the default table.
"""

import logging
from typing import Dict, Mapping, Optional, Union

from .labels import DocumentLabel, parse_label

logger = logging.getLogger(__name__)

# Score used when neither table knows the (field, label) pair
NEUTRAL_SCORE = 1

DEFAULT_TRUST_SCORES: Dict[str, Dict[DocumentLabel, int]] = {
    'loan_number': {
        DocumentLabel.RATE_NOTE: 10,
        DocumentLabel.CLOSING_DISCLOSURE: 9,
        DocumentLabel.RIDER: 5,
        DocumentLabel.TAX_RECORD: 3,
        DocumentLabel.AFFIDAVIT: 3,
        DocumentLabel.UNKNOWN: 0,
    },
    'borrower_name': {
        DocumentLabel.CLOSING_DISCLOSURE: 10,
        DocumentLabel.AFFIDAVIT: 9,
        DocumentLabel.RATE_NOTE: 8,
        DocumentLabel.TAX_RECORD: 4,
        DocumentLabel.RIDER: 5,
        DocumentLabel.UNKNOWN: 0,
    },
    'property_address': {
        DocumentLabel.RIDER: 10,
        DocumentLabel.RATE_NOTE: 9,
        DocumentLabel.CLOSING_DISCLOSURE: 8,
        DocumentLabel.TAX_RECORD: 7,
        DocumentLabel.AFFIDAVIT: 6,
        DocumentLabel.UNKNOWN: 0,
    },
}


class DefaultTrustTable:
    """Per-field trust scores keyed by (field, label)."""

    def __init__(self, scores: Optional[Mapping[str, Mapping[DocumentLabel, int]]] = None):
        self.scores = scores if scores is not None else DEFAULT_TRUST_SCORES

    def score(self, field_name: str, label: DocumentLabel) -> int:
        if label is DocumentLabel.UNKNOWN:
            return 0
        return self.scores.get(field_name, {}).get(label, NEUTRAL_SCORE)

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        """Serializable view keyed by label slug."""
        return {
            field_name: {label.slug: value for label, value in per_label.items()}
            for field_name, per_label in self.scores.items()
        }


class OverrideTrustTable:
    """
    Label-only weights that take precedence over a fallback table.

    Keys may be any form `parse_label` accepts. Unrecognized keys are dropped
    with a warning.
    """

    def __init__(
        self,
        weights: Mapping[str, Union[int, float]],
        fallback: Optional[DefaultTrustTable] = None,
    ):
        self.fallback = fallback or DefaultTrustTable()
        self.weights: Dict[DocumentLabel, Union[int, float]] = {}

        for key, value in weights.items():
            label = parse_label(key)
            if label is DocumentLabel.UNKNOWN:
                # UNKNOWN always scores 0, so an override for it is dropped too
                logger.warning(f"Ignoring trust override for label {key!r}")
                continue
            self.weights[label] = value

    def score(self, field_name: str, label: DocumentLabel) -> Union[int, float]:
        if label is DocumentLabel.UNKNOWN:
            return 0
        if label in self.weights:
            return self.weights[label]
        return self.fallback.score(field_name, label)


TrustTable = Union[DefaultTrustTable, OverrideTrustTable]


def build_trust_table(label_weights: Optional[Mapping[str, Union[int, float]]] = None) -> TrustTable:
    """Pick the scoring strategy based on whether override weights were supplied."""
    if label_weights:
        return OverrideTrustTable(label_weights)
    return DefaultTrustTable()
