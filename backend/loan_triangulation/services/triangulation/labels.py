"""
Document Labels
===============

Closed set of document types a page can be classified as.

The upstream classifier emits long, human readable label strings
(e.g. "Lender - Rate Note"). Some backends serialize the Python enum
member instead ("DocumentLabel.RATE_NOTE"). Both forms are accepted by
`parse_label`, as is the short slug ("rate-note") used in configuration.
Anything else is UNKNOWN; labels are never guessed from partial matches.
"""

from enum import Enum
from typing import Dict, Optional

from loan_triangulation.utils.translations import resolve_language


QUALIFIED_PREFIX = "DocumentLabel."


class DocumentLabel(str, Enum):
    """Document types found in a loan closing package."""

    CLOSING_DISCLOSURE = "Mortgage - Closing Disclosure - Seller"
    RATE_NOTE = "Lender - Rate Note"
    RIDER = "Title - Rider"
    TAX_RECORD = "Property - Tax Record Information Sheet"
    AFFIDAVIT = "Title - Signature / Name Affidavit (Ack)"
    UNKNOWN = "Unknown"

    @property
    def slug(self) -> str:
        """Short configuration name, e.g. 'rate-note'."""
        return _SLUGS[self]


_SLUGS: Dict[DocumentLabel, str] = {
    DocumentLabel.CLOSING_DISCLOSURE: "closing-disclosure",
    DocumentLabel.RATE_NOTE: "rate-note",
    DocumentLabel.RIDER: "rider",
    DocumentLabel.TAX_RECORD: "tax-record",
    DocumentLabel.AFFIDAVIT: "affidavit",
    DocumentLabel.UNKNOWN: "unknown",
}

_DISPLAY: Dict[DocumentLabel, Dict[str, str]] = {
    DocumentLabel.RATE_NOTE: {'en': "Rate Note", 'tr': "Senet (Rate Note)"},
    DocumentLabel.CLOSING_DISCLOSURE: {'en': "Closing Disclosure", 'tr': "Kapanış Beyanı (CD)"},
    DocumentLabel.RIDER: {'en': "Rider", 'tr': "Ek Belge (Rider)"},
    DocumentLabel.TAX_RECORD: {'en': "Tax Record", 'tr': "Vergi Kaydı"},
    DocumentLabel.AFFIDAVIT: {'en': "Affidavit", 'tr': "İmza Beyanı"},
    DocumentLabel.UNKNOWN: {'en': "Unknown", 'tr': "Bilinmeyen"},
}

# Decision-log rendering spells out the affidavit in English
_DECISION_LOG_DISPLAY: Dict[DocumentLabel, Dict[str, str]] = {
    **_DISPLAY,
    DocumentLabel.AFFIDAVIT: {'en': "Signature Affidavit", 'tr': "İmza Beyanı"},
}

_LOOKUP: Dict[str, DocumentLabel] = {}
for _member in DocumentLabel:
    _LOOKUP[_member.value] = _member
    _LOOKUP[_member.name] = _member
    _LOOKUP[_SLUGS[_member]] = _member


def parse_label(raw: Optional[str]) -> DocumentLabel:
    """
    Parse a raw label string into a DocumentLabel.

    Accepts the wire value, the member name or the slug, each optionally
    qualified with "DocumentLabel.". Surrounding whitespace is ignored;
    case is not.
    """
    if raw is None:
        return DocumentLabel.UNKNOWN
    if isinstance(raw, DocumentLabel):
        return raw

    key = str(raw).strip()
    if key.startswith(QUALIFIED_PREFIX):
        key = key[len(QUALIFIED_PREFIX):].strip()
    return _LOOKUP.get(key, DocumentLabel.UNKNOWN)


def label_display_name(label: DocumentLabel, language: str = 'en') -> str:
    """Localized display name of a document label."""
    return _DISPLAY[label][resolve_language(language)]


def display_label(raw: Optional[str], language: str = 'en') -> Optional[str]:
    """
    Decision-log display name for a raw label as reported by the backend.

    Unrecognized labels are shown as received (minus the enum qualifier)
    rather than collapsed to "Unknown", so reviewers see what the
    classifier actually said.
    """
    if not raw:
        return None
    label = parse_label(raw)
    if label is DocumentLabel.UNKNOWN:
        text = str(raw).strip()
        if text.startswith(QUALIFIED_PREFIX):
            text = text[len(QUALIFIED_PREFIX):].strip()
        if text != DocumentLabel.UNKNOWN.value:
            return text
    return _DECISION_LOG_DISPLAY[label][resolve_language(language)]
