"""
Value normalization for candidate comparison.

Normalized values are only ever compared with each other; anything shown
to a user keeps the original extracted text.
"""

import re

_PUNCTUATION = re.compile(r'[.,]')


def normalize(value: str) -> str:
    """
    Canonicalize an extracted value for equality checks.

    Trims surrounding whitespace, upper-cases and removes periods and commas.
    """
    return _PUNCTUATION.sub('', value.strip().upper())
