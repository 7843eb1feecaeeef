"""Input classification and normalisation."""

from __future__ import annotations

import re
from typing import Optional

from .errors import InvalidInput
from .models import InputKind

_WHITESPACE = re.compile(r"\s+")
_POSTAL = re.compile(r"^\d{6}$")
_POSTAL_ANYWHERE = re.compile(r"\d{6}")
_BLOCK_NUMBER = re.compile(r"^\d+[A-Z]?\s+", re.IGNORECASE)


def normalize_input(query: str) -> str:
    """Trim and collapse internal whitespace runs to a single space."""
    return _WHITESPACE.sub(" ", query.strip())


def is_postal_code(query: str) -> bool:
    return bool(_POSTAL.match(_WHITESPACE.sub("", query)))


def classify_input(query: str, declared: Optional[str] = None) -> InputKind:
    """Select the resolution strategy for *query*.

    Street intent cannot be told apart from free text by shape alone, so it
    is only returned when the caller declares it.  A declared ``postal``
    still has to look like a postal code.

    Raises:
        InvalidInput: Empty query, unknown declared type, or a declared
            postal query that is not exactly six digits.
    """
    if not isinstance(query, str) or not query.strip():
        raise InvalidInput("Missing or invalid query parameter")

    if declared is not None:
        try:
            kind = InputKind(declared)
        except ValueError:
            raise InvalidInput(
                f"Unrecognised type {declared!r}; expected one of "
                f"{', '.join(k.value for k in InputKind)}"
            ) from None
        if kind is InputKind.postal and not is_postal_code(query):
            raise InvalidInput("Invalid postal code format. Please enter 6 digits.")
        return kind

    if is_postal_code(query):
        return InputKind.postal
    return InputKind.free_text


def extract_postal_code(query: str) -> Optional[str]:
    match = _POSTAL_ANYWHERE.search(_WHITESPACE.sub("", query))
    return match.group(0) if match else None


def clean_street_name(query: str) -> str:
    """Drop a leading block number: "38A Lorong 30 Geylang" -> "Lorong 30 Geylang"."""
    return _BLOCK_NUMBER.sub("", query.strip()).strip()
