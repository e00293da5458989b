"""
claimwitness/core/extractor.py

Field extraction from a claim context.

The context is JSON-shaped but is NOT parsed as JSON. A field value is
the text between the end of a marker (e.g. '"KYC_status":"') and the
next double quote that is not preceded by a backslash. The value is
returned verbatim: no unescaping, no validation.

Producers are trusted not to emit raw quotes inside values. Already-issued
proofs depend on this exact scan, so it must not be replaced by a real
JSON parser.

An absent field yields "" — callers decide whether that is fatal.
"""

from typing import Dict, Mapping

FIELD_ABSENT = ""


def field_marker(name: str) -> str:
    """Marker for a string-valued JSON field: '"name":"'."""
    return f'"{name}":"'


def extract(context: str, marker: str) -> str:
    """
    Value following the first occurrence of marker in context.

    Returns FIELD_ABSENT when marker is empty, longer than context, or
    not present. An unterminated value runs to the end of context.
    """
    if not marker or len(marker) > len(context):
        return FIELD_ABSENT

    found = context.find(marker)
    if found < 0:
        return FIELD_ABSENT

    start = found + len(marker)
    end = start
    while end < len(context):
        if context[end] == '"' and context[end - 1] != "\\":
            break
        end += 1

    return context[start:end]


def extract_fields(context: str, markers: Mapping[str, str]) -> Dict[str, str]:
    """extract() for each (name, marker) pair. Absent fields map to ""."""
    return {name: extract(context, marker) for name, marker in markers.items()}
