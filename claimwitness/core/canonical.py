"""
claimwitness/core/canonical.py

Content addressing for tooling artefacts (proof digests in logs and
reports, registry snapshots pinned by `claimwitness verify`).

Witnesses never sign JSON. The signed message is the line-oriented
claim serialization in models.py; nothing here feeds into it.

Encoding: RFC 8785 (JCS), https://www.rfc-editor.org/rfc/rfc8785
"""

import hashlib
from typing import Any, Mapping

try:
    import jcs
except ImportError as exc:
    raise ImportError(
        "claimwitness needs the 'jcs' package to compute proof digests.\n"
        "Install with: pip install jcs\n"
        f"Original error: {exc}"
    ) from exc


def canonicalize(obj: Mapping[str, Any]) -> bytes:
    """RFC 8785 bytes of a JSON-primitive mapping. Key order does not matter."""
    return jcs.canonicalize(obj)


def canonical_hash(obj: Mapping[str, Any]) -> str:
    """sha256(canonicalize(obj)) as 64 lowercase hex characters."""
    return hashlib.sha256(canonicalize(obj)).hexdigest()
