"""Description text normalization shared by every tier."""

from __future__ import annotations

import hashlib
from typing import Sequence

from smartarchive.models.classification import ReferenceEntry


def normalize_text(text: str | None) -> str:
    """Trim and case-fold a description. Cache keys are built from this."""
    return (text or "").strip().casefold()


def reference_fingerprint(references: Sequence[ReferenceEntry]) -> str:
    """Short stable digest of a reference schedule, independent of row order."""
    digest = hashlib.sha256()
    for code, description in sorted((ref.code, ref.description) for ref in references):
        digest.update(code.encode("utf-8"))
        digest.update(b"\x1f")
        digest.update(description.encode("utf-8"))
        digest.update(b"\x1e")
    return digest.hexdigest()[:16]
