"""Re-export persistence protocols from core for convenience."""

from __future__ import annotations

from smartarchive.core.protocols import IClassificationCache

__all__ = ["IClassificationCache"]
