"""Type aliases used across the SmartArchive platform."""

from __future__ import annotations

from typing import Any, Callable

JsonDict = dict[str, Any]
ChatMessages = list[dict[str, str]]
ProgressCallback = Callable[[int, int], None]
