"""Shared test doubles: memory backends, the mock provider and scripted AI answers."""

from __future__ import annotations

import json
import re

from smartarchive.core.exceptions import CacheUnavailableError, CacheWriteError
from smartarchive.matching.credentials import Credential
from smartarchive.model_providers.mock_provider import MockModelProvider
from smartarchive.models.classification import Confidence, Disposition, ReferenceEntry
from smartarchive.persistence.memory_backend import MemoryClassificationCache

__all__ = [
    "FailingReadCache",
    "FailingWriteCache",
    "MemoryClassificationCache",
    "MockModelProvider",
    "SCHEDULE",
    "ai_payload",
    "keyword_responder",
]

_ITEM_LINE = re.compile(r"^ID (\d+): (.*)$", re.MULTILINE)

SCHEDULE = [
    ReferenceEntry(
        code="KU.01.01", description="Rencana Anggaran Pendapatan dan Belanja",
        active_period=2, inactive_period=3, disposition=Disposition.DESTROY,
    ),
    ReferenceEntry(
        code="KP.02.03", description="Surat Keputusan Pengangkatan Pegawai",
        active_period=5, inactive_period=10, disposition=Disposition.PERMANENT,
    ),
    ReferenceEntry(
        code="UM.01.02", description="Laporan Kegiatan Tahunan",
        active_period=2, inactive_period=5, disposition=Disposition.PERMANENT,
    ),
    ReferenceEntry(
        code="PL.03.01", description="Dokumen Pengadaan Barang dan Jasa",
        active_period=5, inactive_period=10, disposition=Disposition.DESTROY,
    ),
]


class FailingReadCache(MemoryClassificationCache):
    """Cache whose reads always fail; writes still land."""

    async def get(self, text_key):
        raise CacheUnavailableError(text_key, "connection reset")


class FailingWriteCache(MemoryClassificationCache):
    """Cache whose writes always fail."""

    async def put(self, text_key, code, confidence):
        raise CacheWriteError(text_key, "read-only replica")


def ai_payload(*matches: tuple[int, str, str]) -> str:
    """Serialize (id, code, confidence) triples the way the AI service answers."""
    return json.dumps({
        "matches": [{"id": i, "code": code, "confidence": conf} for i, code, conf in matches]
    })


def keyword_responder(rules: dict[str, str], confidence: str = Confidence.HIGH.value):
    """Answer each prompt item whose text contains a keyword with that keyword's code."""

    def respond(messages: list[dict[str, str]], credential: Credential) -> str:
        matches = []
        for record_id, text in _ITEM_LINE.findall(messages[-1]["content"]):
            for keyword, code in rules.items():
                if keyword.casefold() in text.casefold():
                    matches.append((int(record_id), code, confidence))
                    break
        return ai_payload(*matches)

    return respond
