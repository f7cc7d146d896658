"""Classification run: resolve codes, then derive retention status per record."""

from __future__ import annotations

from functools import partial
from typing import Any, Sequence

from smartarchive.core.config import AppSettings
from smartarchive.core.logging import get_logger
from smartarchive.core.protocols import IClassificationCache, IModelProvider, IResolver
from smartarchive.core.types import ProgressCallback
from smartarchive.matching.ai_client import AIMatchingClient
from smartarchive.matching.credentials import CredentialPool
from smartarchive.matching.orchestrator import ResolutionOrchestrator
from smartarchive.matching.similarity import LocalSimilarityMatcher
from smartarchive.model_providers.mock_provider import MockModelProvider
from smartarchive.model_providers.openai_provider import OpenAICompatibleProvider
from smartarchive.models.classification import Record, ReferenceEntry, index_references
from smartarchive.models.retention import ClassificationRun, ClassifiedRecord
from smartarchive.persistence import create_cache
from smartarchive.retention.status_engine import assess_match

logger = get_logger(__name__)


class ClassificationService:
    """Runs the resolver and annotates every record for the export boundary.

    Dependencies are injected at construction time: settings, the resolver, and
    the credential pool (reported by health checks only). Resources the service
    owns, such as cache and provider clients, are closed by aclose().
    """

    def __init__(
        self,
        *,
        settings: AppSettings,
        resolver: IResolver,
        pool: CredentialPool | None = None,
        resources: Sequence[Any] = (),
    ) -> None:
        self._settings = settings
        self._resolver = resolver
        self._pool = pool
        self._resources = list(resources)

    @property
    def current_year(self) -> int:
        return self._settings.resolver.current_year

    async def classify(
        self,
        records: Sequence[Record],
        references: Sequence[ReferenceEntry],
        *,
        current_year: int | None = None,
        on_batch_complete: ProgressCallback | None = None,
    ) -> ClassificationRun:
        year = current_year if current_year is not None else self.current_year
        by_code = index_references(references)

        report = await self._resolver.resolve(
            records, references, on_batch_complete=on_batch_complete
        )
        matches = report.by_record_id()

        rows: list[ClassifiedRecord] = []
        for record in records:
            match = matches[record.id]
            reference = by_code.get(match.code)
            rows.append(
                ClassifiedRecord(
                    record_id=record.id,
                    description=record.description,
                    year=record.year,
                    code=match.code,
                    matched_description=reference.description if reference else "",
                    confidence=match.confidence,
                    origin=match.origin,
                    status=assess_match(year, record, match, by_code),
                    note=match.note,
                )
            )

        run = ClassificationRun(current_year=year, results=rows, failures=report.failures)
        logger.info(
            "classification_run_complete",
            records=len(rows),
            unresolved=sum(1 for row in rows if row.status is None),
            follow_up=len(run.needs_follow_up),
            ai_failures=len(report.failures),
        )
        return run

    async def health_check(self) -> dict[str, Any]:
        return {
            "service": self.__class__.__name__,
            "status": "healthy",
            "environment": self._settings.environment,
            "cache_backend": self._settings.cache.backend,
            "ai_credentials": len(self._pool) if self._pool is not None else 0,
        }

    async def aclose(self) -> None:
        """Close owned resources that hold connections."""
        for resource in self._resources:
            close = getattr(resource, "aclose", None)
            if close is not None:
                await close()
        self._resources.clear()


def create_model_provider(settings: AppSettings) -> IModelProvider:
    if settings.llm.provider == "openai":
        return OpenAICompatibleProvider(
            base_url=settings.llm.base_url,
            model=settings.llm.model,
            timeout=settings.llm.request_timeout,
        )
    return MockModelProvider()


def build_service(
    settings: AppSettings | None = None,
    *,
    cache: IClassificationCache | None = None,
    provider: IModelProvider | None = None,
) -> ClassificationService:
    """Wire a ClassificationService from settings, with optional overrides.

    The service owns, and closes, only the cache and provider built here;
    overrides stay with the caller.
    """
    if settings is None:
        settings = AppSettings()

    owned: list[Any] = []
    if cache is None:
        cache = create_cache(settings)
        owned.append(cache)
    if provider is None:
        provider = create_model_provider(settings)
        owned.append(provider)

    pool = CredentialPool.from_keys(settings.llm.api_keys)
    ai_client = AIMatchingClient(
        provider,
        pool,
        model=settings.llm.model,
        temperature=settings.llm.temperature,
        timeout=settings.llm.request_timeout,
    )
    resolver = ResolutionOrchestrator(
        cache=cache,
        ai_client=ai_client,
        batch_size=settings.resolver.batch_size,
        matcher_factory=partial(
            LocalSimilarityMatcher,
            accept_threshold=settings.resolver.local_accept_threshold,
            high_threshold=settings.resolver.local_high_threshold,
            max_text_length=settings.resolver.local_max_text_length,
        ),
        min_ai_description_length=settings.resolver.min_ai_description_length,
        version_cache_by_reference=settings.cache.version_by_reference,
    )
    return ClassificationService(settings=settings, resolver=resolver, pool=pool, resources=owned)
