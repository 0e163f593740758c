"""Research orchestration: ecosystem resolution, adapters, extraction, cache."""

import asyncio
import logging
import time
from typing import Dict, Iterable, List, Mapping, Optional, Union

from core.adapters import build_adapters
from core.chain import SourceAdapter
from core.extraction import extract_examples
from core.metrics import ResearchMetrics
from core.probe import DEFAULT_ECOSYSTEM, EcosystemProbe
from models.config import ResearchSettings
from models.research import Ecosystem, PackageIdentity, ResearchRecord
from utils.cache import ResearchCache
from utils.helpers import normalize_package_name

__all__ = ["ResearchOrchestrator"]

logger = logging.getLogger(__name__)


def _coerce_ecosystem(ecosystem: Union[Ecosystem, str]) -> Ecosystem:
    """Unrecognized values are treated as unknown, which resolves to node."""
    try:
        return Ecosystem(ecosystem)
    except ValueError:
        logger.warning(f"Unrecognized ecosystem {ecosystem!r}, treating as unknown")
        return Ecosystem.UNKNOWN


class ResearchOrchestrator:
    """
    Public entry point of the research pipeline.

    Research never fails visibly, it only returns less: every internal
    error becomes a degraded record and a log line. Degraded records are
    never cached, so the next call retries the sources.
    """

    def __init__(
        self,
        *,
        settings: Optional[ResearchSettings] = None,
        cache: Optional[ResearchCache] = None,
        probe: Optional[EcosystemProbe] = None,
        adapters: Optional[Mapping[Ecosystem, SourceAdapter]] = None,
        metrics: Optional[ResearchMetrics] = None,
    ):
        self.settings = settings or ResearchSettings()
        self.metrics = metrics or ResearchMetrics()
        self.cache = cache if cache is not None else ResearchCache()
        self.probe = probe or EcosystemProbe(
            timeout=self.settings.probe_timeout,
            settings=self.settings,
            metrics=self.metrics,
        )
        self.adapters: Dict[Ecosystem, SourceAdapter] = dict(
            adapters if adapters is not None else build_adapters(self.settings, self.metrics)
        )

    async def resolve_ecosystem(
        self, package_name: str, ecosystem: Union[Ecosystem, str] = Ecosystem.AUTO
    ) -> Ecosystem:
        """Turn a requested ecosystem into one with an adapter."""
        requested = _coerce_ecosystem(ecosystem)
        if requested.is_concrete:
            return requested
        if requested == Ecosystem.UNKNOWN:
            logger.info(f"Unknown ecosystem for {package_name}, trying {DEFAULT_ECOSYSTEM.value}")
            return DEFAULT_ECOSYSTEM
        try:
            return await self.probe.probe(package_name)
        except Exception:
            logger.exception(f"Probe crashed for {package_name}")
            return DEFAULT_ECOSYSTEM

    async def research(
        self,
        package_name: str,
        ecosystem: Union[Ecosystem, str] = Ecosystem.AUTO,
        force_refresh: bool = False,
    ) -> ResearchRecord:
        """
        Research one package.

        Args:
            package_name: Name as published in its registry
            ecosystem: 'node', 'python', 'ruby', 'unknown', or 'auto' to probe
            force_refresh: Skip the cache lookup and overwrite on success

        Returns:
            ResearchRecord; degraded (name only, empty readme) if every
            source failed

        Raises:
            ValueError: empty package name
        """
        name = normalize_package_name(package_name)
        if not name:
            raise ValueError("package_name must not be empty")
        requested = _coerce_ecosystem(ecosystem)

        started = time.perf_counter()
        resolved = await self.resolve_ecosystem(name, requested)
        identity = PackageIdentity(name=name, ecosystem=resolved)

        if not force_refresh:
            cached = self.cache.get(identity)
            if cached is not None:
                logger.debug(f"Cache hit for {identity}")
                self.metrics.record_cache_hit()
                return cached

        async with self.cache.lock_for(identity):
            # Another request may have filled the entry while we waited
            if not force_refresh:
                cached = self.cache.get(identity)
                if cached is not None:
                    self.metrics.record_cache_hit()
                    return cached

            self.metrics.record_cache_miss()
            record = await self._fetch(identity)

        self.metrics.record_research(time.perf_counter() - started, record.is_degraded)
        return record

    async def _fetch(self, identity: PackageIdentity) -> ResearchRecord:
        try:
            adapter = self.adapters[identity.ecosystem]
            record = await adapter.research(identity.name)
            record = record.model_copy(
                update={"identity": identity, "examples": extract_examples(record.readme)}
            )
        except Exception:
            logger.exception(f"Research failed for {identity}")
            return ResearchRecord.degraded(identity)

        if record.is_degraded:
            logger.warning(f"No source had data for {identity}; result not cached")
        else:
            self.cache.put(identity, record)
        return record

    async def research_many(
        self,
        package_names: Iterable[str],
        ecosystem: Union[Ecosystem, str] = Ecosystem.AUTO,
        force_refresh: bool = False,
    ) -> List[ResearchRecord]:
        """Research several packages concurrently, preserving input order."""
        return list(
            await asyncio.gather(
                *(self.research(name, ecosystem, force_refresh) for name in package_names)
            )
        )

    async def invalidate(
        self, package_name: str, ecosystem: Union[Ecosystem, str]
    ) -> bool:
        """Drop one cached record. 'auto' resolves through the probe."""
        name = normalize_package_name(package_name)
        if not name:
            return False
        resolved = await self.resolve_ecosystem(name, ecosystem)
        return self.cache.invalidate(PackageIdentity(name=name, ecosystem=resolved))

    def clear_cache(self) -> int:
        return self.cache.clear()
