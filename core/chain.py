"""
Fallback chains.

A SourceAdapter walks an ordered list of SourceSteps. Each step decides
from the accumulated PartialRecord whether it is needed, and each attempt
is bounded and isolated: a failing or hanging step is logged and the chain
moves on. The adapter itself never raises.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from core.metrics import ResearchMetrics
from models.research import Ecosystem, PackageIdentity, PackageMetadata, ResearchRecord

__all__ = ["PartialRecord", "SourceStep", "SourceAdapter"]

logger = logging.getLogger(__name__)


@dataclass
class PartialRecord:
    """What a chain has learned so far about one package."""

    metadata: PackageMetadata
    readme: str = ""
    additional_resources: List[str] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)

    @classmethod
    def empty(cls, name: str) -> "PartialRecord":
        return cls(metadata=PackageMetadata(name=name))

    @property
    def found_anything(self) -> bool:
        return not self.metadata.is_bare() or self.has_readme

    @property
    def has_readme(self) -> bool:
        return bool(self.readme.strip())

    def merge(self, other: "PartialRecord", source: str) -> "PartialRecord":
        """
        Combine with a later step's findings.

        Values already known win; later steps only fill gaps.
        """
        known = self.metadata.model_dump(exclude_defaults=True)
        incoming = other.metadata.model_dump(exclude_defaults=True)
        if self.metadata.is_bare():
            # The name a registry reports beats the name we asked for
            known.pop("name", None)
        merged = {**incoming, **{k: v for k, v in known.items() if v not in (None, "", [])}}
        merged.setdefault("name", self.metadata.name)

        resources = list(self.additional_resources)
        for item in other.additional_resources:
            if item not in resources:
                resources.append(item)

        return PartialRecord(
            metadata=PackageMetadata(**merged),
            readme=self.readme if self.has_readme else other.readme,
            additional_resources=resources,
            sources=[*self.sources, source],
        )

    def to_record(self, identity: PackageIdentity) -> ResearchRecord:
        return ResearchRecord(
            identity=identity,
            metadata=self.metadata,
            readme=self.readme,
            additional_resources=self.additional_resources,
            sources=self.sources,
        )


class SourceStep(ABC):
    """One data source in a fallback chain."""

    name: str = "source"

    def applies(self, partial: PartialRecord) -> bool:
        """Whether this step should run given what is already known."""
        return not partial.found_anything

    @abstractmethod
    async def attempt(
        self, package_name: str, partial: PartialRecord
    ) -> Optional[PartialRecord]:
        """
        Query the source.

        Returns:
            New findings, or None when the source had nothing

        Raises:
            Any exception; the adapter treats it as a source failure
        """


class SourceAdapter:
    """Researches packages of one ecosystem through an ordered fallback chain."""

    def __init__(
        self,
        ecosystem: Ecosystem,
        steps: Sequence[SourceStep],
        *,
        step_timeout: float = 45.0,
        metrics: Optional[ResearchMetrics] = None,
    ):
        self.ecosystem = ecosystem
        self.steps = list(steps)
        self.step_timeout = step_timeout
        self.metrics = metrics or ResearchMetrics()

    async def research(self, package_name: str) -> ResearchRecord:
        """
        Run the chain for ``package_name``.

        Never raises. When every step fails the result is the degraded
        record (metadata holds only the name, readme is empty).
        """
        identity = PackageIdentity(name=package_name, ecosystem=self.ecosystem)
        partial = PartialRecord.empty(package_name)

        for step in self.steps:
            if not step.applies(partial):
                logger.debug(f"[{self.ecosystem.value}] skipping {step.name} for {package_name}")
                continue

            stats = self.metrics.source(step.name)
            started = time.perf_counter()
            try:
                found = await asyncio.wait_for(
                    step.attempt(package_name, partial), timeout=self.step_timeout
                )
            except asyncio.TimeoutError:
                stats.record_failure("TimeoutError", _elapsed_ms(started))
                logger.info(
                    f"[{self.ecosystem.value}] {step.name} timed out for {package_name} "
                    f"after {self.step_timeout:.1f}s"
                )
                continue
            except Exception as e:
                stats.record_failure(type(e).__name__, _elapsed_ms(started))
                logger.info(f"[{self.ecosystem.value}] {step.name} failed for {package_name}: {e}")
                continue

            if found is None:
                stats.record_empty(_elapsed_ms(started))
                logger.info(f"[{self.ecosystem.value}] {step.name} had nothing for {package_name}")
                continue

            stats.record_success(_elapsed_ms(started))
            partial = partial.merge(found, step.name)

        if not partial.found_anything:
            logger.warning(
                f"[{self.ecosystem.value}] all sources exhausted for {package_name}"
            )
        return partial.to_record(identity)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
