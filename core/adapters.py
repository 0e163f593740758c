"""
Per-ecosystem source adapters.

Chains, richest source first:

    node     npm-registry  -> repository-readme -> npm-cli
    python   pypi-json     -> repository-readme -> pip-show -> pypi-page-scrape
    ruby     rubygems-json -> repository-readme -> gem-cli

The repository README step only runs when earlier steps found metadata but
no README; local tools and the page scrape only run when nothing was found.
"""

import logging
from typing import Dict, Optional

from core.chain import PartialRecord, SourceAdapter, SourceStep
from core.metrics import ResearchMetrics
from models.config import ResearchSettings
from models.research import Ecosystem, PackageMetadata
from registries import npm, pypi, rubygems
from registries.repositories import fetch_readme, parse_repository_url

__all__ = [
    "NpmRegistryStep",
    "NpmCliStep",
    "PyPIJsonStep",
    "PipShowStep",
    "PyPIPageScrapeStep",
    "RubyGemsJsonStep",
    "GemCliStep",
    "RepositoryReadmeStep",
    "build_node_adapter",
    "build_python_adapter",
    "build_ruby_adapter",
    "build_adapters",
]

logger = logging.getLogger(__name__)


class _SettingsStep(SourceStep):
    def __init__(self, settings: Optional[ResearchSettings] = None):
        self.settings = settings or ResearchSettings()


# ══════════════════════════════════════════════════════════════════════════════
# Shared Steps
# ══════════════════════════════════════════════════════════════════════════════


class RepositoryReadmeStep(_SettingsStep):
    """Fetch the README from the package's source repository."""

    name = "repository-readme"

    @staticmethod
    def _repository(partial: PartialRecord):
        metadata = partial.metadata
        return parse_repository_url(metadata.repository_url) or parse_repository_url(
            metadata.homepage
        )

    def applies(self, partial: PartialRecord) -> bool:
        return (
            partial.found_anything
            and not partial.has_readme
            and self._repository(partial) is not None
        )

    async def attempt(self, package_name: str, partial: PartialRecord) -> Optional[PartialRecord]:
        ref = self._repository(partial)
        if ref is None:
            return None
        readme = await fetch_readme(
            ref,
            timeout=self.settings.http_timeout,
            github_token=self.settings.github_token,
        )
        if not readme:
            return None
        return PartialRecord(metadata=PackageMetadata(name=package_name), readme=readme)


# ══════════════════════════════════════════════════════════════════════════════
# Node
# ══════════════════════════════════════════════════════════════════════════════


class NpmRegistryStep(_SettingsStep):
    name = "npm-registry"

    async def attempt(self, package_name: str, partial: PartialRecord) -> Optional[PartialRecord]:
        data = await npm.fetch_package(
            package_name,
            registry_url=self.settings.npm_registry_url,
            timeout=self.settings.http_timeout,
            retries=self.settings.http_retries,
        )
        metadata, readme = npm.normalize_package(data, package_name)
        return PartialRecord(
            metadata=metadata,
            readme=readme,
            additional_resources=npm.package_resources(data),
        )


class NpmCliStep(_SettingsStep):
    name = "npm-cli"

    async def attempt(self, package_name: str, partial: PartialRecord) -> Optional[PartialRecord]:
        data = await npm.view_package(package_name, timeout=self.settings.tool_timeout)
        metadata, readme = npm.normalize_package(data, package_name)
        return PartialRecord(
            metadata=metadata,
            readme=readme,
            additional_resources=npm.package_resources(data),
        )


# ══════════════════════════════════════════════════════════════════════════════
# Python
# ══════════════════════════════════════════════════════════════════════════════


class PyPIJsonStep(_SettingsStep):
    name = "pypi-json"

    async def attempt(self, package_name: str, partial: PartialRecord) -> Optional[PartialRecord]:
        data = await pypi.fetch_project(
            package_name,
            base_url=self.settings.pypi_url,
            timeout=self.settings.http_timeout,
            retries=self.settings.http_retries,
        )
        metadata, readme = pypi.normalize_project(data, package_name)
        return PartialRecord(
            metadata=metadata,
            readme=readme,
            additional_resources=pypi.project_resources(data),
        )


class PipShowStep(_SettingsStep):
    name = "pip-show"

    async def attempt(self, package_name: str, partial: PartialRecord) -> Optional[PartialRecord]:
        metadata = await pypi.show_package(package_name, timeout=self.settings.tool_timeout)
        return PartialRecord(metadata=metadata)


class PyPIPageScrapeStep(_SettingsStep):
    name = "pypi-page-scrape"

    async def attempt(self, package_name: str, partial: PartialRecord) -> Optional[PartialRecord]:
        metadata, readme = await pypi.scrape_project_page(
            package_name,
            base_url=self.settings.pypi_url,
            timeout=self.settings.http_timeout,
        )
        return PartialRecord(metadata=metadata, readme=readme)


# ══════════════════════════════════════════════════════════════════════════════
# Ruby
# ══════════════════════════════════════════════════════════════════════════════


class RubyGemsJsonStep(_SettingsStep):
    name = "rubygems-json"

    async def attempt(self, package_name: str, partial: PartialRecord) -> Optional[PartialRecord]:
        data = await rubygems.fetch_gem(
            package_name,
            base_url=self.settings.rubygems_url,
            timeout=self.settings.http_timeout,
            retries=self.settings.http_retries,
        )
        return PartialRecord(
            metadata=rubygems.normalize_gem(data, package_name),
            additional_resources=rubygems.gem_resources(data),
        )


class GemCliStep(_SettingsStep):
    name = "gem-cli"

    async def attempt(self, package_name: str, partial: PartialRecord) -> Optional[PartialRecord]:
        metadata = await rubygems.gem_info(package_name, timeout=self.settings.tool_timeout)
        return PartialRecord(metadata=metadata)


# ══════════════════════════════════════════════════════════════════════════════
# Factories
# ══════════════════════════════════════════════════════════════════════════════


def _adapter(
    ecosystem: Ecosystem,
    steps: list,
    local_steps: list,
    settings: ResearchSettings,
    metrics: Optional[ResearchMetrics],
) -> SourceAdapter:
    if settings.use_local_tools:
        steps = steps + local_steps
    return SourceAdapter(
        ecosystem, steps, step_timeout=settings.step_timeout, metrics=metrics
    )


def build_node_adapter(
    settings: Optional[ResearchSettings] = None,
    metrics: Optional[ResearchMetrics] = None,
) -> SourceAdapter:
    settings = settings or ResearchSettings()
    return _adapter(
        Ecosystem.NODE,
        [NpmRegistryStep(settings), RepositoryReadmeStep(settings)],
        [NpmCliStep(settings)],
        settings,
        metrics,
    )


def build_python_adapter(
    settings: Optional[ResearchSettings] = None,
    metrics: Optional[ResearchMetrics] = None,
) -> SourceAdapter:
    settings = settings or ResearchSettings()
    adapter = _adapter(
        Ecosystem.PYTHON,
        [PyPIJsonStep(settings), RepositoryReadmeStep(settings)],
        [PipShowStep(settings)],
        settings,
        metrics,
    )
    adapter.steps.append(PyPIPageScrapeStep(settings))
    return adapter


def build_ruby_adapter(
    settings: Optional[ResearchSettings] = None,
    metrics: Optional[ResearchMetrics] = None,
) -> SourceAdapter:
    settings = settings or ResearchSettings()
    return _adapter(
        Ecosystem.RUBY,
        [RubyGemsJsonStep(settings), RepositoryReadmeStep(settings)],
        [GemCliStep(settings)],
        settings,
        metrics,
    )


def build_adapters(
    settings: Optional[ResearchSettings] = None,
    metrics: Optional[ResearchMetrics] = None,
) -> Dict[Ecosystem, SourceAdapter]:
    """One adapter per concrete ecosystem."""
    return {
        Ecosystem.NODE: build_node_adapter(settings, metrics),
        Ecosystem.PYTHON: build_python_adapter(settings, metrics),
        Ecosystem.RUBY: build_ruby_adapter(settings, metrics),
    }
