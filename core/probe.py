"""
Ecosystem resolution.

EcosystemProbe answers "which registry publishes this name?" by running
cheap existence checks in a fixed order (Node, Python, Ruby). Each check
has its own timeout and failure boundary. When nothing answers, the probe
falls back to Node, which is a default and not a detection.

detect_workspace_ecosystem answers "what kind of project is this
directory?" from project marker files.
"""

import asyncio
import logging
import re
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple, Union

from core.metrics import ResearchMetrics
from models.config import ResearchSettings
from models.research import Ecosystem
from registries import npm, pypi, rubygems
from registries.local_tools import run_tool

__all__ = [
    "DEFAULT_ECOSYSTEM",
    "EcosystemCheck",
    "EcosystemProbe",
    "default_checks",
    "detect_workspace_ecosystem",
]

logger = logging.getLogger(__name__)

DEFAULT_ECOSYSTEM = Ecosystem.NODE

EcosystemCheck = Callable[[str], Awaitable[object]]

# ══════════════════════════════════════════════════════════════════════════════
# Existence Checks
# ══════════════════════════════════════════════════════════════════════════════


def default_checks(
    settings: Optional[ResearchSettings] = None,
) -> List[Tuple[Ecosystem, EcosystemCheck]]:
    """
    Build the standard check list, in priority order.

    A check succeeds when it returns a truthy value without raising.
    """
    settings = settings or ResearchSettings()

    async def npm_registry(name: str) -> object:
        return await npm.fetch_package(
            name,
            registry_url=settings.npm_registry_url,
            timeout=settings.http_timeout,
            retries=0,
        )

    async def pip_show(name: str) -> object:
        return await pypi.show_package(name, timeout=settings.tool_timeout)

    async def pypi_json(name: str) -> object:
        return await pypi.fetch_project(
            name, base_url=settings.pypi_url, timeout=settings.http_timeout, retries=0
        )

    async def gem_installed(name: str) -> object:
        output = await run_tool(
            ("gem",), ("list", "-i", f"^{re.escape(name)}$"), timeout=settings.tool_timeout
        )
        return output.strip() == "true"

    async def rubygems_json(name: str) -> object:
        return await rubygems.fetch_gem(
            name, base_url=settings.rubygems_url, timeout=settings.http_timeout, retries=0
        )

    checks: List[Tuple[Ecosystem, EcosystemCheck]] = [(Ecosystem.NODE, npm_registry)]
    if settings.use_local_tools:
        checks.append((Ecosystem.PYTHON, pip_show))
    checks.append((Ecosystem.PYTHON, pypi_json))
    if settings.use_local_tools:
        checks.append((Ecosystem.RUBY, gem_installed))
    checks.append((Ecosystem.RUBY, rubygems_json))
    return checks


class EcosystemProbe:
    """Resolve a package name to the first ecosystem that recognizes it."""

    def __init__(
        self,
        checks: Optional[Sequence[Tuple[Ecosystem, EcosystemCheck]]] = None,
        *,
        timeout: float = 10.0,
        settings: Optional[ResearchSettings] = None,
        metrics: Optional[ResearchMetrics] = None,
    ):
        self.checks = list(checks) if checks is not None else default_checks(settings)
        self.timeout = timeout
        self.metrics = metrics

    async def probe(self, package_name: str) -> Ecosystem:
        """
        Return the ecosystem of the first successful check.

        Returns DEFAULT_ECOSYSTEM when every check fails or times out.
        """
        for ecosystem, check in self.checks:
            try:
                found = await asyncio.wait_for(check(package_name), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.info(
                    f"Probe check for {ecosystem.value} timed out on {package_name}"
                )
                continue
            except Exception as e:
                logger.debug(f"Probe check for {ecosystem.value} failed on {package_name}: {e}")
                continue

            if found:
                logger.debug(f"Probe resolved {package_name} to {ecosystem.value}")
                return ecosystem

        logger.warning(
            f"No registry recognized {package_name}; defaulting to {DEFAULT_ECOSYSTEM.value}"
        )
        if self.metrics is not None:
            self.metrics.record_probe_fallback()
        return DEFAULT_ECOSYSTEM


# ══════════════════════════════════════════════════════════════════════════════
# Workspace Detection
# ══════════════════════════════════════════════════════════════════════════════

_PROJECT_MARKERS = {
    Ecosystem.NODE: {"package.json", "package-lock.json", "node_modules"},
    Ecosystem.PYTHON: {
        "requirements.txt",
        "setup.py",
        "Pipfile",
        "pyproject.toml",
        "poetry.lock",
        ".venv",
        "venv",
    },
    Ecosystem.RUBY: {"Gemfile", "Gemfile.lock", ".ruby-version", ".bundle"},
}


def detect_workspace_ecosystem(directory: Union[str, Path, None] = None) -> Ecosystem:
    """
    Detect the project type of a directory.

    Marker files are checked in Node, Python, Ruby order. Without markers,
    the language with the most top-level source files wins; JavaScript and
    TypeScript files also win when present but not outnumbered.
    """
    path = Path(directory) if directory else Path.cwd()
    try:
        files = {entry.name for entry in path.iterdir()}
    except OSError as e:
        logger.debug(f"Cannot read {path}: {e}")
        return Ecosystem.UNKNOWN

    for ecosystem, markers in _PROJECT_MARKERS.items():
        if files & markers:
            return ecosystem

    py_files = sum(1 for name in files if name.endswith(".py"))
    js_files = sum(1 for name in files if name.endswith((".js", ".ts")))
    rb_files = sum(1 for name in files if name.endswith(".rb"))

    if py_files > js_files and py_files > rb_files:
        return Ecosystem.PYTHON
    if rb_files > js_files and rb_files > py_files:
        return Ecosystem.RUBY
    if js_files > 0:
        return Ecosystem.NODE
    return Ecosystem.UNKNOWN
