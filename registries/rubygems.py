"""
RubyGems integration.

Fetches gem metadata from the RubyGems.org API (which also exposes download
counts as a popularity signal) and wraps the local ``gem info`` fallback.

API: https://guides.rubygems.org/rubygems-org-api/
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from core.errors import LocalToolError, MalformedResponseError
from models.research import PackageMetadata
from registries.http import DEFAULT_TIMEOUT, fetch_json
from registries.local_tools import TOOL_TIMEOUT, run_tool

__all__ = [
    "RUBYGEMS_URL",
    "fetch_gem",
    "normalize_gem",
    "gem_resources",
    "gem_info",
    "parse_gem_info",
    "search",
]

RUBYGEMS_URL = "https://rubygems.org"

logger = logging.getLogger(__name__)

# ══════════════════════════════════════════════════════════════════════════════
# JSON API
# ══════════════════════════════════════════════════════════════════════════════


async def fetch_gem(
    name: str,
    *,
    base_url: str = RUBYGEMS_URL,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = 1,
) -> Dict[str, Any]:
    """
    Fetch ``/api/v1/gems/<name>.json``.

    Raises:
        SourceUnavailableError: gem missing or RubyGems unreachable
        MalformedResponseError: response is not a JSON object
    """
    data = await fetch_json(
        f"{base_url.rstrip('/')}/api/v1/gems/{quote(name)}.json",
        timeout=timeout,
        retries=retries,
    )
    if not isinstance(data, dict):
        raise MalformedResponseError(f"RubyGems returned {type(data).__name__}")
    return data


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def normalize_gem(data: Dict[str, Any], fallback_name: str) -> PackageMetadata:
    """Normalize a RubyGems gem payload."""
    homepage = _text(data.get("homepage_uri"))
    repository = _text(data.get("source_code_uri"))
    if not repository and homepage and "github.com" in homepage:
        repository = homepage

    licenses = data.get("licenses")
    if isinstance(licenses, list):
        license_text = ", ".join(str(item) for item in licenses if item) or None
    else:
        license_text = _text(licenses)

    downloads = data.get("downloads")
    return PackageMetadata(
        name=_text(data.get("name")) or fallback_name,
        version=_text(data.get("version")),
        description=_text(data.get("info")),
        homepage=homepage,
        repository_url=repository,
        license=license_text,
        author=_text(data.get("authors")),
        downloads=downloads if isinstance(downloads, int) else None,
    )


def gem_resources(data: Dict[str, Any]) -> List[str]:
    """Labelled source, homepage, and documentation links."""
    resources = []
    for label, key in (
        ("Source", "source_code_uri"),
        ("Homepage", "homepage_uri"),
        ("Documentation", "documentation_uri"),
    ):
        url = _text(data.get(key))
        if url:
            resources.append(f"{label}: {url}")
    return resources


# ══════════════════════════════════════════════════════════════════════════════
# Local Tool
# ══════════════════════════════════════════════════════════════════════════════

_FIELD_RE = {
    "version": re.compile(r"^\s*Version:\s*(.+)$", re.MULTILINE),
    "summary": re.compile(r"^\s*Summary:\s*(.+)$", re.MULTILINE),
    "homepage": re.compile(r"^\s*Homepage:\s*(.+)$", re.MULTILINE),
    "author": re.compile(r"^\s*Authors?:\s*(.+)$", re.MULTILINE),
    "license": re.compile(r"^\s*Licen[sc]es?:\s*(.+)$", re.MULTILINE),
}
_HEADER_VERSION_RE = re.compile(r"^\S+ \(([^)]+)\)", re.MULTILINE)
_KEY_LINE_RE = re.compile(r"^\s*[\w-]+(?: [\w-]+)?:\s")


def _summary_line(output: str) -> Optional[str]:
    """First indented line that is not a ``Key: value`` field."""
    for line in output.splitlines():
        if not line.startswith((" ", "\t")):
            continue
        stripped = line.strip()
        if stripped and not _KEY_LINE_RE.match(line):
            return stripped
    return None


def parse_gem_info(output: str, fallback_name: str) -> PackageMetadata:
    """
    Best-effort parse of ``gem info`` output.

    The text format is not a stable contract across RubyGems versions.
    Explicit ``Version:``/``Summary:`` fields are preferred; otherwise the
    version comes from the ``name (x.y.z)`` header and the summary from the
    first free-text indented line.

    Raises:
        LocalToolError: output reports an error
        MalformedResponseError: neither version nor summary found
    """
    if "ERROR" in output:
        raise LocalToolError(f"gem info reported an error for {fallback_name}")

    found: Dict[str, str] = {}
    for field, pattern in _FIELD_RE.items():
        match = pattern.search(output)
        if match and match.group(1).strip():
            found[field] = match.group(1).strip()

    if "version" not in found:
        match = _HEADER_VERSION_RE.search(output)
        if match:
            found["version"] = match.group(1).split(",")[0].strip()
    if "summary" not in found:
        summary = _summary_line(output)
        if summary:
            found["summary"] = summary

    if "version" not in found and "summary" not in found:
        raise MalformedResponseError("gem info output has no version or summary")

    return PackageMetadata(
        name=fallback_name,
        version=found.get("version"),
        description=found.get("summary"),
        homepage=found.get("homepage"),
        author=found.get("author"),
        license=found.get("license"),
    )


async def gem_info(name: str, *, timeout: float = TOOL_TIMEOUT) -> PackageMetadata:
    """
    Run ``gem info <name> --remote``.

    Raises:
        LocalToolError: gem missing, failed, or printed nothing
        MalformedResponseError: output could not be parsed
    """
    output = await run_tool(("gem",), ("info", name, "--remote"), timeout=timeout)
    if not output.strip():
        raise LocalToolError(f"Gem {name} not found")
    return parse_gem_info(output, name)


# ══════════════════════════════════════════════════════════════════════════════
# Search
# ══════════════════════════════════════════════════════════════════════════════


async def search(
    query: str,
    *,
    limit: int = 10,
    base_url: str = RUBYGEMS_URL,
    timeout: float = DEFAULT_TIMEOUT,
) -> List[Dict[str, Any]]:
    """
    Search RubyGems.org.

    Returns:
        List of gems with name, version, description, url, downloads, source
    """
    base_url = base_url.rstrip("/")
    try:
        data = await fetch_json(
            f"{base_url}/api/v1/search.json",
            params={"query": query, "page": 1, "per_page": limit},
            timeout=timeout,
        )
    except Exception as e:
        logger.warning(f"RubyGems search failed: {e}")
        return []

    if not isinstance(data, list):
        return []

    return [
        {
            "name": gem["name"],
            "version": gem.get("version", ""),
            "description": gem.get("info") or "",
            "url": f"{base_url}/gems/{gem['name']}",
            "downloads": gem.get("downloads", 0),
            "source": "rubygems",
        }
        for gem in data[:limit]
        if isinstance(gem, dict) and gem.get("name")
    ]
