"""
npm registry integration.

Fetches package documents (packuments) from the npm registry, normalizes
them into PackageMetadata, and wraps the local ``npm view`` fallback.

API: https://github.com/npm/registry/blob/main/docs/REGISTRY-API.md
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from core.errors import LocalToolError, MalformedResponseError
from models.research import PackageMetadata
from registries.http import DEFAULT_TIMEOUT, fetch_json
from registries.local_tools import TOOL_TIMEOUT, run_tool

__all__ = [
    "REGISTRY_URL",
    "package_url",
    "fetch_package",
    "normalize_package",
    "package_resources",
    "view_package",
    "search",
]

REGISTRY_URL = "https://registry.npmjs.org"

# Placeholder the registry stores for packages published without a README
_MISSING_README = "ERROR: No README data found!"

logger = logging.getLogger(__name__)

# ══════════════════════════════════════════════════════════════════════════════
# Registry
# ══════════════════════════════════════════════════════════════════════════════


def package_url(name: str, registry_url: str = REGISTRY_URL) -> str:
    """Registry URL for a package; scoped names keep '@' and escape '/'."""
    return f"{registry_url.rstrip('/')}/{quote(name, safe='@')}"


async def fetch_package(
    name: str,
    *,
    registry_url: str = REGISTRY_URL,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = 1,
) -> Dict[str, Any]:
    """
    Fetch the raw package document for ``name``.

    Raises:
        SourceUnavailableError: package missing or registry unreachable
        MalformedResponseError: response is not a JSON object
    """
    data = await fetch_json(
        package_url(name, registry_url), timeout=timeout, retries=retries
    )
    if not isinstance(data, dict):
        raise MalformedResponseError(f"npm registry returned {type(data).__name__}")
    if "error" in data and "name" not in data:
        raise MalformedResponseError(f"npm registry error: {data['error']}")
    return data


# ══════════════════════════════════════════════════════════════════════════════
# Normalization
# ══════════════════════════════════════════════════════════════════════════════


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _format_person(value: Any) -> Optional[str]:
    """Format an npm person field ('Name <email> (url)' or an object)."""
    if isinstance(value, str):
        return _text(value)
    if isinstance(value, dict):
        parts = []
        if _text(value.get("name")):
            parts.append(value["name"].strip())
        if _text(value.get("email")):
            parts.append(f"<{value['email'].strip()}>")
        if _text(value.get("url")):
            parts.append(f"({value['url'].strip()})")
        return " ".join(parts) or None
    return None


def _format_license(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return _text(value)
    if isinstance(value, dict):
        return _text(value.get("type"))
    if isinstance(value, list):
        names = [name for name in (_format_license(item) for item in value) if name]
        return ", ".join(names) or None
    return None


def _repository_url(value: Any) -> Optional[str]:
    url = value.get("url") if isinstance(value, dict) else value
    url = _text(url)
    if url and url.startswith("git+"):
        url = url[len("git+"):]
    return url


def _latest_manifest(data: Dict[str, Any]) -> Tuple[Optional[str], Dict[str, Any]]:
    dist_tags = data.get("dist-tags")
    latest = dist_tags.get("latest") if isinstance(dist_tags, dict) else None
    versions = data.get("versions")
    if latest and isinstance(versions, dict) and isinstance(versions.get(latest), dict):
        return latest, versions[latest]
    return _text(latest), {}


def normalize_package(data: Dict[str, Any], fallback_name: str) -> Tuple[PackageMetadata, str]:
    """
    Normalize an npm package document.

    Works for both the registry packument and ``npm view --json`` output,
    which carries the latest manifest's fields at the top level.

    Returns:
        (metadata, readme)
    """
    latest, manifest = _latest_manifest(data)

    def pick(field: str) -> Any:
        value = data.get(field)
        return value if value not in (None, "", [], {}) else manifest.get(field)

    keywords = pick("keywords")
    metadata = PackageMetadata(
        name=_text(data.get("name")) or fallback_name,
        version=_text(data.get("version")) or latest,
        description=_text(pick("description")),
        homepage=_text(pick("homepage")),
        repository_url=_repository_url(pick("repository")),
        license=_format_license(pick("license")),
        author=_format_person(pick("author")),
        keywords=keywords if isinstance(keywords, list) else [],
        main=_text(pick("main")),
        types=_text(pick("types")) or _text(pick("typings")),
    )
    readme = data.get("readme") if isinstance(data.get("readme"), str) else ""
    if readme.strip().startswith(_MISSING_README):
        readme = ""
    return metadata, readme


def package_resources(data: Dict[str, Any]) -> List[str]:
    """Homepage and issue tracker links, in that order."""
    resources: List[str] = []
    homepage = _text(data.get("homepage"))
    if homepage:
        resources.append(homepage)

    bugs = data.get("bugs")
    bugs_url = _text(bugs.get("url")) if isinstance(bugs, dict) else _text(bugs)
    if bugs_url:
        resources.append(bugs_url)
    return resources


# ══════════════════════════════════════════════════════════════════════════════
# Local Tool
# ══════════════════════════════════════════════════════════════════════════════


async def view_package(name: str, *, timeout: float = TOOL_TIMEOUT) -> Dict[str, Any]:
    """
    Run ``npm view <name> --json``.

    Raises:
        LocalToolError: npm missing, failed, or returned nothing
        MalformedResponseError: output is not a JSON object
    """
    output = await run_tool(("npm",), ("view", name, "--json"), timeout=timeout)
    if not output.strip():
        raise LocalToolError(f"npm view returned no output for {name}")
    try:
        data = json.loads(output)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"npm view output is not JSON: {e}") from e
    # Multiple matching versions come back as a list; the last is newest
    if isinstance(data, list) and data:
        data = data[-1]
    if not isinstance(data, dict):
        raise MalformedResponseError("npm view output is not an object")
    return data


# ══════════════════════════════════════════════════════════════════════════════
# Search
# ══════════════════════════════════════════════════════════════════════════════


async def search(
    query: str,
    *,
    limit: int = 10,
    registry_url: str = REGISTRY_URL,
    timeout: float = DEFAULT_TIMEOUT,
) -> List[Dict[str, Any]]:
    """
    Search the npm registry.

    Returns:
        List of packages with name, version, description, url, score, source
    """
    try:
        data = await fetch_json(
            f"{registry_url.rstrip('/')}/-/v1/search",
            params={"text": query, "size": limit},
            timeout=timeout,
        )
    except Exception as e:
        logger.warning(f"npm search failed: {e}")
        return []

    if not isinstance(data, dict):
        return []

    results = []
    for item in data.get("objects", [])[:limit]:
        pkg = item.get("package") or {}
        if not pkg.get("name"):
            continue
        popularity = ((item.get("score") or {}).get("detail") or {}).get("popularity")
        results.append(
            {
                "name": pkg["name"],
                "version": pkg.get("version", ""),
                "description": pkg.get("description") or "",
                "url": (pkg.get("links") or {}).get("npm")
                or f"https://www.npmjs.com/package/{pkg['name']}",
                "popularity": popularity,
                "source": "npm",
            }
        )
    return results
