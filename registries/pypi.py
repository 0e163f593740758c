"""
PyPI integration.

Three ways to learn about a Python package, from richest to poorest:
the JSON API, the local ``pip show`` output, and a scrape of the public
project page.

API: https://docs.pypi.org/api/json/
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from bs4 import BeautifulSoup

from core.errors import LocalToolError, MalformedResponseError
from models.research import PackageMetadata
from registries.http import DEFAULT_TIMEOUT, fetch_json, fetch_text
from registries.local_tools import TOOL_TIMEOUT, parse_key_value_lines, run_tool

__all__ = [
    "PYPI_URL",
    "DESCRIPTION_LIMIT",
    "fetch_project",
    "normalize_project",
    "project_resources",
    "show_package",
    "parse_pip_show",
    "scrape_project_page",
    "parse_project_page",
    "search",
]

PYPI_URL = "https://pypi.org"
DESCRIPTION_LIMIT = 200

logger = logging.getLogger(__name__)

# project_urls keys that usually point at the source repository
_REPOSITORY_KEYS = ("source", "repository", "source code", "code", "github")

# ══════════════════════════════════════════════════════════════════════════════
# JSON API
# ══════════════════════════════════════════════════════════════════════════════


async def fetch_project(
    name: str,
    *,
    base_url: str = PYPI_URL,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = 1,
) -> Dict[str, Any]:
    """
    Fetch ``/pypi/<name>/json``.

    Raises:
        SourceUnavailableError: project missing or PyPI unreachable
        MalformedResponseError: payload has no ``info`` object
    """
    data = await fetch_json(
        f"{base_url.rstrip('/')}/pypi/{quote(name)}/json",
        timeout=timeout,
        retries=retries,
    )
    if not isinstance(data, dict) or not isinstance(data.get("info"), dict):
        raise MalformedResponseError("PyPI response has no 'info' object")
    return data


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip() and value.strip().upper() != "UNKNOWN":
        return value.strip()
    return None


def _split_keywords(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(item) for item in value]
    text = _text(value)
    if not text:
        return []
    separator = "," if "," in text else None
    return [word.strip() for word in text.split(separator) if word.strip()]


def _project_urls(info: Dict[str, Any]) -> Dict[str, str]:
    urls = info.get("project_urls")
    if not isinstance(urls, dict):
        return {}
    return {str(key): str(url) for key, url in urls.items() if _text(url)}


def _repository_url(info: Dict[str, Any], urls: Dict[str, str]) -> Optional[str]:
    lowered = {key.lower(): url for key, url in urls.items()}
    for key in _REPOSITORY_KEYS:
        if key in lowered:
            return lowered[key]
    for url in urls.values():
        if "github.com" in url:
            return url
    home_page = _text(info.get("home_page"))
    if home_page and "github.com" in home_page:
        return home_page
    return None


def normalize_project(data: Dict[str, Any], fallback_name: str) -> Tuple[PackageMetadata, str]:
    """
    Normalize a PyPI JSON payload.

    Returns:
        (metadata, readme) where readme is the long description
    """
    info = data.get("info") or {}
    urls = _project_urls(info)
    homepage = (
        _text(info.get("home_page"))
        or _text(info.get("project_url"))
        or urls.get("Homepage")
        or urls.get("homepage")
    )

    metadata = PackageMetadata(
        name=_text(info.get("name")) or fallback_name,
        version=_text(info.get("version")),
        description=_text(info.get("summary")),
        homepage=homepage,
        repository_url=_repository_url(info, urls),
        license=_text(info.get("license_expression")) or _text(info.get("license")),
        author=_text(info.get("author")) or _text(info.get("author_email")),
        keywords=_split_keywords(info.get("keywords")),
        requires=[
            req for req in (info.get("requires_dist") or []) if isinstance(req, str)
        ],
    )
    readme = info.get("description") if isinstance(info.get("description"), str) else ""
    return metadata, readme


def project_resources(data: Dict[str, Any]) -> List[str]:
    """Labelled project links as ``"<label>: <url>"``, in PyPI order."""
    info = data.get("info") or {}
    return [f"{key}: {url}" for key, url in _project_urls(info).items()]


# ══════════════════════════════════════════════════════════════════════════════
# Local Tool
# ══════════════════════════════════════════════════════════════════════════════


def parse_pip_show(output: str, fallback_name: str) -> PackageMetadata:
    """
    Parse ``pip show`` output.

    The format is informal ``Key: value`` lines; keys are matched
    case-insensitively and unknown keys are ignored.

    Raises:
        MalformedResponseError: no recognizable field in the output
    """
    info = parse_key_value_lines(output)
    if not info.get("name") and not info.get("version"):
        raise MalformedResponseError("pip show output has no Name or Version")

    requires = info.get("requires", "")
    return PackageMetadata(
        name=info.get("name") or fallback_name,
        version=info.get("version"),
        description=_text(info.get("summary")),
        homepage=_text(info.get("home-page")),
        author=_text(info.get("author")) or _text(info.get("author-email")),
        license=_text(info.get("license")),
        requires=requires.split(", ") if requires else [],
    )


async def show_package(name: str, *, timeout: float = TOOL_TIMEOUT) -> PackageMetadata:
    """
    Run ``pip show <name>`` (pip3 preferred).

    Only works for packages installed in the tool's environment.

    Raises:
        LocalToolError: pip missing, failed, or printed nothing
        MalformedResponseError: output could not be parsed
    """
    output = await run_tool(("pip3", "pip"), ("show", name), timeout=timeout)
    if not output.strip():
        raise LocalToolError(f"Package {name} not found by pip")
    return parse_pip_show(output, name)


# ══════════════════════════════════════════════════════════════════════════════
# Page Scrape
# ══════════════════════════════════════════════════════════════════════════════


def parse_project_page(html: str, fallback_name: str) -> Tuple[PackageMetadata, str]:
    """
    Pull the description and version out of a PyPI project page.

    The recovered description is truncated to DESCRIPTION_LIMIT characters
    with a trailing "..." marker; the untruncated text becomes the readme.

    Raises:
        MalformedResponseError: no project description on the page
    """
    soup = BeautifulSoup(html, "html.parser")
    block = soup.find("div", class_="project-description")
    text = block.get_text("\n").strip() if block else ""
    if not text:
        raise MalformedResponseError("PyPI page has no project description")

    version = None
    header = soup.find("h1", class_="package-header__name")
    if header:
        parts = header.get_text(" ").split()
        if len(parts) >= 2:
            version = parts[-1]

    metadata = PackageMetadata(
        name=fallback_name,
        version=version,
        description=text[:DESCRIPTION_LIMIT] + "...",
    )
    return metadata, text


async def scrape_project_page(
    name: str,
    *,
    base_url: str = PYPI_URL,
    timeout: float = DEFAULT_TIMEOUT,
) -> Tuple[PackageMetadata, str]:
    """Last-resort scrape of ``/project/<name>/``."""
    html = await fetch_text(
        f"{base_url.rstrip('/')}/project/{quote(name)}/", timeout=timeout, retries=0
    )
    return parse_project_page(html, name)


# ══════════════════════════════════════════════════════════════════════════════
# Search
# ══════════════════════════════════════════════════════════════════════════════

_PROJECT_LINK_RE = re.compile(r"/project/([^/\"'?#]+)/")


def _search_entry(info: Dict[str, Any], base_url: str) -> Dict[str, Any]:
    return {
        "name": info.get("name", ""),
        "version": info.get("version", ""),
        "description": info.get("summary") or "",
        "url": f"{base_url}/project/{info.get('name', '')}/",
        "source": "pypi",
    }


async def search(
    query: str,
    *,
    limit: int = 10,
    base_url: str = PYPI_URL,
    timeout: float = DEFAULT_TIMEOUT,
) -> List[Dict[str, Any]]:
    """
    Search PyPI.

    PyPI has no search API: an exact project match is tried first, then the
    search page is scraped for project links and each is looked up.
    """
    base_url = base_url.rstrip("/")
    try:
        data = await fetch_project(query, base_url=base_url, timeout=timeout, retries=0)
        return [_search_entry(data["info"], base_url)]
    except Exception as e:
        logger.debug(f"No exact PyPI match for {query!r}: {e}")

    try:
        html = await fetch_text(
            f"{base_url}/search/", params={"q": query}, timeout=timeout, retries=0
        )
    except Exception as e:
        logger.warning(f"PyPI search failed: {e}")
        return []

    names: List[str] = []
    for match in _PROJECT_LINK_RE.finditer(html):
        if match.group(1) not in names:
            names.append(match.group(1))
        if len(names) >= limit:
            break

    results = []
    for name in names:
        try:
            data = await fetch_project(name, base_url=base_url, timeout=timeout, retries=0)
            results.append(_search_entry(data["info"], base_url))
        except Exception as e:
            logger.debug(f"PyPI lookup for search hit {name} failed: {e}")
            results.append(
                {
                    "name": name,
                    "version": "",
                    "description": "",
                    "url": f"{base_url}/project/{name}/",
                    "source": "pypi",
                }
            )
    return results
