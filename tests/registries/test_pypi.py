"""Unit tests for registries/pypi.py."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from core.errors import LocalToolError, MalformedResponseError
from registries import pypi

PROJECT = {
    "info": {
        "name": "requests",
        "version": "2.32.3",
        "summary": "Python HTTP for Humans.",
        "home_page": "https://requests.readthedocs.io",
        "license": "Apache-2.0",
        "author": "Kenneth Reitz",
        "author_email": "me@kennethreitz.org",
        "keywords": "http, requests",
        "requires_dist": ["charset-normalizer<4,>=2", "idna<4,>=2.5"],
        "project_urls": {
            "Documentation": "https://requests.readthedocs.io",
            "Source": "https://github.com/psf/requests",
        },
        "description": "# Requests\n\n```python\nimport requests\n```",
    }
}

PIP_SHOW = """Name: requests
Version: 2.32.3
Summary: Python HTTP for Humans.
Home-page: https://requests.readthedocs.io
Author: Kenneth Reitz
Author-email: me@kennethreitz.org
License: Apache-2.0
Location: /usr/lib/python3/site-packages
Requires: certifi, charset-normalizer, idna, urllib3
Required-by:
"""

PROJECT_PAGE = """
<html><body>
<h1 class="package-header__name">
  requests 2.32.3
</h1>
<div class="project-description">
  <h1>Requests</h1>
  <p>Requests is a simple, yet elegant, HTTP library.</p>
</div>
</body></html>
"""


def _response(data=None, text="", status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = data
    response.text = text
    return response


class TestFetchProject:
    """Test suite for fetch_project."""

    @pytest.mark.asyncio
    async def test_success(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_get = AsyncMock(return_value=_response(PROJECT))
            mock_client.return_value.__aenter__.return_value.get = mock_get
            data = await pypi.fetch_project("requests")

        assert data["info"]["name"] == "requests"
        assert mock_get.call_args.args[0] == "https://pypi.org/pypi/requests/json"

    @pytest.mark.asyncio
    async def test_missing_info(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_response({"message": "Not Found"})
            )
            with pytest.raises(MalformedResponseError):
                await pypi.fetch_project("nope", retries=0)


class TestNormalizeProject:
    """Test suite for normalize_project."""

    def test_full_project(self):
        metadata, readme = pypi.normalize_project(PROJECT, "requests")
        assert metadata.name == "requests"
        assert metadata.version == "2.32.3"
        assert metadata.description == "Python HTTP for Humans."
        assert metadata.homepage == "https://requests.readthedocs.io"
        assert metadata.repository_url == "https://github.com/psf/requests"
        assert metadata.license == "Apache-2.0"
        assert metadata.author == "Kenneth Reitz"
        assert metadata.keywords == ["http", "requests"]
        assert metadata.requires == ["charset-normalizer<4,>=2", "idna<4,>=2.5"]
        assert readme.startswith("# Requests")

    def test_unknown_values_dropped(self):
        data = {"info": {"name": "x", "license": "UNKNOWN", "summary": "UNKNOWN", "keywords": ""}}
        metadata, readme = pypi.normalize_project(data, "x")
        assert metadata.license is None
        assert metadata.description is None
        assert metadata.keywords == []
        assert readme == ""

    def test_license_expression_preferred(self):
        data = {"info": {"name": "x", "license_expression": "MIT", "license": "MIT License"}}
        metadata, _ = pypi.normalize_project(data, "x")
        assert metadata.license == "MIT"

    def test_whitespace_keywords(self):
        data = {"info": {"name": "x", "keywords": "http client async"}}
        metadata, _ = pypi.normalize_project(data, "x")
        assert metadata.keywords == ["http", "client", "async"]

    def test_resources(self):
        assert pypi.project_resources(PROJECT) == [
            "Documentation: https://requests.readthedocs.io",
            "Source: https://github.com/psf/requests",
        ]


class TestPipShow:
    """Test suite for pip show parsing."""

    def test_parse(self):
        metadata = pypi.parse_pip_show(PIP_SHOW, "requests")
        assert metadata.name == "requests"
        assert metadata.version == "2.32.3"
        assert metadata.description == "Python HTTP for Humans."
        assert metadata.homepage == "https://requests.readthedocs.io"
        assert metadata.license == "Apache-2.0"
        assert "idna" in metadata.requires

    def test_parse_rejects_garbage(self):
        with pytest.raises(MalformedResponseError):
            pypi.parse_pip_show("WARNING: Package(s) not found: nope", "nope")

    @pytest.mark.asyncio
    async def test_show_package(self):
        with patch("registries.pypi.run_tool", AsyncMock(return_value=PIP_SHOW)) as run_tool:
            metadata = await pypi.show_package("requests")

        assert metadata.version == "2.32.3"
        assert run_tool.call_args.args == (("pip3", "pip"), ("show", "requests"))

    @pytest.mark.asyncio
    async def test_show_package_empty_output(self):
        with patch("registries.pypi.run_tool", AsyncMock(return_value="")):
            with pytest.raises(LocalToolError):
                await pypi.show_package("nope")


class TestProjectPage:
    """Test suite for the project page scrape."""

    def test_parse(self):
        metadata, readme = pypi.parse_project_page(PROJECT_PAGE, "requests")
        assert metadata.name == "requests"
        assert metadata.version == "2.32.3"
        assert "simple, yet elegant" in readme
        assert metadata.description.endswith("...")

    def test_description_truncated(self):
        html = f'<div class="project-description"><p>{"a" * 500}</p></div>'
        metadata, readme = pypi.parse_project_page(html, "x")
        assert metadata.description == "a" * pypi.DESCRIPTION_LIMIT + "..."
        assert len(readme) == 500

    def test_short_description_still_marked(self):
        html = '<div class="project-description"><p>tiny</p></div>'
        metadata, _ = pypi.parse_project_page(html, "x")
        assert metadata.description == "tiny..."

    def test_missing_block(self):
        with pytest.raises(MalformedResponseError):
            pypi.parse_project_page("<html><body>Not Found</body></html>", "x")

    @pytest.mark.asyncio
    async def test_scrape(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_get = AsyncMock(return_value=_response(text=PROJECT_PAGE))
            mock_client.return_value.__aenter__.return_value.get = mock_get
            metadata, _ = await pypi.scrape_project_page("requests")

        assert metadata.version == "2.32.3"
        assert mock_get.call_args.args[0] == "https://pypi.org/project/requests/"


class TestSearch:
    """Test suite for PyPI search."""

    @pytest.mark.asyncio
    async def test_exact_match_first(self):
        with patch("registries.pypi.fetch_project", AsyncMock(return_value=PROJECT)):
            results = await pypi.search("requests")

        assert len(results) == 1
        assert results[0]["name"] == "requests"
        assert results[0]["source"] == "pypi"

    @pytest.mark.asyncio
    async def test_scraped_results(self):
        html = (
            '<a href="/project/httpx/">httpx</a>'
            '<a href="/project/aiohttp/">aiohttp</a>'
            '<a href="/project/httpx/">again</a>'
        )

        async def fetch_project(name, **kwargs):
            if name == "httpx":
                return {"info": {"name": "httpx", "version": "0.27.0", "summary": "HTTP client"}}
            raise LookupError(name)

        with patch("registries.pypi.fetch_project", side_effect=fetch_project), patch(
            "registries.pypi.fetch_text", AsyncMock(return_value=html)
        ):
            results = await pypi.search("http client")

        assert [result["name"] for result in results] == ["httpx", "aiohttp"]
        assert results[0]["version"] == "0.27.0"
        assert results[1]["version"] == ""

    @pytest.mark.asyncio
    async def test_search_failure_returns_empty(self):
        with patch(
            "registries.pypi.fetch_project", AsyncMock(side_effect=LookupError("x"))
        ), patch("registries.pypi.fetch_text", AsyncMock(side_effect=LookupError("down"))):
            assert await pypi.search("anything") == []
