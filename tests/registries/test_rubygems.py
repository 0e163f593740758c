"""Unit tests for registries/rubygems.py."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from core.errors import LocalToolError, MalformedResponseError
from registries import rubygems

GEM = {
    "name": "rails",
    "version": "7.1.3",
    "info": "Ruby on Rails is a full-stack web framework.",
    "authors": "David Heinemeier Hansson",
    "licenses": ["MIT"],
    "downloads": 512345678,
    "homepage_uri": "https://rubyonrails.org",
    "source_code_uri": "https://github.com/rails/rails/tree/v7.1.3",
    "documentation_uri": "https://api.rubyonrails.org/v7.1.3/",
}

GEM_INFO = """
*** REMOTE GEMS ***

rails (7.1.3)
    Author: David Heinemeier Hansson
    Homepage: https://rubyonrails.org

    Full-stack web application framework.
"""


def _response(data, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = data
    return response


class TestFetchGem:
    """Test suite for fetch_gem."""

    @pytest.mark.asyncio
    async def test_success(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_get = AsyncMock(return_value=_response(GEM))
            mock_client.return_value.__aenter__.return_value.get = mock_get
            data = await rubygems.fetch_gem("rails")

        assert data["version"] == "7.1.3"
        assert mock_get.call_args.args[0] == "https://rubygems.org/api/v1/gems/rails.json"

    @pytest.mark.asyncio
    async def test_non_object(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_response("This rubygem could not be found.")
            )
            with pytest.raises(MalformedResponseError):
                await rubygems.fetch_gem("nope", retries=0)


class TestNormalizeGem:
    """Test suite for normalize_gem."""

    def test_full_gem(self):
        metadata = rubygems.normalize_gem(GEM, "rails")
        assert metadata.name == "rails"
        assert metadata.version == "7.1.3"
        assert metadata.description == "Ruby on Rails is a full-stack web framework."
        assert metadata.author == "David Heinemeier Hansson"
        assert metadata.license == "MIT"
        assert metadata.downloads == 512345678
        assert metadata.repository_url == "https://github.com/rails/rails/tree/v7.1.3"

    def test_github_homepage_becomes_repository(self):
        data = {"name": "x", "homepage_uri": "https://github.com/owner/x"}
        metadata = rubygems.normalize_gem(data, "x")
        assert metadata.repository_url == "https://github.com/owner/x"

    def test_resources(self):
        assert rubygems.gem_resources(GEM) == [
            "Source: https://github.com/rails/rails/tree/v7.1.3",
            "Homepage: https://rubyonrails.org",
            "Documentation: https://api.rubyonrails.org/v7.1.3/",
        ]


class TestGemInfo:
    """Test suite for gem info parsing."""

    def test_header_version_and_free_text_summary(self):
        metadata = rubygems.parse_gem_info(GEM_INFO, "rails")
        assert metadata.version == "7.1.3"
        assert "Full-stack web application framework." in metadata.description
        assert metadata.homepage == "https://rubyonrails.org"

    def test_explicit_fields(self):
        output = "Version: 1.2.3\nSummary: A gem\nLicense: MIT\n"
        metadata = rubygems.parse_gem_info(output, "thing")
        assert metadata.version == "1.2.3"
        assert metadata.description == "A gem"
        assert metadata.license == "MIT"

    def test_error_output(self):
        with pytest.raises(LocalToolError):
            rubygems.parse_gem_info("ERROR:  Could not find a valid gem 'nope'", "nope")

    def test_unparsable_output(self):
        with pytest.raises(MalformedResponseError):
            rubygems.parse_gem_info("*** REMOTE GEMS ***\n", "nope")

    @pytest.mark.asyncio
    async def test_gem_info_runs_remote_query(self):
        with patch("registries.rubygems.run_tool", AsyncMock(return_value=GEM_INFO)) as run_tool:
            metadata = await rubygems.gem_info("rails")

        assert metadata.version == "7.1.3"
        assert run_tool.call_args.args == (("gem",), ("info", "rails", "--remote"))

    @pytest.mark.asyncio
    async def test_gem_info_empty_output(self):
        with patch("registries.rubygems.run_tool", AsyncMock(return_value="")):
            with pytest.raises(LocalToolError):
                await rubygems.gem_info("nope")


class TestSearch:
    """Test suite for RubyGems search."""

    @pytest.mark.asyncio
    async def test_search_results(self):
        payload = [
            {"name": "rails", "version": "7.1.3", "info": "Web framework", "downloads": 10},
            {"version": "0.0.1"},
        ]
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_response(payload)
            )
            results = await rubygems.search("rails")

        assert results == [
            {
                "name": "rails",
                "version": "7.1.3",
                "description": "Web framework",
                "url": "https://rubygems.org/gems/rails",
                "downloads": 10,
                "source": "rubygems",
            }
        ]

    @pytest.mark.asyncio
    async def test_search_unexpected_payload(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_response({"error": "bad"})
            )
            assert await rubygems.search("rails") == []
