"""Unit tests for registries/npm.py."""

import json
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from core.errors import LocalToolError, MalformedResponseError, SourceUnavailableError
from registries import npm

PACKUMENT = {
    "name": "left-pad",
    "description": "String left pad",
    "dist-tags": {"latest": "1.3.0"},
    "versions": {
        "1.3.0": {
            "name": "left-pad",
            "version": "1.3.0",
            "main": "index.js",
            "types": "index.d.ts",
            "keywords": ["leftpad", "pad"],
        }
    },
    "license": "WTFPL",
    "author": {"name": "azer", "email": "azer@roadbeats.com"},
    "homepage": "https://github.com/stevemao/left-pad#readme",
    "bugs": {"url": "https://github.com/stevemao/left-pad/issues"},
    "repository": {"type": "git", "url": "git+https://github.com/stevemao/left-pad.git"},
    "readme": "# left-pad\n\n```js\nleftPad('foo', 5)\n```",
}


def _response(data, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = data
    return response


class TestPackageUrl:
    """Test suite for package_url."""

    def test_plain_name(self):
        assert npm.package_url("left-pad") == "https://registry.npmjs.org/left-pad"

    def test_scoped_name_escapes_slash(self):
        assert npm.package_url("@types/node") == "https://registry.npmjs.org/@types%2Fnode"

    def test_custom_registry(self):
        assert npm.package_url("x", "https://mirror.example/") == "https://mirror.example/x"


class TestFetchPackage:
    """Test suite for fetch_package."""

    @pytest.mark.asyncio
    async def test_success(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_get = AsyncMock(return_value=_response(PACKUMENT))
            mock_client.return_value.__aenter__.return_value.get = mock_get
            data = await npm.fetch_package("left-pad")

        assert data["name"] == "left-pad"
        assert mock_get.call_args.args[0] == "https://registry.npmjs.org/left-pad"

    @pytest.mark.asyncio
    async def test_not_found(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_response({"error": "Not found"}, status_code=404)
            )
            with pytest.raises(SourceUnavailableError):
                await npm.fetch_package("nope-not-real", retries=0)

    @pytest.mark.asyncio
    async def test_error_document(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_response({"error": "Not found"})
            )
            with pytest.raises(MalformedResponseError):
                await npm.fetch_package("nope-not-real", retries=0)

    @pytest.mark.asyncio
    async def test_non_object_payload(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_response(["left-pad"])
            )
            with pytest.raises(MalformedResponseError):
                await npm.fetch_package("left-pad", retries=0)

    @pytest.mark.asyncio
    async def test_timeout_is_retried_then_raised(self):
        with patch("httpx.AsyncClient") as mock_client, patch(
            "core.reliability.asyncio.sleep", AsyncMock()
        ):
            mock_get = AsyncMock(side_effect=httpx.TimeoutException("timed out"))
            mock_client.return_value.__aenter__.return_value.get = mock_get
            with pytest.raises(SourceUnavailableError):
                await npm.fetch_package("left-pad", retries=1)

        assert mock_get.await_count == 2


class TestNormalizePackage:
    """Test suite for normalize_package."""

    def test_full_packument(self):
        metadata, readme = npm.normalize_package(PACKUMENT, "left-pad")
        assert metadata.name == "left-pad"
        assert metadata.version == "1.3.0"
        assert metadata.description == "String left pad"
        assert metadata.license == "WTFPL"
        assert metadata.author == "azer <azer@roadbeats.com>"
        assert metadata.repository_url == "https://github.com/stevemao/left-pad.git"
        assert metadata.main == "index.js"
        assert metadata.types == "index.d.ts"
        assert metadata.keywords == ["leftpad", "pad"]
        assert readme.startswith("# left-pad")

    def test_npm_view_shape(self):
        data = {"name": "left-pad", "version": "1.3.0", "typings": "index.d.ts"}
        metadata, readme = npm.normalize_package(data, "left-pad")
        assert metadata.version == "1.3.0"
        assert metadata.types == "index.d.ts"
        assert readme == ""

    def test_missing_readme_placeholder(self):
        data = {**PACKUMENT, "readme": "ERROR: No README data found!"}
        _, readme = npm.normalize_package(data, "left-pad")
        assert readme == ""

    def test_license_object_and_list(self):
        metadata, _ = npm.normalize_package({"license": {"type": "MIT"}}, "x")
        assert metadata.license == "MIT"
        metadata, _ = npm.normalize_package({"licenses": [], "license": ["MIT", {"type": "ISC"}]}, "x")
        assert metadata.license == "MIT, ISC"

    def test_fallback_name(self):
        metadata, _ = npm.normalize_package({}, "left-pad")
        assert metadata.name == "left-pad"
        assert metadata.is_bare()

    def test_resources(self):
        assert npm.package_resources(PACKUMENT) == [
            "https://github.com/stevemao/left-pad#readme",
            "https://github.com/stevemao/left-pad/issues",
        ]


class TestViewPackage:
    """Test suite for view_package."""

    @pytest.mark.asyncio
    async def test_parses_json_output(self):
        output = json.dumps({"name": "left-pad", "version": "1.3.0"})
        with patch("registries.npm.run_tool", AsyncMock(return_value=output)) as run_tool:
            data = await npm.view_package("left-pad")

        assert data["version"] == "1.3.0"
        assert run_tool.call_args.args == (("npm",), ("view", "left-pad", "--json"))

    @pytest.mark.asyncio
    async def test_list_output_takes_last(self):
        output = json.dumps([{"version": "1.0.0"}, {"version": "1.3.0"}])
        with patch("registries.npm.run_tool", AsyncMock(return_value=output)):
            data = await npm.view_package("left-pad")
        assert data["version"] == "1.3.0"

    @pytest.mark.asyncio
    async def test_empty_output(self):
        with patch("registries.npm.run_tool", AsyncMock(return_value="  \n")):
            with pytest.raises(LocalToolError):
                await npm.view_package("left-pad")

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        with patch("registries.npm.run_tool", AsyncMock(return_value="npm WARN something")):
            with pytest.raises(MalformedResponseError):
                await npm.view_package("left-pad")


class TestSearch:
    """Test suite for npm search."""

    @pytest.mark.asyncio
    async def test_search_results(self):
        payload = {
            "objects": [
                {
                    "package": {
                        "name": "left-pad",
                        "version": "1.3.0",
                        "description": "String left pad",
                        "links": {"npm": "https://www.npmjs.com/package/left-pad"},
                    },
                    "score": {"detail": {"popularity": 0.5}},
                },
                {"package": {}},
            ]
        }
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                return_value=_response(payload)
            )
            results = await npm.search("left pad")

        assert len(results) == 1
        assert results[0]["name"] == "left-pad"
        assert results[0]["popularity"] == 0.5
        assert results[0]["source"] == "npm"

    @pytest.mark.asyncio
    async def test_search_failure_returns_empty(self, caplog):
        with patch("httpx.AsyncClient") as mock_client, patch(
            "core.reliability.asyncio.sleep", AsyncMock()
        ):
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                side_effect=httpx.ConnectError("refused")
            )
            with caplog.at_level(logging.WARNING):
                results = await npm.search("left pad")

        assert results == []
        assert "npm search failed" in caplog.text
