#!/usr/bin/env python3
"""
Package Research MCP Server

An MCP server that researches third-party packages on npm, PyPI, and
RubyGems and returns a normalized context document (metadata, README,
extracted examples, API surface heuristics) for coding agents.

Features:
- Ecosystem auto-detection by probing the registries
- Fallback chains: registry API -> repository README -> local tool
- Per-session research cache with explicit refresh and invalidation
- Degraded results instead of errors when every source fails
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP

from core import (
    ResearchOrchestrator,
    build_package_context,
    detect_workspace_ecosystem,
    format_metrics_report,
    format_record_markdown,
)
from models import (
    Ecosystem,
    PackageSearchInput,
    ResearchPackageInput,
    ResearchSettings,
    ResponseFormat,
)
from registries import available_tools, npm, pypi, rubygems

# Load environment variables from .env file
load_dotenv()

logging.getLogger().setLevel(
    getattr(logging, os.getenv("RESEARCH_LOG_LEVEL", "WARNING").upper(), logging.WARNING)
)

settings = ResearchSettings.from_env()
orchestrator = ResearchOrchestrator(settings=settings)

mcp = FastMCP("package_research_mcp")

# ============================================================================
# Research Tools
# ============================================================================


@mcp.tool(
    name="research_package",
    annotations={
        "title": "Research a Package",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def research_package(params: ResearchPackageInput) -> str:
    """
    Research a package and return its normalized research record.

    Queries the package's registry first, then its source repository for a
    README, then any installed package-manager tool. Results are cached for
    the session; set force_refresh to query again.

    Args:
        params (ResearchPackageInput):
            - package_name (str): Name as published (e.g., "left-pad")
            - ecosystem (str): "node", "python", "ruby", or "auto" (default)
            - force_refresh (bool): Ignore the cache
            - response_format (str): "json" (default) or "markdown"

    Returns:
        str: The research record. A record whose metadata holds only the
        name and whose readme is empty means no source knew the package.

    Examples:
        - Use when: "What does left-pad export?"
        - Use when: Preparing to use an unfamiliar gem or library
    """
    try:
        record = await orchestrator.research(
            params.package_name, params.ecosystem, params.force_refresh
        )
    except ValueError as e:
        return json.dumps({"error": str(e)}, indent=2)

    if params.response_format == ResponseFormat.MARKDOWN:
        return format_record_markdown(record)
    return json.dumps(record.to_payload(), indent=2)


@mcp.tool(
    name="get_package_context",
    annotations={
        "title": "Get Package Context Document",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def get_package_context(params: ResearchPackageInput) -> str:
    """
    Get the context document for a package.

    Same research as research_package, reshaped into package /
    documentation / usage / environment sections, with basic usage, common
    usage patterns from the README, and a heuristic API reference.

    Returns:
        str: JSON-formatted context document
    """
    try:
        record = await orchestrator.research(
            params.package_name, params.ecosystem, params.force_refresh
        )
    except ValueError as e:
        return json.dumps({"error": str(e)}, indent=2)

    return json.dumps(build_package_context(record), indent=2)


@mcp.tool(
    name="search_packages",
    annotations={
        "title": "Search Package Registries",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def search_packages(params: PackageSearchInput) -> str:
    """
    Search npm, PyPI, or RubyGems for packages matching a query.

    With ecosystem "auto" the registry is chosen from the workspace's
    project files (package.json, pyproject.toml, Gemfile, ...), else npm.

    Returns:
        str: JSON with the registry searched and its matches
    """
    ecosystem = params.ecosystem
    if not ecosystem.is_concrete:
        ecosystem = detect_workspace_ecosystem(params.workspace_path)
    if not ecosystem.is_concrete:
        ecosystem = Ecosystem.NODE

    if ecosystem == Ecosystem.PYTHON:
        results = await pypi.search(
            params.query, limit=params.limit, base_url=settings.pypi_url,
            timeout=settings.http_timeout,
        )
    elif ecosystem == Ecosystem.RUBY:
        results = await rubygems.search(
            params.query, limit=params.limit, base_url=settings.rubygems_url,
            timeout=settings.http_timeout,
        )
    else:
        results = await npm.search(
            params.query, limit=params.limit, registry_url=settings.npm_registry_url,
            timeout=settings.http_timeout,
        )

    return json.dumps(
        {
            "query": params.query,
            "ecosystem": ecosystem.value,
            "count": len(results),
            "results": results,
        },
        indent=2,
    )


# ============================================================================
# Cache Tools
# ============================================================================


@mcp.tool(
    name="invalidate_package",
    annotations={
        "title": "Forget Cached Package Research",
        "readOnlyHint": False,
        "destructiveHint": True,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
async def invalidate_package(package_name: str, ecosystem: str = "auto") -> str:
    """
    Drop the cached research for one package.

    Args:
        package_name (str): Package name
        ecosystem (str): "node", "python", "ruby", or "auto"

    Returns:
        str: Status message
    """
    try:
        removed = await orchestrator.invalidate(package_name, ecosystem)
    except ValueError as e:
        return f"❌ {e}"
    if removed:
        return f"✓ Forgot cached research for {package_name}."
    return f"ℹ️ No cached research for {package_name}."


@mcp.tool(
    name="clear_research_cache",
    annotations={
        "title": "Clear Research Cache",
        "readOnlyHint": False,
        "destructiveHint": True,
        "idempotentHint": False,
        "openWorldHint": False,
    },
)
async def clear_research_cache() -> str:
    """
    Clear every cached research record.

    Returns:
        str: Status message with the number of records removed
    """
    removed = orchestrator.clear_cache()
    if removed:
        return f"✓ Cache cleared ({removed} records). Next research will query the sources."
    return "ℹ️ Cache was already empty."


# ============================================================================
# Server Context & Metrics
# ============================================================================


def detect_workspace_context(directory: Optional[str] = None) -> Dict[str, Any]:
    """Project type and installed package-manager tools for a directory."""
    path = Path(directory) if directory else Path.cwd()
    ecosystem = detect_workspace_ecosystem(path)
    return {
        "workspace": str(path),
        "ecosystem": ecosystem.value,
        "package_manager": ecosystem.package_manager,
        "local_tools": available_tools(),
    }


@mcp.tool(
    name="get_server_context",
    annotations={
        "title": "Get Package Research Server Context",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
async def get_server_context() -> str:
    """
    Get the server's capabilities and the detected workspace project type.

    Returns:
        str: JSON-formatted server context
    """
    context = {
        "handshake": {
            "server": "package-research-mcp",
            "version": "1.0.0",
            "status": "initialized",
            "ecosystems": [eco.value for eco in Ecosystem.concrete()],
            "capabilities": {
                "ecosystem_probe": True,
                "fallback_chains": True,
                "caching": True,
                "registry_search": True,
                "local_tools": settings.use_local_tools,
            },
        },
        "project_context": detect_workspace_context(),
        "registries": {
            "npm": settings.npm_registry_url,
            "pypi": settings.pypi_url,
            "rubygems": settings.rubygems_url,
        },
        "cached_records": len(orchestrator.cache),
    }
    return json.dumps(context, indent=2)


@mcp.tool(
    name="get_research_metrics",
    annotations={
        "title": "Get Research Metrics",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
async def get_research_metrics() -> str:
    """
    Get research pipeline metrics: cache hit rate, degraded results, and
    per-source success rates and latency.

    Returns:
        str: Markdown metrics report
    """
    return format_metrics_report(orchestrator.metrics)


def validate_environment() -> List[str]:
    """
    Report configuration on startup. Returns the installed local tools.

    Writes to stderr; stdout carries the stdio JSON-RPC stream.
    """
    print("\nValidating environment...", file=sys.stderr)

    print(
        f"Registries: npm={settings.npm_registry_url} "
        f"pypi={settings.pypi_url} rubygems={settings.rubygems_url}",
        file=sys.stderr,
    )

    tools = [name for name, present in available_tools().items() if present]
    if not settings.use_local_tools:
        print("Local tool fallbacks disabled", file=sys.stderr)
    elif tools:
        print(f"Local tools: {', '.join(tools)}", file=sys.stderr)
    else:
        print("No local package-manager tools found (registry sources only)", file=sys.stderr)

    if settings.github_token:
        print("GitHub token configured for README fetches", file=sys.stderr)

    print("Ready\n", file=sys.stderr)
    return tools


# ============================================================================
# Main Entry Point
# ============================================================================


def main():
    # Validate environment
    validate_environment()

    # Run the MCP server
    mcp.run()


if __name__ == "__main__":
    main()
