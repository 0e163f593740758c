"""
Package Registry Integrations.

Clients for the data sources the research pipeline falls back through.
Registry functions raise pipeline errors (see core.errors) so a fallback
chain can tell a failed source from an empty one; search functions degrade
to an empty list.

Sources:
─────────────────────────────────────────────────────────────────────────────
REGISTRY APIs (no key required)
    npm          registry.npmjs.org package documents + search
    pypi         pypi.org JSON API, project page scrape, search page
    rubygems     rubygems.org gem API + search

REPOSITORY HOSTS
    repositories README over raw-content URLs (GitHub, GitLab, Bitbucket)

LOCAL TOOLS (used when installed)
    npm view, pip show, gem info

Configuration:
─────────────────────────────────────────────────────────────────────────────
    NPM_REGISTRY_URL   PYPI_URL   RUBYGEMS_URL   (mirrors)
    GITHUB_TOKEN       optional, raises raw.githubusercontent.com limits
"""

from registries import npm, pypi, repositories, rubygems
from registries.local_tools import available_tools
from registries.repositories import RepositoryRef, fetch_readme, parse_repository_url

__all__ = [
    "npm",
    "pypi",
    "rubygems",
    "repositories",
    "available_tools",
    "RepositoryRef",
    "fetch_readme",
    "parse_repository_url",
]
