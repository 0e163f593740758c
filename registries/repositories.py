"""
Source repository README lookup.

Derives (host, owner, repo) from the repository URLs registries publish and
fetches a README over the host's raw-content endpoint, trying conventional
filenames in order.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional

from core.errors import SourceUnavailableError
from registries.http import DEFAULT_TIMEOUT, fetch_text

__all__ = [
    "README_FILENAMES",
    "RepositoryRef",
    "parse_repository_url",
    "raw_file_url",
    "fetch_readme",
]

logger = logging.getLogger(__name__)

README_FILENAMES = (
    "README.md",
    "readme.md",
    "Readme.md",
    "README.markdown",
    "README.rst",
    "README.txt",
    "README",
)

_HOSTS = {
    "github": "github.com",
    "gitlab": "gitlab.com",
    "bitbucket": "bitbucket.org",
}

# host[/:]owner/repo, covering https://, git://, ssh://git@ and git@host: forms
_HOST_RE = re.compile(
    r"(?:^|[/@.])(github\.com|gitlab\.com|bitbucket\.org)[/:]+([\w.-]+)/([\w.-]+)",
    re.IGNORECASE,
)
# npm shorthand: "owner/repo" or "github:owner/repo"
_SHORTHAND_RE = re.compile(r"^(?:(github|gitlab|bitbucket):)?([\w.-]+)/([\w.-]+)$")


@dataclass(frozen=True)
class RepositoryRef:
    """A repository on a recognized host."""

    host: str
    owner: str
    repo: str

    @property
    def web_url(self) -> str:
        return f"https://{self.host}/{self.owner}/{self.repo}"


def _clean_repo(repo: str) -> str:
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    return repo


def parse_repository_url(url: Optional[str]) -> Optional[RepositoryRef]:
    """
    Parse a repository URL into a RepositoryRef.

    Returns None for empty input, unrecognized hosts, or unparsable URLs.

    Example:
        >>> parse_repository_url("git+https://github.com/stevemao/left-pad.git")
        RepositoryRef(host='github.com', owner='stevemao', repo='left-pad')
    """
    if not url:
        return None
    url = url.strip()

    match = _HOST_RE.search(url)
    if match:
        host, owner, repo = match.group(1).lower(), match.group(2), _clean_repo(match.group(3))
        if owner and repo:
            return RepositoryRef(host=host, owner=owner, repo=repo)
        return None

    if "://" in url or url.startswith("git@"):
        return None

    match = _SHORTHAND_RE.match(url)
    if match:
        prefix = match.group(1) or "github"
        repo = _clean_repo(match.group(3))
        if repo:
            return RepositoryRef(host=_HOSTS[prefix], owner=match.group(2), repo=repo)
    return None


def raw_file_url(ref: RepositoryRef, filename: str, ref_name: str = "HEAD") -> str:
    """Build the raw-content URL for a file on the repository's default branch."""
    if ref.host == "github.com":
        return f"https://raw.githubusercontent.com/{ref.owner}/{ref.repo}/{ref_name}/{filename}"
    if ref.host == "gitlab.com":
        return f"https://gitlab.com/{ref.owner}/{ref.repo}/-/raw/{ref_name}/{filename}"
    return f"https://bitbucket.org/{ref.owner}/{ref.repo}/raw/{ref_name}/{filename}"


async def fetch_readme(
    ref: RepositoryRef,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    github_token: Optional[str] = None,
) -> Optional[str]:
    """
    Fetch the first README that resolves, trying README_FILENAMES in order.

    Returns:
        README text, or None when no candidate resolved with content
    """
    headers: Dict[str, str] = {}
    if github_token and ref.host == "github.com":
        headers["Authorization"] = f"token {github_token}"

    for filename in README_FILENAMES:
        url = raw_file_url(ref, filename)
        try:
            text = await fetch_text(url, timeout=timeout, retries=0, headers=headers)
        except SourceUnavailableError as e:
            logger.debug(f"README candidate missed: {e}")
            continue
        if text.strip():
            logger.debug(f"README found at {url}")
            return text

    return None
