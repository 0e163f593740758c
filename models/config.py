"""Configuration enums and settings for Package Research MCP."""

import logging
import os
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class ResponseFormat(str, Enum):
    """Output format for tool responses."""

    MARKDOWN = "markdown"
    JSON = "json"


def _env_float(key: str, default: float) -> float:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {key}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive {key}={raw!r}, using {default}")
        return default
    return value


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return max(0, int(raw))
    except ValueError:
        logger.warning(f"Ignoring invalid {key}={raw!r}, using {default}")
        return default


def _env_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


class ResearchSettings(BaseModel):
    """
    Runtime settings for the research pipeline.

    Every external call made by the pipeline is bounded by one of the
    timeouts below. Registry base URLs can be pointed at mirrors.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    npm_registry_url: str = Field(default="https://registry.npmjs.org")
    pypi_url: str = Field(default="https://pypi.org")
    rubygems_url: str = Field(default="https://rubygems.org")

    http_timeout: float = Field(default=15.0, gt=0)
    tool_timeout: float = Field(default=20.0, gt=0)
    step_timeout: float = Field(default=45.0, gt=0)
    probe_timeout: float = Field(default=10.0, gt=0)
    http_retries: int = Field(default=1, ge=0)

    use_local_tools: bool = True
    github_token: str | None = None

    @classmethod
    def from_env(cls) -> "ResearchSettings":
        """Build settings from environment variables, falling back to defaults."""
        return cls(
            npm_registry_url=os.getenv(
                "NPM_REGISTRY_URL", "https://registry.npmjs.org"
            ).rstrip("/"),
            pypi_url=os.getenv("PYPI_URL", "https://pypi.org").rstrip("/"),
            rubygems_url=os.getenv("RUBYGEMS_URL", "https://rubygems.org").rstrip("/"),
            http_timeout=_env_float("RESEARCH_HTTP_TIMEOUT", 15.0),
            tool_timeout=_env_float("RESEARCH_TOOL_TIMEOUT", 20.0),
            step_timeout=_env_float("RESEARCH_STEP_TIMEOUT", 45.0),
            probe_timeout=_env_float("RESEARCH_PROBE_TIMEOUT", 10.0),
            http_retries=_env_int("RESEARCH_HTTP_RETRIES", 1),
            use_local_tools=_env_bool("RESEARCH_USE_LOCAL_TOOLS", True),
            github_token=(os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN") or None),
        )
