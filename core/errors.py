"""Exceptions raised by registry clients and local tool wrappers."""

__all__ = [
    "ResearchError",
    "SourceUnavailableError",
    "LocalToolError",
    "MalformedResponseError",
]


class ResearchError(Exception):
    """Base class for research pipeline errors."""


class SourceUnavailableError(ResearchError):
    """A source could not be reached or answered with a failure status."""


class LocalToolError(SourceUnavailableError):
    """A local package-manager tool is missing, failed, or timed out."""


class MalformedResponseError(ResearchError):
    """A source answered but its payload could not be parsed."""
