"""Helper utilities for Package Research MCP."""


def normalize_package_name(name: str) -> str:
    """Strip surrounding whitespace; registry names are otherwise kept verbatim."""
    return (name or "").strip()


def truncate(text: str, limit: int, marker: str = "...") -> str:
    """Cut text to ``limit`` characters, appending ``marker`` when cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + marker
