"""
Consumer views of research records.

build_package_context produces the JSON document served to coding agents
(package / documentation / usage / environment). format_record_markdown
renders the same information for humans.
"""

import re
from typing import Any, Dict, List, Optional

from core.extraction import extract_sections
from models.research import ResearchRecord
from utils.helpers import truncate

__all__ = [
    "BASIC_USAGE_PLACEHOLDER",
    "build_package_context",
    "build_api_reference",
    "format_record_markdown",
]

BASIC_USAGE_PLACEHOLDER = "See examples for usage information."

# name(...) with one level of nested parentheses
_CALL_RE = re.compile(r"\b\w+\((?:[^)(]|\([^)(]*\))*\)")
_NEW_RE = re.compile(r"\bnew\s+(\w+)")


def build_api_reference(record: ResearchRecord) -> Dict[str, Any]:
    """
    Heuristic API surface from the examples.

    Method names come from call expressions, class names from ``new X``.
    Both keep first-seen order without duplicates.
    """
    api_ref: Dict[str, Any] = {"methods": [], "classes": [], "interfaces": []}

    if record.metadata.types:
        api_ref["hasTypes"] = True
        api_ref["typesPath"] = record.metadata.types

    for example in record.examples:
        for call in _CALL_RE.findall(example):
            method = call.split("(")[0]
            if method not in api_ref["methods"]:
                api_ref["methods"].append(method)
        for class_name in _NEW_RE.findall(example):
            if class_name not in api_ref["classes"]:
                api_ref["classes"].append(class_name)

    return api_ref


def build_package_context(
    record: ResearchRecord, agent_metadata: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Build the context document for one package.

    Args:
        record: Research result (degraded records are allowed)
        agent_metadata: Classification from an external agent detector,
            attached verbatim when given

    Returns:
        Dict with package, documentation, usage, environment sections
    """
    metadata = record.metadata
    ecosystem = record.identity.ecosystem

    context: Dict[str, Any] = {
        "package": {
            "name": record.identity.name,
            "version": metadata.version or "unknown",
            "description": metadata.description or "",
            "homepage": metadata.homepage or "",
            "repository": metadata.repository_url or "",
            "license": metadata.license or "",
            "author": metadata.author or "",
            "keywords": list(metadata.keywords),
            "main": metadata.main or "",
            "types": metadata.types or "",
        },
        "documentation": {
            "readme": record.readme,
            "examples": list(record.examples),
            "additionalResources": list(record.additional_resources),
        },
        "usage": {
            "basicUsage": record.examples[0] if record.examples else BASIC_USAGE_PLACEHOLDER,
            "commonPatterns": extract_sections(record.readme),
            "apiReference": build_api_reference(record),
        },
        "environment": {
            "languageType": ecosystem.value,
            "packageManager": ecosystem.package_manager,
        },
    }

    if agent_metadata:
        context["agentMetadata"] = dict(agent_metadata)

    return context


def format_record_markdown(record: ResearchRecord, readme_chars: int = 4000) -> str:
    """Render a research record as markdown."""
    metadata = record.metadata
    title = f"# {record.identity.name}"
    if metadata.version:
        title += f" {metadata.version}"

    lines: List[str] = [title, ""]
    if record.is_degraded:
        lines.append(
            f"> No data source had information about this {record.identity.ecosystem.value} package."
        )
        lines.append("")

    if metadata.description:
        lines.extend([metadata.description, ""])

    facts = [
        ("Ecosystem", record.identity.ecosystem.value),
        ("Homepage", metadata.homepage),
        ("Repository", metadata.repository_url),
        ("License", metadata.license),
        ("Author", metadata.author),
        ("Types", metadata.types),
        ("Downloads", f"{metadata.downloads:,}" if metadata.downloads is not None else None),
        ("Keywords", ", ".join(metadata.keywords)),
        ("Sources", ", ".join(record.sources)),
    ]
    for label, value in facts:
        if value:
            lines.append(f"- **{label}**: {value}")

    if record.additional_resources:
        lines.extend(["", "## Resources", ""])
        lines.extend(f"- {item}" for item in record.additional_resources)

    if record.examples:
        lines.extend(["", f"## Examples ({len(record.examples)})", ""])
        for example in record.examples[:5]:
            lines.extend(["```", example, "```", ""])

    if record.readme:
        lines.extend(["", "## README", "", truncate(record.readme, readme_chars, "\n\n[README truncated]")])

    return "\n".join(lines).rstrip() + "\n"
