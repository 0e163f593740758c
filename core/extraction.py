"""
Text extraction from READMEs.

Pure functions, no I/O: fenced code blocks become usage examples and
usage-oriented README sections become common patterns.
"""

import re
from typing import List, Optional, Sequence

__all__ = ["extract_examples", "extract_sections", "USAGE_SECTION_TERMS"]

# Opening fence with optional info string, lazily closed by the next fence
_FENCED_BLOCK_RE = re.compile(r"```[^`\n]*\n(.*?)```", re.DOTALL)

_SECTION_SPLIT_RE = re.compile(r"#{2,3}\s+")

USAGE_SECTION_TERMS = ("usage", "example", "common", "pattern", "how to")


def extract_examples(text: Optional[str]) -> List[str]:
    """
    Extract fenced code blocks from markdown.

    Blocks of every language are kept, the info string is dropped, and
    blocks that are empty after stripping are skipped. An unterminated
    fence yields nothing.

    Example:
        >>> extract_examples("```js\\nleftPad('1', 2, '0')\\n```")
        ["leftPad('1', 2, '0')"]
    """
    if not text:
        return []

    examples = []
    for match in _FENCED_BLOCK_RE.finditer(text):
        code = match.group(1).strip()
        if code:
            examples.append(code)
    return examples


def extract_sections(
    text: Optional[str], terms: Sequence[str] = USAGE_SECTION_TERMS
) -> List[str]:
    """
    Return README sections (split on ## and ### headings) mentioning any term.

    Matching is case-insensitive. Sections keep their heading line and
    document order.
    """
    if not text:
        return []

    sections = []
    for section in _SECTION_SPLIT_RE.split(text):
        lowered = section.lower()
        if any(term in lowered for term in terms):
            stripped = section.strip()
            if stripped:
                sections.append(stripped)
    return sections
