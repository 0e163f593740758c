"""
Core of the Package Research MCP.

    Text Extractor     Fenced code blocks and usage sections from READMEs
    Ecosystem Probe    Which registry publishes a name
    Source Adapters    Per-ecosystem fallback chains over registries and tools
    Orchestrator       Probe -> adapter -> extractor -> cache, never raises
    Context            Consumer JSON view and markdown rendering
    Reliability        Bounded calls and transient-error retry
    Metrics            Per-source and cache statistics
"""

from core.adapters import build_adapters
from core.chain import PartialRecord, SourceAdapter, SourceStep
from core.context import build_package_context, format_record_markdown
from core.errors import (
    LocalToolError,
    MalformedResponseError,
    ResearchError,
    SourceUnavailableError,
)
from core.extraction import extract_examples, extract_sections
from core.metrics import ResearchMetrics, format_metrics_report
from core.orchestrator import ResearchOrchestrator
from core.probe import EcosystemProbe, detect_workspace_ecosystem

__all__ = [
    # Pipeline
    "ResearchOrchestrator",
    "EcosystemProbe",
    "detect_workspace_ecosystem",
    "SourceAdapter",
    "SourceStep",
    "PartialRecord",
    "build_adapters",
    # Extraction
    "extract_examples",
    "extract_sections",
    # Views
    "build_package_context",
    "format_record_markdown",
    # Errors
    "ResearchError",
    "SourceUnavailableError",
    "LocalToolError",
    "MalformedResponseError",
    # Metrics
    "ResearchMetrics",
    "format_metrics_report",
]
