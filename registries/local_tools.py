"""
Local package-manager tool invocation.

Runs read-only queries (npm view, pip show, gem info) against whatever tools
are installed. A missing tool, non-zero exit, or timeout is a failure signal
for the calling step, never a fatal error.
"""

import asyncio
import logging
import shutil
from typing import Dict, Optional, Sequence

from core.errors import LocalToolError

__all__ = [
    "TOOL_TIMEOUT",
    "find_tool",
    "run_tool",
    "parse_key_value_lines",
    "available_tools",
]

TOOL_TIMEOUT = 20.0

logger = logging.getLogger(__name__)


def find_tool(*candidates: str) -> Optional[str]:
    """Return the path of the first candidate executable on PATH."""
    for candidate in candidates:
        path = shutil.which(candidate)
        if path:
            return path
    return None


def available_tools() -> Dict[str, bool]:
    """Report which package-manager tools are installed."""
    return {
        "npm": find_tool("npm") is not None,
        "pip": find_tool("pip3", "pip") is not None,
        "gem": find_tool("gem") is not None,
    }


async def run_tool(
    candidates: Sequence[str],
    args: Sequence[str],
    *,
    timeout: float = TOOL_TIMEOUT,
) -> str:
    """
    Run the first available tool in ``candidates`` with ``args``.

    Args:
        candidates: Executable names to look up, in preference order
        args: Arguments passed to the tool (never through a shell)
        timeout: Seconds before the process is killed

    Returns:
        Decoded stdout

    Raises:
        LocalToolError: tool missing, timed out, or exited non-zero
    """
    executable = find_tool(*candidates)
    if executable is None:
        raise LocalToolError(f"None of {', '.join(candidates)} is installed")

    label = f"{candidates[0]} {' '.join(args)}"
    logger.debug(f"Running local tool: {label}")

    try:
        process = await asyncio.create_subprocess_exec(
            executable,
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise LocalToolError(f"Could not start {label}: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError as e:
        await _terminate(process)
        raise LocalToolError(f"{label} timed out after {timeout:.1f}s") from e
    except BaseException:
        # Cancelled from outside (probe or step timeout, request cancel)
        await _terminate(process)
        raise

    if process.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip()[:300]
        raise LocalToolError(f"{label} exited with {process.returncode}: {message}")

    return stdout.decode("utf-8", errors="replace")


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """Kill and reap a child that is still running."""
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()


def parse_key_value_lines(output: str) -> Dict[str, str]:
    """
    Parse ``Key: value`` lines into a dict with lower-cased keys.

    Lines without a ``": "`` separator or with an empty value are skipped.
    The first occurrence of a key wins.
    """
    info: Dict[str, str] = {}
    for line in output.splitlines():
        key, sep, value = line.partition(": ")
        if not sep:
            continue
        key = key.strip().lower()
        value = value.strip()
        if key and value and key not in info:
            info[key] = value
    return info
