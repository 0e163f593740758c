"""Pytest configuration, lightweight asyncio support, and shared fixtures.

Async tests are marked ``@pytest.mark.asyncio``. When ``pytest-asyncio`` is
installed it runs them; otherwise the shim below detects coroutine test
functions and executes them on a fresh event loop, so the suite runs with
plain pytest.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, List, Optional

import pytest

from core.chain import PartialRecord, SourceStep
from models import PackageMetadata, ResearchSettings


def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute coroutine test functions on an event loop.

    Returning ``True`` tells pytest the call was handled, preventing the
    default (which would error on an un-awaited coroutine).
    """

    test_obj = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_obj):
        return None
    if pyfuncitem.config.pluginmanager.hasplugin("asyncio"):
        return None

    bound_args = {
        name: value
        for name, value in pyfuncitem.funcargs.items()
        if name in inspect.signature(test_obj).parameters
    }

    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        loop.run_until_complete(test_obj(**bound_args))
    finally:
        loop.close()
        asyncio.set_event_loop(None)

    return True


class StubStep(SourceStep):
    """Chain step with a scripted outcome that counts its calls.

    ``outcome`` may be a PartialRecord, None, an exception instance (raised),
    or a callable taking the accumulated partial.
    """

    def __init__(
        self,
        name: str,
        outcome: Any = None,
        *,
        delay: float = 0.0,
        applies: Optional[Callable[[PartialRecord], bool]] = None,
    ):
        self.name = name
        self.outcome = outcome
        self.delay = delay
        self.calls: List[str] = []
        self._applies = applies

    def applies(self, partial: PartialRecord) -> bool:
        if self._applies is not None:
            return self._applies(partial)
        return super().applies(partial)

    async def attempt(self, package_name: str, partial: PartialRecord) -> Optional[PartialRecord]:
        self.calls.append(package_name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        if callable(self.outcome):
            return self.outcome(partial)
        return self.outcome


def found(name: str, readme: str = "", **metadata: Any) -> PartialRecord:
    """PartialRecord carrying the given metadata fields."""
    return PartialRecord(metadata=PackageMetadata(name=name, **metadata), readme=readme)


@pytest.fixture
def settings() -> ResearchSettings:
    """Settings with local tools disabled and short timeouts."""
    return ResearchSettings(
        http_timeout=2.0,
        tool_timeout=2.0,
        step_timeout=2.0,
        probe_timeout=2.0,
        http_retries=0,
        use_local_tools=False,
    )


@pytest.fixture
def stub_step():
    """Factory for StubStep instances."""
    return StubStep


@pytest.fixture
def partial_found():
    """Factory for PartialRecord results."""
    return found


@pytest.fixture
def mock_http_response():
    """Factory for a successful httpx response mock."""
    from unittest.mock import MagicMock

    def _make(json_data: Any = None, text: str = "", status_code: int = 200):
        response = MagicMock()
        response.status_code = status_code
        response.text = text
        if isinstance(json_data, Exception):
            response.json.side_effect = json_data
        else:
            response.json.return_value = json_data
        return response

    return _make
