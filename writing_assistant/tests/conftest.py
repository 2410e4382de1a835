# ABOUTME: Shared fixtures for the autosave test suites
# ABOUTME: Provides a scripted fake persistence gateway, fast settings and an isolated connectivity signal

import asyncio
from typing import List, Optional, Tuple

import pytest

from writing_assistant.config.settings import AutoSaveSettings
from writing_assistant.services.autosave_types import SaveResult
from writing_assistant.services.connectivity import ConnectivitySignal


class FakeGateway:
    """Scripted save function recording every call with its loop time."""

    def __init__(self, fail_times: int = 0, always_fail: bool = False, raise_errors: bool = False):
        self.fail_times = fail_times
        self.always_fail = always_fail
        self.raise_errors = raise_errors
        self.calls: List[Tuple[str, bool]] = []
        self.call_times: List[float] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.gate: Optional[asyncio.Event] = None

    async def __call__(self, content: str, is_completed: bool) -> SaveResult:
        self.calls.append((content, is_completed))
        self.call_times.append(asyncio.get_running_loop().time())
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)

            failing = self.always_fail or len(self.calls) <= self.fail_times
            if failing:
                if self.raise_errors:
                    raise ConnectionError("network unreachable")
                return SaveResult(success=False, error="server error")
            return SaveResult(success=True)
        finally:
            self.in_flight -= 1


@pytest.fixture
def fast_settings():
    """Millisecond-scale settings so timing tests finish quickly."""
    return AutoSaveSettings(delay_ms=50, max_retries=3, retry_delay_ms=30, enabled=True)


@pytest.fixture
def connectivity():
    return ConnectivitySignal(initially_online=True)


@pytest.fixture
def gateway():
    return FakeGateway()
