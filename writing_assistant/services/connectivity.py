# ABOUTME: Process-wide online/offline signal observed by autosave coordinators.
# ABOUTME: Includes an httpx health-check poller that drives the signal outside a browser.

import asyncio
import logging
from typing import Callable, List, Optional

import httpx

from writing_assistant.config.settings import AutoSaveSettings

logger = logging.getLogger(__name__)

ConnectivityListener = Callable[[bool], None]


class ConnectivitySignal:
    """Subscribable online/offline state shared by every coordinator in the process."""

    def __init__(self, initially_online: bool = True):
        self._online = initially_online
        self._listeners: List[ConnectivityListener] = []

    @property
    def is_online(self) -> bool:
        return self._online

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        """
        Register a listener called with the new online flag on every transition.

        Returns:
            A callable that removes the listener. Calling it twice is harmless.
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_online(self, online: bool):
        """Update the state and notify listeners if it changed."""
        if online == self._online:
            return
        self._online = online
        logger.info(f"Connectivity changed: {'online' if online else 'offline'}")

        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            try:
                listener(online)
            except Exception as e:
                logger.error(f"Connectivity listener failed: {e}")


_default_signal: Optional[ConnectivitySignal] = None


def get_connectivity_signal() -> ConnectivitySignal:
    """Get the process-wide connectivity signal, creating it on first use."""
    global _default_signal
    if _default_signal is None:
        _default_signal = ConnectivitySignal()
    return _default_signal


class HealthCheckPoller:
    """Polls a health endpoint and reports reachability to a ConnectivitySignal."""

    def __init__(
        self,
        signal: ConnectivitySignal,
        url: str,
        interval_seconds: float = 15.0,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the poller.

        Args:
            signal: Signal to update
            url: Health endpoint; any response below 500 counts as online
            interval_seconds: Pause between checks
            timeout_seconds: Per-request timeout
            transport: Optional httpx transport (used by tests)
        """
        self.signal = signal
        self.url = url
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, signal: ConnectivitySignal, settings: AutoSaveSettings) -> "HealthCheckPoller":
        """Build a poller from the AUTOSAVE_HEALTH_CHECK_* settings."""
        if not settings.health_check_url:
            raise ValueError("Missing required environment variable: AUTOSAVE_HEALTH_CHECK_URL")
        return cls(
            signal,
            settings.health_check_url,
            interval_seconds=settings.health_check_interval_seconds
        )

    async def check_once(self) -> bool:
        """Run a single health check and update the signal."""
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
            try:
                response = await client.get(self.url)
                online = response.status_code < 500
            except httpx.RequestError as e:
                logger.debug(f"Health check to {self.url} failed: {e}")
                online = False
        self.signal.set_online(online)
        return online

    async def _run(self):
        while True:
            try:
                await self.check_once()
            except Exception as e:
                logger.error(f"Health check of {self.url} errored: {e}")
            await asyncio.sleep(self.interval_seconds)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        """Start polling in the background on the running event loop."""
        if self.is_running:
            return
        logger.info(f"Starting health check polling of {self.url} every {self.interval_seconds}s")
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self):
        """Stop polling and wait for the background task to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
