# ABOUTME: Debounced autosave coordinator for the section currently being edited.
# ABOUTME: Persists (content, is_completed) through an injected save function with retry, backoff and offline handling.

import asyncio
import logging
import dataclasses
from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Optional, Set

from writing_assistant.config.settings import AutoSaveSettings, settings as default_settings
from writing_assistant.services.autosave_types import (
    AutoSaveSnapshot,
    AutoSaveStatus,
    CoordinatorState,
    DEFAULT_SAVE_ERROR,
    OFFLINE_MESSAGE,
    SaveAttempt,
    SaveOutcome,
    SaveResult,
    SaveTrigger,
    WatchedValue,
)
from writing_assistant.services.connectivity import ConnectivitySignal, get_connectivity_signal

logger = logging.getLogger(__name__)

SaveFunction = Callable[[str, bool], Awaitable[Optional[SaveResult]]]
SnapshotListener = Callable[[AutoSaveSnapshot], None]


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class AutoSaveCoordinator:
    """
    Watches one section's (content, is_completed) pair and makes sure the latest
    value eventually reaches persistence.

    Edits are debounced, at most one save is in flight at a time, failed saves are
    retried with linear backoff up to ``max_retries`` and nothing is sent while the
    connectivity signal reports offline. All gateway failures are reported through
    the coordinator state; nothing is raised to callers.
    """

    def __init__(
        self,
        save: SaveFunction,
        settings: Optional[AutoSaveSettings] = None,
        connectivity: Optional[ConnectivitySignal] = None,
        initial_content: str = "",
        initial_completed: bool = False,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize the coordinator.

        Args:
            save: Async persistence gateway called as ``save(content, is_completed)``.
                  It may return a SaveResult or raise; returning None counts as success.
            settings: Timing configuration, defaults to the environment settings
            connectivity: Online/offline signal, defaults to the process-wide one
            initial_content: Content already persisted when editing starts
            initial_completed: Completion flag already persisted when editing starts
            clock: Source of timestamps for status reporting
        """
        self._save = save
        self.settings = settings or default_settings
        self.connectivity = connectivity or get_connectivity_signal()
        self._clock = clock or datetime.now

        initial = WatchedValue(initial_content, initial_completed)
        offline = not self.connectivity.is_online
        self._current = initial
        self._state = CoordinatorState(
            status=AutoSaveStatus.OFFLINE if offline else AutoSaveStatus.IDLE,
            last_synced_value=initial,
            is_offline=offline,
            last_error=OFFLINE_MESSAGE if offline else None
        )

        # Debounce and retry share one timer slot; scheduling either cancels the other
        self._timer: Optional[asyncio.TimerHandle] = None
        self._lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()
        self._listeners: List[SnapshotListener] = []
        self._disposed = False
        self._unsubscribe = self.connectivity.subscribe(self._handle_connectivity_change)

    # --- Public API ---

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    @property
    def max_retries(self) -> int:
        return self.settings.max_retries

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def current_value(self) -> WatchedValue:
        return self._current

    @property
    def state(self) -> CoordinatorState:
        """A copy of the internal state record."""
        return dataclasses.replace(self._state)

    def get_status(self) -> AutoSaveSnapshot:
        """Get the status projection rendered by the UI."""
        return AutoSaveSnapshot(
            status=self._state.status,
            last_saved=self._state.last_saved_at,
            has_unsaved_changes=self._state.has_unsaved_changes,
            error=self._state.last_error,
            retry_count=self._state.retry_count,
            max_retries=self.max_retries,
            next_retry_at=self._state.next_retry_at,
            is_offline=self._state.is_offline,
            is_saving=self._state.is_saving
        )

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Subscribe to status snapshots. Returns a callable that unsubscribes."""
        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def observe(self, content: str, is_completed: bool):
        """
        Record the latest value of the watched section.

        Called on every edit with the full current value. A value different from the
        last synced one restarts the debounce window.
        """
        if self._disposed or not self.enabled:
            return

        value = WatchedValue(content, is_completed)
        self._current = value
        if value == self._state.last_synced_value:
            return

        loop = _running_loop()
        self._cancel_timer()
        offline = self._state.is_offline
        self._update(
            status=AutoSaveStatus.OFFLINE if offline else AutoSaveStatus.IDLE,
            has_unsaved_changes=True,
            retry_count=0,
            last_error=OFFLINE_MESSAGE if offline else None,
            next_retry_at=None
        )
        if loop is None:
            # Synchronous callers (e.g. a Streamlit rerun) persist through save_now()
            logger.warning("No running event loop, edit kept until the next explicit save")
            return
        self._timer = loop.call_later(self.settings.delay_seconds, self._fire, SaveTrigger.AUTO)

    async def save_now(self) -> Optional[SaveAttempt]:
        """
        Save the most recently observed value immediately, bypassing the debounce.

        Returns:
            The completed attempt, or None when the coordinator is disabled or disposed.
        """
        if self._disposed or not self.enabled:
            return None
        self._cancel_timer()
        return await self._run_attempt(SaveTrigger.MANUAL)

    async def retry(self) -> Optional[SaveAttempt]:
        """Retry saving regardless of how many automatic retries were used."""
        if self._disposed or not self.enabled:
            return None
        self._cancel_timer()
        return await self._run_attempt(SaveTrigger.RETRY)

    def dispose(self):
        """
        Tear down the coordinator.

        Cancels timers and the connectivity subscription. Unsaved changes get one
        best-effort save that the caller does not await.
        """
        if self._disposed:
            return
        self._disposed = True
        self._cancel_timer()
        self._unsubscribe()

        if self._state.has_unsaved_changes and self.enabled:
            logger.info("Flushing unsaved section changes on dispose")
            try:
                self._spawn(self._run_attempt(SaveTrigger.RETRY, only_if_unsaved=True, final=True))
            except RuntimeError:
                logger.warning("No running event loop, unsaved section changes were not flushed")

    # --- Scheduling ---

    def _schedule(self, delay: float, trigger: SaveTrigger):
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._fire, trigger)

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, trigger: SaveTrigger):
        self._timer = None
        self._spawn(self._run_attempt(trigger, only_if_unsaved=True))

    def _spawn(self, coro) -> asyncio.Task:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            raise
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # --- Save procedure ---

    async def _run_attempt(
        self,
        trigger: SaveTrigger,
        only_if_unsaved: bool = False,
        final: bool = False
    ) -> Optional[SaveAttempt]:
        # A timer that fires while a save is in flight waits here and then
        # saves whatever value is newest at that point.
        async with self._lock:
            if self._disposed and not final:
                return None
            if only_if_unsaved and not self._state.has_unsaved_changes:
                return None
            return await self._attempt(trigger)

    async def _attempt(self, trigger: SaveTrigger) -> SaveAttempt:
        value = self._current
        attempt = SaveAttempt(trigger=trigger, value=value, timestamp=self._clock())

        if self._state.is_offline:
            logger.info("Offline, postponing section save until the connection returns")
            self._update(
                status=AutoSaveStatus.OFFLINE,
                is_saving=False,
                last_error=OFFLINE_MESSAGE,
                next_retry_at=None
            )
            attempt.outcome = SaveOutcome.FAILURE
            attempt.error = OFFLINE_MESSAGE
            return attempt

        self._update(
            status=AutoSaveStatus.RETRYING if trigger == SaveTrigger.RETRY else AutoSaveStatus.SAVING,
            is_saving=True,
            last_error=None,
            next_retry_at=None
        )

        try:
            result = await self._save(value.content, value.is_completed)
        except Exception as e:
            logger.error(f"Section save error ({trigger.value}): {e}")
            result = SaveResult(success=False, error=str(e) or DEFAULT_SAVE_ERROR)

        if result is None or result.success:
            attempt.outcome = SaveOutcome.SUCCESS
            self._handle_success(value)
        else:
            attempt.outcome = SaveOutcome.FAILURE
            attempt.error = result.error or DEFAULT_SAVE_ERROR
            self._handle_failure(attempt.error)
        return attempt

    def _handle_success(self, value: WatchedValue):
        has_unsaved = self._current != value
        logger.debug(f"Section saved ({len(value.content)} chars, completed={value.is_completed})")
        self._update(
            status=AutoSaveStatus.OFFLINE if self._state.is_offline else AutoSaveStatus.SAVED,
            is_saving=False,
            last_synced_value=value,
            has_unsaved_changes=has_unsaved,
            retry_count=0,
            last_saved_at=self._clock(),
            last_error=OFFLINE_MESSAGE if self._state.is_offline else None,
            next_retry_at=None
        )

    def _handle_failure(self, error: str):
        next_count = self._state.retry_count + 1
        should_retry = next_count <= self.max_retries and not self._disposed
        next_retry_at = None

        if should_retry and self._state.is_offline:
            # Went offline mid-flight; the attempt still counts and the reconnect flush retries
            logger.warning(f"Section save failed while offline: {error}")
            self._update(
                status=AutoSaveStatus.OFFLINE,
                is_saving=False,
                last_error=OFFLINE_MESSAGE,
                retry_count=next_count,
                next_retry_at=None
            )
            return

        if should_retry:
            # Replaces any pending timer, including the debounce of an edit made mid-flight;
            # the retry saves that newer value
            delay = self.settings.retry_delay_seconds * next_count
            next_retry_at = self._clock() + timedelta(seconds=delay)
            logger.warning(
                f"Section save failed: {error}. Retry {next_count}/{self.max_retries} in {delay:.1f}s"
            )
            self._cancel_timer()
            self._schedule(delay, SaveTrigger.RETRY)
        else:
            logger.error(f"Section save failed after {self.max_retries} retries: {error}")

        self._update(
            status=AutoSaveStatus.RETRYING if should_retry else AutoSaveStatus.ERROR,
            is_saving=False,
            last_error=error,
            retry_count=min(next_count, self.max_retries),
            next_retry_at=next_retry_at
        )

    # --- Connectivity ---

    def _handle_connectivity_change(self, online: bool):
        if self._disposed:
            return

        if not online:
            self._cancel_timer()
            self._update(
                is_offline=True,
                status=AutoSaveStatus.OFFLINE,
                last_error=OFFLINE_MESSAGE,
                next_retry_at=None
            )
            return

        if self._state.has_unsaved_changes:
            self._update(is_offline=False, status=AutoSaveStatus.IDLE, last_error=None)
            if self.enabled:
                self._cancel_timer()
                self._spawn(self._run_attempt(SaveTrigger.RETRY, only_if_unsaved=True))
        else:
            self._update(
                is_offline=False,
                status=AutoSaveStatus.SAVED if self._state.last_saved_at else AutoSaveStatus.IDLE,
                last_error=None
            )

    # --- State updates ---

    def _update(self, **changes):
        for key, value in changes.items():
            setattr(self._state, key, value)

        snapshot = self.get_status()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Autosave status listener failed: {e}")
