# ABOUTME: Streamlit component showing the autosave status of the section being written
# ABOUTME: Offers a retry button only once automatic retries are exhausted

import asyncio
import inspect
import streamlit as st
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Union

from writing_assistant.services.autosave_types import AutoSaveSnapshot, AutoSaveStatus

RetryAction = Callable[[], Union[None, Awaitable[Any]]]

STATUS_ICONS = {
    AutoSaveStatus.IDLE: "💾",
    AutoSaveStatus.SAVING: "⏳",
    AutoSaveStatus.SAVED: "✅",
    AutoSaveStatus.RETRYING: "🔄",
    AutoSaveStatus.ERROR: "⚠️",
    AutoSaveStatus.OFFLINE: "📴",
}


def format_last_saved(saved_at: datetime, now: Optional[datetime] = None) -> str:
    """Format a save time relative to now."""
    now = now or datetime.now()
    seconds = int((now - saved_at).total_seconds())
    minutes = seconds // 60
    hours = minutes // 60

    if seconds < 60:
        return "just now"
    if minutes < 60:
        return f"{minutes} min ago"
    if hours < 24:
        return f"{hours} h ago"
    return saved_at.strftime("%b %d, %H:%M")


def status_label(snapshot: AutoSaveSnapshot, now: Optional[datetime] = None) -> str:
    """Get the human readable text for a status snapshot."""
    status = snapshot.status
    if status == AutoSaveStatus.OFFLINE:
        return "Offline - changes kept locally"
    if status == AutoSaveStatus.ERROR:
        return "Save failed"
    if status == AutoSaveStatus.RETRYING:
        return f"Retrying save ({snapshot.retry_count}/{snapshot.max_retries})"
    if status == AutoSaveStatus.SAVING:
        return "Saving..."
    if status == AutoSaveStatus.SAVED and not snapshot.has_unsaved_changes and snapshot.last_saved:
        return f"Saved {format_last_saved(snapshot.last_saved, now)}"
    if snapshot.has_unsaved_changes:
        return "Unsaved changes"
    return "Waiting for changes"


def render_autosave_indicator(
    snapshot: AutoSaveSnapshot,
    on_retry: Optional[RetryAction] = None,
    key: str = "autosave_retry"
) -> bool:
    """
    Render the autosave status line.

    Args:
        snapshot: Current coordinator status
        on_retry: Called when the user clicks the retry button; a coroutine
                  function such as AutoSaveCoordinator.retry is run to completion
        key: Streamlit widget key of the retry button

    Returns:
        True if the retry button was clicked during this run
    """
    text = f"{STATUS_ICONS[snapshot.status]} {status_label(snapshot)}"
    if snapshot.error and snapshot.status in (AutoSaveStatus.ERROR, AutoSaveStatus.RETRYING):
        text += f" ({snapshot.error})"

    if not snapshot.can_retry:
        st.caption(text)
        return False

    col1, col2 = st.columns([4, 1])
    with col1:
        st.error(text)
    with col2:
        clicked = st.button("Retry", key=key)
    if clicked and on_retry is not None:
        result = on_retry()
        if inspect.isawaitable(result):
            asyncio.run(_await(result))
    return clicked


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable
