# ABOUTME: Tests for the autosave status indicator component
# ABOUTME: Streamlit calls are patched so the component renders without a running app

from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest

from writing_assistant.components import autosave_indicator
from writing_assistant.components.autosave_indicator import format_last_saved, status_label
from writing_assistant.config.settings import AutoSaveSettings
from writing_assistant.services.autosave_coordinator import AutoSaveCoordinator
from writing_assistant.services.autosave_types import AutoSaveSnapshot, AutoSaveStatus
from writing_assistant.services.connectivity import ConnectivitySignal
from writing_assistant.tests.conftest import FakeGateway

NOW = datetime(2024, 5, 1, 12, 0, 0)


def make_snapshot(status, **overrides):
    values = dict(
        status=status,
        last_saved=None,
        has_unsaved_changes=False,
        error=None,
        retry_count=0,
        max_retries=3,
        next_retry_at=None,
        is_offline=False
    )
    values.update(overrides)
    return AutoSaveSnapshot(**values)


@pytest.mark.parametrize("delta, expected", [
    (timedelta(seconds=5), "just now"),
    (timedelta(minutes=5), "5 min ago"),
    (timedelta(hours=3), "3 h ago"),
    (timedelta(days=2), "Apr 29, 12:00"),
])
def test_format_last_saved(delta, expected):
    assert format_last_saved(NOW - delta, NOW) == expected


def test_status_labels_distinguish_every_status():
    labels = {
        status_label(make_snapshot(AutoSaveStatus.IDLE), NOW),
        status_label(make_snapshot(AutoSaveStatus.IDLE, has_unsaved_changes=True), NOW),
        status_label(make_snapshot(AutoSaveStatus.SAVING), NOW),
        status_label(make_snapshot(AutoSaveStatus.SAVED, last_saved=NOW), NOW),
        status_label(make_snapshot(AutoSaveStatus.RETRYING, retry_count=1), NOW),
        status_label(make_snapshot(AutoSaveStatus.ERROR), NOW),
        status_label(make_snapshot(AutoSaveStatus.OFFLINE, is_offline=True), NOW),
    }
    assert len(labels) == 7


def test_retrying_label_shows_progress():
    snapshot = make_snapshot(AutoSaveStatus.RETRYING, retry_count=2)
    assert status_label(snapshot) == "Retrying save (2/3)"


@patch.object(autosave_indicator, "st")
def test_render_without_error_shows_caption_only(mock_st):
    snapshot = make_snapshot(AutoSaveStatus.SAVED, last_saved=datetime.now())

    clicked = autosave_indicator.render_autosave_indicator(snapshot)

    assert clicked is False
    mock_st.caption.assert_called_once()
    assert "Saved just now" in mock_st.caption.call_args[0][0]
    mock_st.button.assert_not_called()


@patch.object(autosave_indicator, "st")
def test_render_error_offers_retry(mock_st):
    mock_st.columns.return_value = (MagicMock(), MagicMock())
    mock_st.button.return_value = True
    on_retry = MagicMock(return_value=None)
    snapshot = make_snapshot(AutoSaveStatus.ERROR, error="server error", retry_count=3, has_unsaved_changes=True)

    clicked = autosave_indicator.render_autosave_indicator(snapshot, on_retry=on_retry)

    assert clicked is True
    on_retry.assert_called_once()
    assert "server error" in mock_st.error.call_args[0][0]


@patch.object(autosave_indicator, "st")
def test_render_error_runs_coordinator_retry(mock_st):
    mock_st.columns.return_value = (MagicMock(), MagicMock())
    mock_st.button.return_value = True
    gateway = FakeGateway()
    coordinator = AutoSaveCoordinator(
        save=gateway,
        settings=AutoSaveSettings(_env_file=None, delay_ms=10, retry_delay_ms=10),
        connectivity=ConnectivitySignal()
    )
    coordinator.observe("kept edit", False)
    snapshot = make_snapshot(AutoSaveStatus.ERROR, error="server error", retry_count=3, has_unsaved_changes=True)

    autosave_indicator.render_autosave_indicator(snapshot, on_retry=coordinator.retry)

    assert gateway.calls == [("kept edit", False)]
    assert coordinator.get_status().status == AutoSaveStatus.SAVED
    coordinator.dispose()
