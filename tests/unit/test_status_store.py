"""Tests for the StatusStore log ring and scan sessions."""

import pytest

from ecoscan.orchestrator.errors import SessionBusy
from ecoscan.services.status_store import MAX_LOGS, MAX_SESSIONS, StatusStore

pytestmark = pytest.mark.unit


def test_log_ring_is_bounded():
    status = StatusStore()
    for i in range(MAX_LOGS + 25):
        status.log(f"line {i}")
    assert len(status.logs) == MAX_LOGS
    assert status.logs[-1] == f"line {MAX_LOGS + 24}"


def test_start_session_generates_id():
    status = StatusStore()
    a, b = status.start_session(), status.start_session()
    assert a.session_id != b.session_id
    assert len(a.session_id) == 8


def test_start_session_is_idempotent_for_given_id():
    status = StatusStore()
    assert status.start_session("s1") is status.start_session("s1")


def test_begin_scan_twice_is_busy():
    status = StatusStore()
    session = status.begin_scan("s1")
    with pytest.raises(SessionBusy):
        status.begin_scan("s1")
    status.end_scan(session)
    status.begin_scan("s1")


def test_cancel_only_applies_to_running_scan():
    status = StatusStore()
    assert not status.cancel_session("missing")
    session = status.begin_scan("s1")
    assert status.cancel_session("s1")
    assert session.cancelled
    status.end_scan(session)
    assert not status.cancel_session("s1")


def test_session_map_is_bounded():
    status = StatusStore()
    for i in range(MAX_SESSIONS * 4):
        status.end_scan(status.begin_scan(f"s{i}"))
    assert len(status.sessions) == MAX_SESSIONS
    assert f"s{MAX_SESSIONS * 4 - 1}" in status.sessions
    assert "s0" not in status.sessions


def test_eviction_keeps_in_flight_sessions():
    status = StatusStore()
    running = status.begin_scan("running")
    for i in range(MAX_SESSIONS * 2):
        status.start_session(f"idle{i}")
    assert status.sessions["running"] is running
    assert status.cancel_session("running")


def test_active_sessions_counts_busy_only():
    status = StatusStore()
    status.start_session("idle")
    status.begin_scan("s1")
    status.begin_scan("s2")
    assert status.active_sessions() == 2
