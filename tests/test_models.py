"""Tests for rpai data models."""

from rpai.models import (
    AgentType,
    PaneInfo,
    ProcessSnapshot,
    SessionState,
    classify_state,
)

from conftest import make_session


def test_process_snapshot_defaults():
    """Test ProcessSnapshot metric fields default to empty values."""
    snapshot = ProcessSnapshot(pid=123, parent_pid=1, short_name="claude")

    assert snapshot.full_command_line is None
    assert snapshot.working_dir is None
    assert snapshot.cpu_percent == 0.0
    assert snapshot.memory_bytes == 0
    assert snapshot.uptime_seconds == 0


def test_process_snapshot_is_frozen():
    """Test that ProcessSnapshot is immutable (frozen)."""
    snapshot = ProcessSnapshot(pid=1, parent_pid=0, short_name="init")

    try:
        snapshot.pid = 999
        raise AssertionError("Should have raised FrozenInstanceError")
    except AttributeError:
        pass


def test_process_snapshot_uses_slots():
    """Test that ProcessSnapshot uses __slots__."""
    snapshot = ProcessSnapshot(pid=1, parent_pid=0, short_name="init")

    assert not hasattr(snapshot, "__dict__")


def test_pane_target():
    """Test PaneInfo renders a session:window.pane target."""
    pane = PaneInfo(
        pane_id="%7", session_name="work", window_index=2, width=80, height=24, pane_index=1
    )

    assert pane.target == "work:2.1"


class TestClassifyState:
    """Tests for the Running/Waiting decision."""

    def test_above_threshold_is_running(self):
        assert classify_state(3.1, 3.0) is SessionState.RUNNING

    def test_below_threshold_is_waiting(self):
        assert classify_state(1.0, 3.0) is SessionState.WAITING

    def test_equal_to_threshold_is_waiting(self):
        """Test the boundary: Running requires strictly more CPU than the threshold."""
        assert classify_state(3.0, 3.0) is SessionState.WAITING

    def test_zero_threshold(self):
        assert classify_state(0.0, 0.0) is SessionState.WAITING
        assert classify_state(0.1, 0.0) is SessionState.RUNNING


class TestAgentType:
    """Tests for AgentType enum."""

    def test_agent_type_members(self):
        """Test AgentType is the closed set of known tools plus Unknown."""
        assert [t.value for t in AgentType] == [
            "OpenCode",
            "Claude",
            "Codex",
            "Cursor",
            "Gemini",
            "Unknown",
        ]

    def test_session_sort_key(self):
        """Test sessions sort by agent type name, then pid."""
        sessions = [
            make_session(30, AgentType.OPENCODE),
            make_session(20, AgentType.CLAUDE),
            make_session(10, AgentType.CODEX),
            make_session(5, AgentType.CLAUDE),
        ]

        ordered = sorted(sessions, key=lambda s: s.sort_key)

        assert [(s.agent_type, s.pid) for s in ordered] == [
            (AgentType.CLAUDE, 5),
            (AgentType.CLAUDE, 20),
            (AgentType.CODEX, 10),
            (AgentType.OPENCODE, 30),
        ]
