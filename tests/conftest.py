"""Shared fixtures for rpai tests."""

from collections.abc import Iterable

import pytest

from rpai.models import (
    AgentSession,
    AgentType,
    PaneInfo,
    ProcessMetrics,
    ProcessSnapshot,
    SessionState,
)


def make_session(
    pid: int,
    agent_type: AgentType = AgentType.CLAUDE,
    session_name: str | None = None,
    cpu_percent: float = 0.0,
    state: SessionState = SessionState.WAITING,
) -> AgentSession:
    """Build an AgentSession with sensible defaults."""
    pane = None
    if session_name is not None:
        pane = PaneInfo(
            pane_id=f"%{pid}",
            session_name=session_name,
            window_index=0,
            width=80,
            height=24,
        )
    return AgentSession(
        pid=pid,
        parent_pid=1,
        agent_type=agent_type,
        working_dir=f"/home/dev/project{pid}",
        pane=pane,
        uptime_seconds=120,
        memory_mb=200,
        cpu_percent=cpu_percent,
        state=state,
        command_line=agent_type.value.lower(),
    )


class FakeProcessSource:
    """In-memory process table implementing the registry's ProcessSource."""

    def __init__(
        self,
        processes: list[ProcessSnapshot],
        cpu: dict[int, float] | None = None,
        missing_metrics: Iterable[int] = (),
    ) -> None:
        self.processes = processes
        self.cpu = cpu or {}
        self.missing_metrics = set(missing_metrics)
        self.metrics_calls: list[int] = []
        self.usage_calls: list[list[int]] = []

    def list_processes(self) -> list[ProcessSnapshot]:
        return list(self.processes)

    def relations(self) -> list[tuple[int, int]]:
        return [(p.pid, p.parent_pid) for p in self.processes]

    def cpu_usage(self, pids: Iterable[int]) -> dict[int, tuple[float, str]]:
        pids = list(pids)
        self.usage_calls.append(pids)
        by_pid = {p.pid: p for p in self.processes}
        return {
            pid: (self.cpu.get(pid, 0.0), by_pid[pid].full_command_line or by_pid[pid].short_name)
            for pid in pids
            if pid in by_pid
        }

    def metrics(self, pid: int) -> ProcessMetrics | None:
        self.metrics_calls.append(pid)
        if pid in self.missing_metrics:
            return None
        return ProcessMetrics(
            memory_bytes=256 * 1024 * 1024,
            working_dir=f"/work/{pid}",
            uptime_seconds=90,
        )


def proc(pid: int, parent_pid: int, name: str, cmdline: str | None = None) -> ProcessSnapshot:
    """Shorthand for an enumerated ProcessSnapshot."""
    return ProcessSnapshot(
        pid=pid,
        parent_pid=parent_pid,
        short_name=name,
        full_command_line=cmdline if cmdline is not None else name,
    )


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Point RPAI_CONFIG at a temporary file."""
    path = tmp_path / "config.yaml"
    monkeypatch.setenv("RPAI_CONFIG", str(path))
    return path
