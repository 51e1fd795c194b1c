"""One scan cycle: processes and panes in, sorted agent sessions out."""

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Protocol

from rpai import tmux
from rpai.config import Config
from rpai.correlate import find_pane
from rpai.cputree import aggregate_cpu_many
from rpai.matcher import match_agents
from rpai.models import (
    AgentSession,
    PaneInfo,
    ProcessMetrics,
    ProcessSnapshot,
    classify_state,
)
from rpai.monitor import ProcessMonitor

logger = logging.getLogger(__name__)


class ProcessSource(Protocol):
    """What a scan needs from the process table."""

    def list_processes(self) -> list[ProcessSnapshot]: ...

    def relations(self) -> list[tuple[int, int]]: ...

    def cpu_usage(self, pids: Iterable[int]) -> Mapping[int, tuple[float, str]]: ...

    def metrics(self, pid: int) -> ProcessMetrics | None: ...


class SessionRegistry:
    """
    Builds the session list for one scan.

    Each external query fails independently and degrades to an empty or zero
    result; a scan always returns a complete list.
    """

    def __init__(
        self,
        config: Config,
        source: ProcessSource | None = None,
        pane_lister: Callable[[], Mapping[int, PaneInfo]] | None = None,
    ) -> None:
        """
        Initialize the SessionRegistry.

        Args:
            config: Supplies the idle threshold.
            source: Process table access. Defaults to a psutil ProcessMonitor.
            pane_lister: Returns panes keyed by owner pid. Defaults to tmux.
        """
        self._config = config
        self._source = source if source is not None else ProcessMonitor()
        self._list_panes = pane_lister if pane_lister is not None else tmux.list_panes

    def scan(self) -> list[AgentSession]:
        """Run one full scan and return sessions sorted by agent type, then pid."""
        panes = self._list_panes()
        processes = self._source.list_processes()
        matches = match_agents(processes)
        if not matches:
            logger.debug("Scan: %d processes, no agents", len(processes))
            return []

        by_pid = {p.pid: p for p in processes}
        relations = self._source.relations()
        # one CPU reading per pid per scan, shared by overlapping trees
        cpu_by_root = aggregate_cpu_many(
            [m.pid for m in matches], relations, self._source.cpu_usage
        )
        sessions: list[AgentSession] = []

        for match in matches:
            metrics = self._source.metrics(match.pid)
            if metrics is None:
                # exited mid-scan
                continue

            cpu = cpu_by_root[match.pid]
            sessions.append(
                AgentSession(
                    pid=match.pid,
                    parent_pid=match.process.parent_pid,
                    agent_type=match.agent_type,
                    working_dir=metrics.working_dir,
                    pane=find_pane(match.pid, by_pid, panes),
                    uptime_seconds=metrics.uptime_seconds,
                    memory_mb=metrics.memory_bytes // 1024 // 1024,
                    cpu_percent=cpu,
                    state=classify_state(cpu, self._config.idle_threshold),
                    command_line=match.process.full_command_line or match.process.short_name,
                )
            )

        sessions.sort(key=lambda s: s.sort_key)
        logger.debug(
            "Scan: %d processes, %d panes, %d sessions", len(processes), len(panes), len(sessions)
        )
        return sessions
