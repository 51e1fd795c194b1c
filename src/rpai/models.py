"""Data models for rpai."""

from dataclasses import dataclass
from enum import Enum


@dataclass(slots=True, frozen=True)
class ProcessSnapshot:
    """Immutable snapshot of a process as seen by one scan."""

    pid: int
    parent_pid: int
    short_name: str
    full_command_line: str | None = None
    working_dir: str | None = None
    cpu_percent: float = 0.0
    memory_bytes: int = 0
    uptime_seconds: int = 0


@dataclass(slots=True, frozen=True)
class ProcessMetrics:
    """Targeted per-pid metrics, fetched only for matched agents."""

    memory_bytes: int
    working_dir: str | None
    uptime_seconds: int


@dataclass(slots=True, frozen=True)
class PaneInfo:
    """A tmux pane and its position."""

    pane_id: str
    session_name: str
    window_index: int
    width: int
    height: int
    pane_index: int = 0

    @property
    def target(self) -> str:
        """tmux target string, e.g. ``work:2.0``."""
        return f"{self.session_name}:{self.window_index}.{self.pane_index}"


class AgentType(Enum):
    """Known coding-agent tools."""

    OPENCODE = "OpenCode"
    CLAUDE = "Claude"
    CODEX = "Codex"
    CURSOR = "Cursor"
    GEMINI = "Gemini"
    UNKNOWN = "Unknown"


class SessionState(Enum):
    """Whether an agent is computing or waiting for input."""

    RUNNING = "Running"
    WAITING = "Waiting"


def classify_state(cpu_percent: float, idle_threshold: float) -> SessionState:
    """Running iff the aggregated CPU is strictly above the threshold."""
    if cpu_percent > idle_threshold:
        return SessionState.RUNNING
    return SessionState.WAITING


@dataclass(slots=True, frozen=True)
class AgentSession:
    """One root agent process, assembled by a single scan."""

    pid: int
    parent_pid: int
    agent_type: AgentType
    working_dir: str | None
    pane: PaneInfo | None
    uptime_seconds: int
    memory_mb: int
    cpu_percent: float
    state: SessionState
    command_line: str = ""

    @property
    def sort_key(self) -> tuple[str, int]:
        return (self.agent_type.value, self.pid)
