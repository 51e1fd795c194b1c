"""Recognise coding-agent processes in a process snapshot."""

from collections.abc import Iterable
from dataclasses import dataclass

from rpai.models import AgentType, ProcessSnapshot

# Evaluated in order; order only matters when two names start at the same index.
AGENT_RULES: tuple[tuple[str, AgentType], ...] = (
    ("opencode", AgentType.OPENCODE),
    ("claude", AgentType.CLAUDE),
    ("codex", AgentType.CODEX),
    ("cursor", AgentType.CURSOR),
    ("gemini", AgentType.GEMINI),
)

# System processes whose names happen to contain an agent name.
DENYLIST: tuple[str, ...] = ("cursoruiviewservice",)


@dataclass(slots=True, frozen=True)
class AgentMatch:
    """A process recognised as an agent."""

    pid: int
    agent_type: AgentType
    process: ProcessSnapshot


def agent_type_for(text: str) -> AgentType | None:
    """Agent whose name occurs leftmost in text, or None."""
    lowered = text.lower()
    best: tuple[int, AgentType] | None = None
    for needle, agent_type in AGENT_RULES:
        index = lowered.find(needle)
        if index != -1 and (best is None or index < best[0]):
            best = (index, agent_type)
    return best[1] if best else None


def _is_denied(*fields: str) -> bool:
    return any(denied in field for field in fields for denied in DENYLIST)


def _classify(process: ProcessSnapshot) -> AgentType | None:
    name = process.short_name.lower()
    command = (process.full_command_line or "").lower()
    if _is_denied(name, command):
        return None
    if not any(needle in name or needle in command for needle, _ in AGENT_RULES):
        return None
    return agent_type_for(command) or agent_type_for(name) or AgentType.UNKNOWN


def match_agents(processes: Iterable[ProcessSnapshot]) -> list[AgentMatch]:
    """
    Find root agent processes.

    A process matches when its short name or command line contains a known
    agent name (case-insensitive) and it is not denylisted. Matches whose
    parent is also a match are dropped, so an agent that re-spawns itself is
    reported once.
    """
    candidates: list[AgentMatch] = []
    for process in processes:
        agent_type = _classify(process)
        if agent_type is not None:
            candidates.append(AgentMatch(process.pid, agent_type, process))

    candidate_pids = {match.pid for match in candidates}
    return [m for m in candidates if m.process.parent_pid not in candidate_pids]
