"""CPU usage of an agent's whole process tree."""

import logging
from collections import deque
from collections.abc import Callable, Iterable, Mapping

import psutil

logger = logging.getLogger(__name__)

# Long-lived language servers started by agents; their CPU is not agent work.
HELPER_PROCESS_NAMES: tuple[str, ...] = (
    "pyright-langserver",
    "basedpyright-langserver",
    "typescript-language-server",
    "tsserver",
    "vscode-json-language-server",
    "vscode-eslint-language-server",
    "gopls",
    "rust-analyzer",
    "clangd",
    "pylsp",
    "jedi-language-server",
    "lua-language-server",
    "bash-language-server",
    "yaml-language-server",
)

UsageQuery = Callable[[Iterable[int]], Mapping[int, tuple[float, str]]]


def is_helper(command_line: str) -> bool:
    """True if the command line belongs to a known helper process."""
    lowered = command_line.lower()
    return any(name in lowered for name in HELPER_PROCESS_NAMES)


def build_children(relations: Iterable[tuple[int, int]]) -> dict[int, list[int]]:
    """Parent -> children adjacency map from ``(pid, parent_pid)`` pairs."""
    children: dict[int, list[int]] = {}
    for pid, parent_pid in relations:
        if pid == parent_pid:
            continue
        children.setdefault(parent_pid, []).append(pid)
    return children


def collect_subtree(root: int, children: Mapping[int, list[int]]) -> list[int]:
    """Root plus all transitive descendants, breadth-first."""
    seen = {root}
    order = [root]
    queue = deque([root])
    while queue:
        pid = queue.popleft()
        for child in children.get(pid, ()):
            if child not in seen:
                seen.add(child)
                order.append(child)
                queue.append(child)
    return order


def aggregate_cpu(
    root: int,
    relations: Iterable[tuple[int, int]],
    usage: UsageQuery,
) -> float:
    """
    Sum of CPU percent over root and its descendants, minus helper processes.

    Args:
        root: Pid of the agent process.
        relations: ``(pid, parent_pid)`` pairs describing the process table.
        usage: Returns ``{pid: (cpu_percent, command_line)}`` for given pids.

    Returns:
        Aggregated CPU percent; 0.0 if the usage query fails.
    """
    return aggregate_cpu_many([root], relations, usage)[root]


def aggregate_cpu_many(
    roots: Iterable[int],
    relations: Iterable[tuple[int, int]],
    usage: UsageQuery,
) -> dict[int, float]:
    """
    Subtree CPU for several roots from a single usage query.

    psutil resets a process's CPU baseline each time it is read, so trees
    that overlap (an agent started below another agent) must share one
    reading per pid.
    """
    children = build_children(relations)
    subtrees = {root: collect_subtree(root, children) for root in roots}
    wanted = list(dict.fromkeys(pid for subtree in subtrees.values() for pid in subtree))
    if not wanted:
        return {}

    try:
        samples = usage(wanted)
    except (psutil.Error, OSError) as exc:
        logger.warning("CPU query for %d processes failed: %s", len(wanted), exc)
        return {root: 0.0 for root in subtrees}

    return {root: _subtree_total(root, subtree, samples) for root, subtree in subtrees.items()}


def _subtree_total(
    root: int, subtree: list[int], samples: Mapping[int, tuple[float, str]]
) -> float:
    total = 0.0
    for pid in subtree:
        sample = samples.get(pid)
        if sample is None:
            continue
        cpu, command_line = sample
        if pid != root and is_helper(command_line):
            continue
        total += cpu
    return total
