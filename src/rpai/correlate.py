"""Map agent pids to the tmux pane that owns them."""

from collections.abc import Mapping

from rpai.models import PaneInfo, ProcessSnapshot

MAX_HOPS = 25


def find_pane(
    pid: int,
    processes: Mapping[int, ProcessSnapshot],
    panes: Mapping[int, PaneInfo],
    max_hops: int = MAX_HOPS,
) -> PaneInfo | None:
    """
    Walk up the parent chain from pid until a pane owner is found.

    tmux only reports a pane's direct process (usually a shell), so an agent
    started from that shell is found by its ancestors. Stops at pid 0/1, at a
    parent missing from ``processes``, or after ``max_hops`` parents.
    """
    current = pid
    if current in panes:
        return panes[current]

    for _ in range(max_hops):
        process = processes.get(current)
        if process is None:
            return None
        parent = process.parent_pid
        if parent in (0, 1) or parent == current:
            return None
        current = parent
        if current in panes:
            return panes[current]

    return None
