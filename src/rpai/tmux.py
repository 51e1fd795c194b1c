"""
tmux integration for rpai.

Lists panes with their owning pid and moves the user to a pane, either by
switching the current client (when already inside tmux) or by replacing this
process with ``tmux attach-session``.
"""

import logging
import os
import subprocess

from rpai.errors import ExternalToolFailure
from rpai.models import PaneInfo

logger = logging.getLogger(__name__)

TMUX_TIMEOUT = 5.0

PANE_FORMAT = "\t".join(
    [
        "#{pane_pid}",
        "#{pane_id}",
        "#{session_name}",
        "#{window_index}",
        "#{pane_index}",
        "#{pane_width}",
        "#{pane_height}",
    ]
)


def inside_tmux() -> bool:
    """True when this process runs inside a tmux client."""
    return bool(os.environ.get("TMUX"))


def parse_panes(output: str) -> dict[int, PaneInfo]:
    """Parse ``list-panes`` output produced with PANE_FORMAT."""
    panes: dict[int, PaneInfo] = {}
    for line in output.splitlines():
        parts = line.split("\t")
        if len(parts) < 7:
            continue
        try:
            owner = int(parts[0])
            panes[owner] = PaneInfo(
                pane_id=parts[1],
                session_name=parts[2],
                window_index=int(parts[3]),
                pane_index=int(parts[4]),
                width=int(parts[5]),
                height=int(parts[6]),
            )
        except ValueError:
            logger.debug("Skipping malformed pane line: %r", line)
            continue
    return panes


def list_panes() -> dict[int, PaneInfo]:
    """
    All panes on the tmux server, keyed by the pid of the pane's process.

    Returns an empty dict when tmux is not installed or no server is running.
    """
    try:
        result = subprocess.run(
            ["tmux", "list-panes", "-a", "-F", PANE_FORMAT],
            capture_output=True,
            text=True,
            timeout=TMUX_TIMEOUT,
        )
    except (subprocess.SubprocessError, OSError) as exc:
        logger.debug("tmux list-panes failed: %s", exc)
        return {}

    if result.returncode != 0:
        logger.debug("tmux list-panes exited %d: %s", result.returncode, result.stderr.strip())
        return {}
    return parse_panes(result.stdout)


def _tmux(*args: str) -> None:
    try:
        result = subprocess.run(
            ["tmux", *args],
            capture_output=True,
            text=True,
            timeout=TMUX_TIMEOUT,
        )
    except (subprocess.SubprocessError, OSError) as exc:
        raise ExternalToolFailure(f"tmux {args[0]} failed: {exc}") from exc
    if result.returncode != 0:
        message = result.stderr.strip() or f"exit status {result.returncode}"
        raise ExternalToolFailure(f"tmux {args[0]} failed: {message}")


def _select(pane: PaneInfo) -> None:
    _tmux("select-window", "-t", f"{pane.session_name}:{pane.window_index}")
    _tmux("select-pane", "-t", pane.target)


def switch_to(pane: PaneInfo) -> None:
    """Make pane the active pane of the current tmux client."""
    _tmux("switch-client", "-t", pane.session_name)
    _select(pane)


def attach(pane: PaneInfo) -> None:
    """Replace this process with a tmux client attached to pane's session.

    Only returns by raising ExternalToolFailure.
    """
    _select(pane)
    try:
        os.execvp("tmux", ["tmux", "attach-session", "-t", pane.session_name])
    except OSError as exc:
        raise ExternalToolFailure(f"Could not exec tmux: {exc}") from exc
