"""Resolve sessions from user input and act on them."""

import logging

from rpai import tmux
from rpai.errors import AmbiguousJumpTarget, InvalidSessionId, NoSessionFound, NotInPane
from rpai.models import AgentSession
from rpai.monitor import ProcessMonitor

logger = logging.getLogger(__name__)


def session_by_id(sessions: list[AgentSession], session_id: int) -> AgentSession:
    """Session at 1-based position session_id."""
    if not 1 <= session_id <= len(sessions):
        raise InvalidSessionId(session_id, len(sessions))
    return sessions[session_id - 1]


def resolve_target(sessions: list[AgentSession], target: str) -> AgentSession:
    """
    Resolve a jump target to one session.

    A number is a 1-based id; anything else is matched as a substring of the
    tmux session name. Raises if nothing or more than one session matches.
    """
    if target.isdigit():
        return session_by_id(sessions, int(target))

    candidates = [s for s in sessions if s.pane is not None and target in s.pane.session_name]
    if not candidates:
        raise NoSessionFound(target)
    if len(candidates) > 1:
        raise AmbiguousJumpTarget(target, candidates)
    return candidates[0]


def kill_session(session: AgentSession, monitor: ProcessMonitor) -> None:
    """Terminate the session's root process."""
    monitor.terminate(session.pid)


def jump_to_session(session: AgentSession) -> None:
    """
    Move the user to the session's pane.

    Inside tmux this switches the client and returns. Outside tmux it
    replaces the current process with ``tmux attach-session`` and does not
    return on success.
    """
    if session.pane is None:
        raise NotInPane(session)

    logger.info("Jumping to %s for PID %d", session.pane.target, session.pid)
    if tmux.inside_tmux():
        tmux.switch_to(session.pane)
    else:
        tmux.attach(session.pane)
