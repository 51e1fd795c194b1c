"""Exceptions raised by rpai.

Failures of the external queries that make up a scan are absorbed where they
happen; only the errors below ever reach the user.
"""

from rpai.models import AgentSession


class RpaiError(Exception):
    """Base class for user-facing rpai errors."""


class ExternalToolFailure(RpaiError):
    """tmux or the process table refused an action (kill, switch, attach)."""


class InvalidSessionId(RpaiError):
    """A numeric session id outside the current list."""

    def __init__(self, session_id: int, count: int) -> None:
        self.session_id = session_id
        self.count = count
        if count:
            message = f"Invalid session id {session_id} (expected 1-{count})"
        else:
            message = f"Invalid session id {session_id} (no sessions found)"
        super().__init__(message)


class AmbiguousJumpTarget(RpaiError):
    """A session-name substring matched more than one session."""

    def __init__(self, target: str, candidates: list[AgentSession]) -> None:
        self.target = target
        self.candidates = candidates
        super().__init__(f"'{target}' matches {len(candidates)} sessions")


class NoSessionFound(RpaiError):
    """Nothing matched a jump target."""

    def __init__(self, target: str) -> None:
        self.target = target
        super().__init__(f"No session matching '{target}'")


class NotInPane(RpaiError):
    """The session is not running inside a tmux pane."""

    def __init__(self, session: AgentSession) -> None:
        self.session = session
        super().__init__(
            f"{session.agent_type.value} (PID {session.pid}) is not running inside a tmux pane"
        )


class TerminalSetupFailure(RpaiError):
    """The interactive display could not be acquired."""
