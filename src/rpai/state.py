"""Interaction state for the live session list.

Holds the latest session list, the selection and the command line, and turns
user actions into effects the display loop carries out (scan, kill, theme
change, exit). Nothing here touches the terminal or the process table.
"""

from collections.abc import Collection
from dataclasses import dataclass
from enum import Enum

from rpai.models import AgentSession


class Mode(Enum):
    NORMAL = "normal"
    COMMAND = "command"


class Action(Enum):
    """User actions understood by the state machine."""

    NEXT = "next"
    PREVIOUS = "previous"
    SELECT = "select"
    KILL = "kill"
    REFRESH = "refresh"
    ENTER_COMMAND = "enter_command"
    SUBMIT = "submit"
    CANCEL = "cancel"
    BACKSPACE = "backspace"
    QUIT = "quit"


class EffectKind(Enum):
    NONE = "none"
    REFRESH = "refresh"
    KILL = "kill"
    SET_THEME = "set_theme"
    EXIT = "exit"


@dataclass(slots=True, frozen=True)
class Effect:
    """Work requested from the display loop."""

    kind: EffectKind
    session: AgentSession | None = None
    theme: str | None = None


NO_EFFECT = Effect(EffectKind.NONE)

NORMAL_ONLY = {Action.NEXT, Action.PREVIOUS, Action.SELECT, Action.KILL, Action.REFRESH}


class InteractionState:
    """Selection, mode and command line of the interactive list."""

    def __init__(self, themes: Collection[str] = (), theme: str = "") -> None:
        self.sessions: list[AgentSession] = []
        self.selected_pid: int | None = None
        self.mode = Mode.NORMAL
        self.command_buffer = ""
        self.status_message: str | None = None
        self.theme = theme
        self.finished = False
        self.result: AgentSession | None = None
        self._themes = set(themes)
        self._pending_kill: int | None = None
        self._scanned = False

    @property
    def selected_index(self) -> int | None:
        if self.selected_pid is None:
            return None
        for index, session in enumerate(self.sessions):
            if session.pid == self.selected_pid:
                return index
        return None

    @property
    def selected_session(self) -> AgentSession | None:
        index = self.selected_index
        return None if index is None else self.sessions[index]

    @property
    def pending_kill(self) -> int | None:
        return self._pending_kill

    def apply_scan(self, sessions: list[AgentSession]) -> None:
        """
        Replace the session list with the result of a completed scan.

        The selection follows the selected pid. If that pid is gone the
        selection is cleared rather than moved to another session.
        """
        self.sessions = list(sessions)
        if not self._scanned:
            self._scanned = True
            self.selected_pid = self.sessions[0].pid if self.sessions else None
        elif self.selected_index is None:
            self.selected_pid = None

        if self._pending_kill is not None and self._pending_kill != self.selected_pid:
            self._pending_kill = None

    def dispatch(self, action: Action) -> Effect:
        """Apply one user action. Status messages last until the next action."""
        self.status_message = None
        if action is Action.QUIT:
            return self._finish(None)

        if action is not Action.KILL:
            self._pending_kill = None

        if self.mode is Mode.COMMAND:
            return self._dispatch_command(action)
        if action in NORMAL_ONLY or action is Action.ENTER_COMMAND:
            return self._dispatch_normal(action)
        return NO_EFFECT

    def type_text(self, text: str) -> None:
        """Append typed characters to the command line."""
        if self.mode is Mode.COMMAND:
            self.command_buffer += text

    def _dispatch_normal(self, action: Action) -> Effect:
        if action is Action.NEXT:
            self._move(1)
        elif action is Action.PREVIOUS:
            self._move(-1)
        elif action is Action.REFRESH:
            return Effect(EffectKind.REFRESH)
        elif action is Action.ENTER_COMMAND:
            self.mode = Mode.COMMAND
            self.command_buffer = ""
        elif action is Action.SELECT:
            session = self.selected_session
            if session is None:
                self.status_message = "No session selected"
                return NO_EFFECT
            return self._finish(session)
        elif action is Action.KILL:
            return self._kill()
        return NO_EFFECT

    def _dispatch_command(self, action: Action) -> Effect:
        if action is Action.BACKSPACE:
            self.command_buffer = self.command_buffer[:-1]
        elif action is Action.CANCEL:
            self._leave_command()
        elif action is Action.SUBMIT:
            text = self.command_buffer.strip()
            self._leave_command()
            if text:
                return self.execute(text)
        return NO_EFFECT

    def _leave_command(self) -> None:
        self.mode = Mode.NORMAL
        self.command_buffer = ""

    def _move(self, step: int) -> None:
        if not self.sessions:
            self.selected_pid = None
            return
        index = self.selected_index
        if index is None:
            index = 0 if step > 0 else len(self.sessions) - 1
        else:
            index = (index + step) % len(self.sessions)
        self.selected_pid = self.sessions[index].pid

    def _kill(self) -> Effect:
        session = self.selected_session
        if session is None:
            self.status_message = "No session selected"
            return NO_EFFECT
        if self._pending_kill == session.pid:
            self._pending_kill = None
            return Effect(EffectKind.KILL, session=session)
        self._pending_kill = session.pid
        self.status_message = (
            f"Press x again to terminate {session.agent_type.value} (PID {session.pid})"
        )
        return NO_EFFECT

    def _finish(self, session: AgentSession | None) -> Effect:
        self.finished = True
        self.result = session
        return Effect(EffectKind.EXIT, session=session)

    def execute(self, text: str) -> Effect:
        """Run a command line entered in command mode."""
        name, _, argument = text.partition(" ")
        argument = argument.strip()

        if name == "theme":
            if not argument:
                self.status_message = f"Theme: {self.theme}"
                return NO_EFFECT
            if argument not in self._themes:
                self.status_message = f"Unknown theme: {argument}"
                return NO_EFFECT
            self.theme = argument
            self.status_message = f"Theme set to {argument}"
            return Effect(EffectKind.SET_THEME, theme=argument)

        if name in ("list", "ls"):
            count = len(self.sessions)
            self.status_message = f"{count} session{'s' if count != 1 else ''}"
            return NO_EFFECT

        if name in ("quit", "q"):
            return self._finish(None)

        self.status_message = f"Unknown command: {text}"
        return NO_EFFECT
