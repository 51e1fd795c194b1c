"""rpai - Main Textual application."""

from collections.abc import Callable

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.timer import Timer
from textual.widgets import DataTable, Static

from rpai.config import Config, available_themes, save_config
from rpai.errors import ExternalToolFailure
from rpai.models import AgentSession, SessionState
from rpai.monitor import ProcessMonitor
from rpai.registry import SessionRegistry
from rpai.state import Action, Effect, EffectKind, InteractionState, Mode

# Give the OS time to reap a killed process before rescanning.
KILL_SETTLE_DELAY = 0.3

UNICODE_SYMBOLS = {SessionState.RUNNING: "●", SessionState.WAITING: "○"}
ASCII_SYMBOLS = {SessionState.RUNNING: "*", SessionState.WAITING: "-"}

STATE_STYLES = {SessionState.RUNNING: "bold green", SessionState.WAITING: "dim"}

NORMAL_KEYS = {
    "j": Action.NEXT,
    "down": Action.NEXT,
    "k": Action.PREVIOUS,
    "up": Action.PREVIOUS,
    "enter": Action.SELECT,
    "x": Action.KILL,
    "r": Action.REFRESH,
    "colon": Action.ENTER_COMMAND,
    "q": Action.QUIT,
}

COMMAND_KEYS = {
    "enter": Action.SUBMIT,
    "escape": Action.CANCEL,
    "backspace": Action.BACKSPACE,
}

KEY_HINTS = "j/k move  enter jump  x kill  r refresh  : command  q quit"


def format_duration(seconds: int) -> str:
    """Format an uptime as e.g. ``2h 5m``, ``7m`` or ``40s``."""
    minutes = seconds // 60
    hours = minutes // 60
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m"
    return f"{seconds}s"


def short_path(path: str | None, max_len: int = 60) -> str:
    """Keep the tail of long paths."""
    if not path:
        return "?"
    if len(path) > max_len:
        return "..." + path[-(max_len - 3) :]
    return path


class SummaryBar(Static):
    """One-line count of running and waiting sessions."""

    DEFAULT_CSS = """
    SummaryBar {
        height: 1;
        padding: 0 1;
        background: $surface;
    }
    """

    def update_summary(self, sessions: list[AgentSession], idle_threshold: float) -> None:
        running = sum(1 for s in sessions if s.state is SessionState.RUNNING)
        waiting = len(sessions) - running
        self.update(
            f"[b]{len(sessions)}[/b] sessions  "
            f"[green]{running} running[/green]  "
            f"{waiting} waiting  "
            f"[dim](idle <= {idle_threshold:g}% CPU)[/dim]"
        )


class SessionTable(Container):
    """Container for the session data table."""

    DEFAULT_CSS = """
    SessionTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    COLUMNS = [
        ("#", "index", 4),
        ("", "state", 2),
        ("Agent", "agent", 9),
        ("State", "status", 8),
        ("PID", "pid", 8),
        ("CPU%", "cpu", 7),
        ("Mem", "mem", 8),
        ("Up", "uptime", 8),
        ("Pane", "pane", 14),
        ("Directory", "cwd", None),
    ]

    def __init__(self, *args, symbols: dict[SessionState, str] | None = None, **kwargs) -> None:
        """Initialize SessionTable."""
        super().__init__(*args, **kwargs)
        self._symbols = symbols or UNICODE_SYMBOLS
        self._row_pids: list[int] = []

    def compose(self) -> ComposeResult:
        """Compose the session table."""
        yield DataTable(id="session-table", cursor_type="row")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#session-table", DataTable)
        # Keys go to the app, which owns the selection.
        table.can_focus = False
        for label, key, width in self.COLUMNS:
            table.add_column(label, key=key, width=width)

    def _cells(self, position: int, session: AgentSession) -> list:
        style = STATE_STYLES[session.state]
        return [
            str(position),
            Text(self._symbols[session.state], style=style),
            session.agent_type.value,
            Text(session.state.value, style=style),
            str(session.pid),
            f"{session.cpu_percent:5.1f}",
            f"{session.memory_mb}MB",
            format_duration(session.uptime_seconds),
            Text(session.pane.target if session.pane else "-"),
            Text(short_path(session.working_dir)),
        ]

    def update_sessions(self, sessions: list[AgentSession], selected_index: int | None) -> None:
        """
        Show a new session list.

        Rows are updated in place with update_cell when the pid order is
        unchanged; otherwise the table is rebuilt to keep the sort order.
        """
        table = self.query_one("#session-table", DataTable)
        pids = [s.pid for s in sessions]

        if pids == self._row_pids:
            for position, session in enumerate(sessions, start=1):
                row_key = str(session.pid)
                for (_, column_key, _), value in zip(self.COLUMNS, self._cells(position, session)):
                    table.update_cell(row_key, column_key, value)
        else:
            table.clear()
            for position, session in enumerate(sessions, start=1):
                table.add_row(*self._cells(position, session), key=str(session.pid))
            self._row_pids = pids

        table.show_cursor = selected_index is not None
        if selected_index is not None:
            table.move_cursor(row=selected_index)

    @property
    def row_pids(self) -> list[int]:
        return list(self._row_pids)


class StatusLine(Static):
    """Command line, transient messages or key hints."""

    DEFAULT_CSS = """
    StatusLine {
        dock: bottom;
        height: 1;
        padding: 0 1;
        background: $panel;
    }
    """

    def show_state(self, state: InteractionState) -> None:
        if state.mode is Mode.COMMAND:
            self.update(Text(f":{state.command_buffer}"))
        elif state.status_message:
            self.update(Text(state.status_message, style="bold"))
        else:
            self.update(Text(KEY_HINTS, style="dim"))


class RpaiApp(App[AgentSession | None]):
    """Live list of agent sessions; returns the session chosen for a jump."""

    TITLE = "rpai"
    SUB_TITLE = "AI agent sessions"

    CSS = """
    Screen {
        layout: vertical;
    }
    """

    BINDINGS = [
        Binding("ctrl+c", "interrupt", "Quit", show=False, priority=True),
    ]

    def __init__(
        self,
        config: Config,
        scanner: Callable[[], list[AgentSession]] | None = None,
        terminator: Callable[[int], None] | None = None,
        save: Callable[[Config], object] = save_config,
    ) -> None:
        """
        Initialize the RpaiApp.

        Args:
            config: Settings for this run.
            scanner: Returns the sessions of one scan. Defaults to a psutil/tmux registry.
            terminator: Sends SIGTERM to a pid. Defaults to ProcessMonitor.terminate.
            save: Persists the config after a theme change.
        """
        super().__init__()
        self._config = config
        if scanner is None or terminator is None:
            monitor = ProcessMonitor()
            scanner = scanner or SessionRegistry(config, monitor).scan
            terminator = terminator or monitor.terminate
        self._scanner = scanner
        self._terminator = terminator
        self._save = save
        self._state = InteractionState(themes=available_themes(), theme=config.theme)
        self._refresh_timer: Timer | None = None

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def config(self) -> Config:
        return self._config

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield SummaryBar(id="summary")
        symbols = ASCII_SYMBOLS if self._config.ascii_symbols else UNICODE_SYMBOLS
        yield SessionTable(symbols=symbols)
        yield StatusLine(id="status")

    def on_mount(self) -> None:
        """Run the first scan and start the idle refresh timer."""
        if self._config.theme in self.available_themes:
            self.theme = self._config.theme
        self.refresh_sessions()
        self._refresh_timer = self.set_interval(
            self._config.refresh_interval, self.refresh_sessions
        )

    def refresh_sessions(self) -> None:
        """Scan and replace the list. The scan completes before anything is shown."""
        sessions = self._scanner()
        self._state.apply_scan(sessions)
        self._render_state()

    def _render_state(self) -> None:
        self.query_one("#summary", SummaryBar).update_summary(
            self._state.sessions, self._config.idle_threshold
        )
        self.query_one(SessionTable).update_sessions(
            self._state.sessions, self._state.selected_index
        )
        self.query_one("#status", StatusLine).show_state(self._state)

    def on_key(self, event: events.Key) -> None:
        """Translate keys into state machine actions."""
        event.stop()
        event.prevent_default()
        # any key postpones the idle refresh
        if self._refresh_timer is not None:
            self._refresh_timer.reset()

        if self._state.mode is Mode.COMMAND:
            action = COMMAND_KEYS.get(event.key)
            if action is None:
                if event.is_printable and event.character:
                    self._state.type_text(event.character)
                    self._render_state()
                return
        else:
            action = NORMAL_KEYS.get(event.key)
            if action is None:
                return

        self._apply(self._state.dispatch(action))

    def action_interrupt(self) -> None:
        """Quit unconditionally, in any mode."""
        self._apply(self._state.dispatch(Action.QUIT))

    def _apply(self, effect: Effect) -> None:
        if effect.kind is EffectKind.EXIT:
            self.exit(effect.session)
            return

        if effect.kind is EffectKind.REFRESH:
            self.refresh_sessions()
            return

        if effect.kind is EffectKind.KILL and effect.session is not None:
            self._kill(effect.session)
        elif effect.kind is EffectKind.SET_THEME and effect.theme is not None:
            self._set_theme(effect.theme)

        self._render_state()

    def _kill(self, session: AgentSession) -> None:
        try:
            self._terminator(session.pid)
        except ExternalToolFailure as exc:
            self._state.status_message = str(exc)
            return
        self._state.status_message = (
            f"Sent SIGTERM to {session.agent_type.value} (PID {session.pid})"
        )
        self.set_timer(KILL_SETTLE_DELAY, self.refresh_sessions)

    def _set_theme(self, theme: str) -> None:
        self.theme = theme
        self._config = self._config.with_theme(theme)
        try:
            self._save(self._config)
        except OSError as exc:
            self._state.status_message = f"Theme set, but config not saved: {exc}"

