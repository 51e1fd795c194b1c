"""
CLI interface for rpai using Typer.

With no command, runs the live session list and jumps to the chosen pane.
"""

import logging
from typing import Annotated, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape

from rpai.actions import jump_to_session, kill_session, resolve_target, session_by_id
from rpai.app import ASCII_SYMBOLS, UNICODE_SYMBOLS, RpaiApp, format_duration, short_path
from rpai.config import LOG_PATH, Config, available_themes, config_path, load_config, save_config
from rpai.errors import AmbiguousJumpTarget, RpaiError, TerminalSetupFailure
from rpai.models import AgentSession, SessionState
from rpai.monitor import ProcessMonitor
from rpai.registry import SessionRegistry

logger = logging.getLogger(__name__)
logging.getLogger("rpai").addHandler(logging.NullHandler())

console = Console(highlight=False)

app = typer.Typer(
    name="rpai",
    help="Find AI coding-agent sessions and jump to their tmux panes.",
    no_args_is_help=False,
    invoke_without_command=True,
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _configure_logging(debug: bool) -> None:
    if not debug:
        return
    LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(LOG_PATH)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger("rpai")
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)


def _config(ctx: typer.Context) -> Config:
    if isinstance(ctx.obj, Config):
        return ctx.obj
    return load_config()


def _fail(exc: RpaiError) -> NoReturn:
    console.print(f"[red]Error:[/red] {escape(str(exc))}")
    if isinstance(exc, AmbiguousJumpTarget):
        console.print("Candidates:")
        for session in exc.candidates:
            target = session.pane.target if session.pane else "-"
            console.print(f"  {escape(target)}  {session.agent_type.value} (PID {session.pid})")
    raise typer.Exit(1)


def print_sessions(sessions: list[AgentSession], config: Config) -> None:
    """Print the session list in the layout of the scan command."""
    if not sessions:
        console.print("No AI agent processes detected")
        return

    symbols = ASCII_SYMBOLS if config.ascii_symbols else UNICODE_SYMBOLS
    console.print("[b]AI Agent Sessions:[/b]")
    console.print()

    for i, session in enumerate(sessions):
        color = "green" if session.state is SessionState.RUNNING else "dim"
        console.print(
            f"[{color}]{symbols[session.state]}[/{color}] [{i + 1}] "
            f"{session.agent_type.value} | {session.state.value} | "
            f"{format_duration(session.uptime_seconds)}",
        )
        pane = f" | Pane: {escape(session.pane.target)}" if session.pane else ""
        console.print(
            f"    PID: {session.pid} | Mem: {session.memory_mb}MB | "
            f"CPU: {session.cpu_percent:.1f}%{pane}"
        )
        console.print(f"    {escape(short_path(session.working_dir))}")
        if i < len(sessions) - 1:
            console.print()


def _jump(session: AgentSession) -> None:
    try:
        jump_to_session(session)
    except RpaiError as exc:
        _fail(exc)


def run_interactive(config: Config) -> None:
    """Run the live list; jump to the chosen session once the display is released."""
    tui = RpaiApp(config)
    try:
        session = tui.run()
    except OSError as exc:
        raise TerminalSetupFailure(f"Cannot start the interactive display: {exc}") from exc

    if session is not None:
        _jump(session)


@app.callback()
def main_callback(
    ctx: typer.Context,
    debug: Annotated[
        bool, typer.Option("--debug", help=f"Write a debug log to {LOG_PATH}")
    ] = False,
):
    """Find AI coding-agent sessions and jump to their tmux panes."""
    _configure_logging(debug)
    ctx.obj = load_config()
    if ctx.invoked_subcommand is None:
        try:
            run_interactive(ctx.obj)
        except TerminalSetupFailure as exc:
            _fail(exc)


@app.command()
def scan(ctx: typer.Context):
    """Scan once and print the session list."""
    config = _config(ctx)
    print_sessions(SessionRegistry(config).scan(), config)


@app.command()
def kill(
    ctx: typer.Context,
    session_id: Annotated[int, typer.Argument(metavar="ID", help="1-based id from `rpai scan`")],
):
    """Terminate a session by its id."""
    config = _config(ctx)
    monitor = ProcessMonitor()
    sessions = SessionRegistry(config, monitor).scan()
    try:
        session = session_by_id(sessions, session_id)
        kill_session(session, monitor)
    except RpaiError as exc:
        _fail(exc)
    console.print(f"Sent SIGTERM to {session.agent_type.value} (PID {session.pid})")


@app.command()
def jump(
    ctx: typer.Context,
    target: Annotated[
        str, typer.Argument(metavar="ID|NAME", help="Session id or tmux session name substring")
    ],
):
    """Jump to a session's tmux pane."""
    sessions = SessionRegistry(_config(ctx)).scan()
    try:
        session = resolve_target(sessions, target)
    except RpaiError as exc:
        _fail(exc)
    _jump(session)


@app.command()
def theme(
    ctx: typer.Context,
    name: Annotated[Optional[str], typer.Argument(help="Theme to save as default")] = None,
):
    """Show or set the color theme."""
    config = _config(ctx)
    if name is None:
        console.print(config.theme)
        return

    themes = available_themes()
    if name not in themes:
        console.print(f"[red]Error:[/red] Unknown theme '{escape(name)}'")
        console.print("Available: " + ", ".join(themes))
        raise typer.Exit(1)

    path = save_config(config.with_theme(name), config_path())
    console.print(f"Theme set to {escape(name)} ({escape(str(path))})")


@app.command("help")
def help_command(ctx: typer.Context):
    """Show this help message."""
    typer.echo((ctx.parent or ctx).get_help())


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
