"""CLI commands for Zen Focus using Typer."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

import typer
from rich.console import Console, Group
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text
from rich.live import Live

from zen_focus import __version__
from zen_focus.core.config import get_config
from zen_focus.core.orchestrator import Orchestrator
from zen_focus.focus.schemas import SessionType, TimerStatus
from zen_focus.focus.timer import TimerEngine, TimerView
from zen_focus.storage.preferences import ThemeMode

T = TypeVar("T")

app = typer.Typer(
    name="zen-focus",
    help="Offline Pomodoro focus timer with daily statistics.",
    add_completion=False,
)

console = Console()


def setup_logging(log_level: str, log_file: Path | None = None) -> None:
    """Configure logging for the application."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    handlers: list[logging.Handler] = []
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))
    else:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )

    # Reduce noise from external libraries
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def format_duration(seconds: int) -> str:
    """Format seconds as e.g. '45m' or '2h 05m'."""
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes:02d}m"


def _with_engine(action: Callable[[Orchestrator, TimerEngine], Awaitable[T] | T]) -> T:
    """Open storage, run `action`, and flush before returning."""
    config = get_config()
    setup_logging(config.log_level, config.log_dir / "zen-focus.log")

    async def runner() -> T:
        orchestrator = Orchestrator(config)
        engine = await orchestrator.start()
        try:
            result = action(orchestrator, engine)
            if asyncio.iscoroutine(result):
                result = await result
            return result
        finally:
            await orchestrator.stop()

    return asyncio.run(runner())


def _render(view: TimerView, pomodoros: int) -> Panel:
    kind = "Focus" if view.session_type == SessionType.FOCUS else "Break"
    color = "green" if view.session_type == SessionType.FOCUS else "cyan"

    header = Text(f"{kind}", style=f"bold {color}")
    if view.label:
        header.append(f"  {view.label}", style="dim")

    clock = Text(view.remaining_display, style="bold", justify="center")
    bar = ProgressBar(total=1.0, completed=view.progress, width=40)
    footer = Text(f"{view.status.value.upper()}  |  pomodoros today: {pomodoros}", style="dim")

    return Panel(Group(header, clock, bar, footer), title="Zen Focus", border_style=color)


@app.command()
def run(
    minutes: Optional[int] = typer.Option(
        None, "--minutes", "-m", help="Focus length in minutes, saved as the new default"
    ),
    label: str = typer.Option("", "--label", "-l", help="Tag for the focus session"),
    auto_break: bool = typer.Option(False, "--auto-break", "-b", help="Start the break when focus ends"),
) -> None:
    """Run the timer in the foreground. Ctrl-C stops and credits elapsed focus time."""

    async def session(orchestrator: Orchestrator, engine: TimerEngine) -> None:
        if engine.status == TimerStatus.IDLE:
            if minutes:
                engine.set_focus_duration(minutes)
            if label:
                engine.set_label(label)
        elif engine.status == TimerStatus.RUNNING:
            console.print("[yellow]Resuming session from last run[/yellow]")

        done = asyncio.Event()

        def interrupt() -> None:
            engine.reset()
            done.set()

        orchestrator.setup_lifecycle_signals(on_interrupt=interrupt)

        with Live(_render(engine.view(), engine.completed_pomodoros_today), console=console) as live:

            def on_change(view: TimerView) -> None:
                live.update(_render(view, engine.completed_pomodoros_today))
                if view.status == TimerStatus.COMPLETED:
                    done.set()

            unsubscribe = engine.subscribe(on_change)
            try:
                if engine.status == TimerStatus.COMPLETED:
                    done.set()
                else:
                    engine.start()

                await done.wait()

                if (
                    auto_break
                    and engine.status == TimerStatus.COMPLETED
                    and engine.session_type == SessionType.FOCUS
                ):
                    done.clear()
                    engine.start_break()
                    await done.wait()
            finally:
                unsubscribe()

        if engine.status == TimerStatus.COMPLETED:
            console.print("[green bold]Session complete![/green bold]")
        else:
            console.print("[yellow]Session stopped[/yellow]")

    _with_engine(session)


@app.command()
def status() -> None:
    """Show the current timer state."""

    def show(orchestrator: Orchestrator, engine: TimerEngine) -> None:
        view = engine.view()
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Key", style="cyan")
        table.add_column("Value")

        table.add_row("Status", view.status.value.upper())
        table.add_row("Session", view.session_type.value)
        table.add_row("Remaining", view.remaining_display)
        table.add_row("Progress", f"{view.progress * 100:.0f}%")
        if view.label:
            table.add_row("Label", view.label)
        table.add_row("Focus today", format_duration(engine.total_focus_seconds_today))
        table.add_row("Pomodoros today", str(engine.completed_pomodoros_today))

        console.print(Panel(table, title="Zen Focus Status", border_style="green"))

    _with_engine(show)


@app.command()
def stats(
    days: Optional[int] = typer.Option(None, "--days", "-d", min=1, max=31, help="Days to show"),
) -> None:
    """Show focus time for recent days."""
    days = days or get_config().ledger.week_days

    def show(orchestrator: Orchestrator, engine: TimerEngine) -> None:
        per_day = engine.stats_for_last_n_days(days)
        peak = max(per_day.values(), default=0) or 1

        table = Table(title=f"Last {days} Days")
        table.add_column("Date", style="cyan")
        table.add_column("Focus", justify="right")
        table.add_column("")

        for day, seconds in per_day.items():
            table.add_row(day, format_duration(seconds), "█" * round(20 * seconds / peak))

        console.print(table)
        console.print(
            f"Today: [bold]{format_duration(engine.total_focus_seconds_today)}[/bold]  "
            f"Sessions: [bold]{engine.completed_pomodoros_today}[/bold]  "
            f"Total: [bold]{format_duration(sum(per_day.values()))}[/bold]"
        )

    _with_engine(show)


@app.command()
def history(limit: int = typer.Option(20, "--limit", "-n", min=1, help="Records to show")) -> None:
    """Show recently finished sessions."""

    def show(orchestrator: Orchestrator, engine: TimerEngine) -> None:
        records = engine.session_history[:limit]
        if not records:
            console.print("[dim]No sessions recorded yet[/dim]")
            return

        table = Table(title="Session History")
        table.add_column("When", style="cyan")
        table.add_column("Type")
        table.add_column("Minutes", justify="right")
        table.add_column("Label")

        for record in records:
            style = "green" if record.type == SessionType.FOCUS else "blue"
            table.add_row(
                record.timestamp.strftime("%Y-%m-%d %H:%M"),
                f"[{style}]{record.type.value}[/{style}]",
                str(record.duration_minutes),
                record.label,
            )
        console.print(table)

    _with_engine(show)


@app.command("set-focus")
def set_focus(minutes: int = typer.Argument(..., min=1, max=240)) -> None:
    """Set the focus duration in minutes."""

    def apply(orchestrator: Orchestrator, engine: TimerEngine) -> None:
        if engine.status != TimerStatus.IDLE:
            console.print("[yellow]A session is in progress; reset it first[/yellow]")
            raise typer.Exit(1)
        engine.set_focus_duration(minutes)
        console.print(f"Focus duration set to {minutes} min")

    _with_engine(apply)


@app.command("set-break")
def set_break(minutes: int = typer.Argument(..., min=1, max=120)) -> None:
    """Set the break duration in minutes."""

    def apply(orchestrator: Orchestrator, engine: TimerEngine) -> None:
        engine.set_break_duration(minutes)
        console.print(f"Break duration set to {minutes} min")

    _with_engine(apply)


@app.command()
def theme(mode: ThemeMode = typer.Argument(..., help="system, light or dark")) -> None:
    """Set the display theme preference."""

    def apply(orchestrator: Orchestrator, engine: TimerEngine) -> None:
        orchestrator.preferences.theme_mode = mode
        console.print(f"Theme set to {mode.value}")

    _with_engine(apply)


@app.command()
def sound(enabled: bool = typer.Argument(..., help="true/false")) -> None:
    """Enable or disable the completion chime."""

    def apply(orchestrator: Orchestrator, engine: TimerEngine) -> None:
        orchestrator.preferences.sound_enabled = enabled
        console.print(f"Sound {'enabled' if enabled else 'disabled'}")

    _with_engine(apply)


@app.command()
def reset() -> None:
    """Reset the timer, crediting elapsed focus time."""
    _with_engine(lambda orchestrator, engine: engine.reset())
    console.print("Timer reset")


@app.command()
def skip() -> None:
    """Skip to the next phase (focus <-> break)."""

    def apply(orchestrator: Orchestrator, engine: TimerEngine) -> None:
        engine.skip_to_next()
        console.print(f"Next: {engine.session_type.value}")

    _with_engine(apply)


@app.command("clear-stats")
def clear_stats(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete all statistics and session history."""
    if not yes and not typer.confirm("Delete all statistics?"):
        raise typer.Exit(0)
    _with_engine(lambda orchestrator, engine: orchestrator.ledger.clear())
    console.print("[green]Statistics cleared[/green]")


@app.command()
def config(
    show: bool = typer.Option(True, "--show/--no-show", help="Print the active configuration"),
    save: bool = typer.Option(False, "--save", help="Write the active configuration to disk"),
) -> None:
    """Show or save the configuration file."""
    cfg = get_config()

    if save:
        cfg.save()
        console.print(f"[green]Configuration saved to {cfg.config_file}[/green]")

    if show:
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Key", style="cyan")
        table.add_column("Value")
        table.add_row("Database", str(cfg.db_path))
        table.add_row("Config file", str(cfg.config_file))
        table.add_row("Log level", cfg.log_level)
        table.add_row("Tick interval", f"{cfg.timer.tick_interval_seconds}s")
        table.add_row("Stats retention", f"{cfg.ledger.retention_days} days")
        table.add_row("History limit", str(cfg.ledger.history_limit))
        table.add_row("Chime file", str(cfg.sound.chime_file or "(terminal bell)"))
        console.print(Panel(table, title="Configuration", border_style="blue"))


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"Zen Focus v{__version__}")


if __name__ == "__main__":
    app()
