"""
Root Typer application for the spindle CLI.

Commands::

    spindle run "curl -s example.com" --delay 500 --timeout 3000 --may-interrupt
    spindle run "date" --interval 1000 --wait 3500
    spindle classify --delay 200 --interval 1000
    spindle config show --json
"""

from __future__ import annotations

import subprocess
import threading
from importlib.metadata import PackageNotFoundError
from typing import Any

import typer
from typer import Typer

from spindle import __version__
from spindle.cli.config import app as config_app
from spindle.cli.utils import console, err_console, print_dict, print_futures, print_json
from spindle.core.errors import ConfigurationFault, InterruptionSignal, SpindleError, is_cancellation
from spindle.core.logging import configure_logging
from spindle.core.settings import get_settings
from spindle.execution.builder import ThreadBuilder
from spindle.execution.interrupt import sleep_unchecked
from spindle.execution.result import ExecutorResult
from spindle.execution.timing import TimingConfig, classify, effective_delay
from spindle.execution.work import Effect

app = Typer(
    name="spindle",
    help="spindle — delayed, periodic and deadline-bound work on thread pools.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("spindle-threads")
        except PackageNotFoundError:
            v = __version__
        typer.echo(f"spindle {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """spindle CLI — run shell commands through a ThreadBuilder."""


app.add_typer(config_app, name="config", help="Configuration inspection.")


# ── run ──────────────────────────────────────────────────────────────────


class ShellCommand:
    """Runs ``command`` in a shell and kills it when interrupted."""

    def __init__(self, command: str, poll_ms: int = 50):
        self.command = command
        self.poll_ms = poll_ms

    @property
    def label(self) -> str:
        return f"sh:{self.command}"

    def __call__(self) -> None:
        proc = subprocess.Popen(self.command, shell=True)
        try:
            while proc.poll() is None:
                sleep_unchecked(self.poll_ms)
        except InterruptionSignal:
            proc.kill()
            proc.wait()
            raise
        if proc.returncode != 0:
            raise subprocess.CalledProcessError(proc.returncode, self.command)


class FailureLog:
    """Failure callback for ``run``.

    Once the CLI starts stopping the task itself, the cancellation and
    interruption signals that stop produces are expected and not recorded.
    """

    def __init__(self) -> None:
        self.faults: list[BaseException] = []
        self.stopping = threading.Event()

    def __call__(self, fault: BaseException) -> None:
        if self.stopping.is_set() and is_cancellation(fault):
            return
        self.faults.append(fault)


def _await(
    result: ExecutorResult[Any], failures: FailureLog, wait_ms: int | None, default_wait: float
) -> None:
    handle = result.futures[0]
    if wait_ms is not None:
        handle.wait(wait_ms / 1000.0)
    elif handle.periodic:
        handle.wait(default_wait)
    else:
        handle.wait()

    if not handle.done():
        failures.stopping.set()
        handle.cancel(may_interrupt=True)
    elif handle.cancelled():
        # cancelled by its guard, which routes the cancellation before exiting
        for child in result.timeout_results:
            child.pool.await_termination(default_wait)

    result.shutdown(now=True)
    result.pool.await_termination(default_wait)
    for child in result.timeout_results:
        child.pool.await_termination(default_wait)


@app.command("run")
def run_command(
    command: str = typer.Argument(..., help="Shell command to run"),
    delay: int | None = typer.Option(None, "--delay", help="Milliseconds before the first run"),  # noqa: UP007
    timeout: int | None = typer.Option(None, "--timeout", help="Cancel after this many milliseconds"),  # noqa: UP007
    interval: int | None = typer.Option(None, "--interval", help="Repeat every N milliseconds"),  # noqa: UP007
    may_interrupt: bool = typer.Option(False, "--may-interrupt", help="Kill the command on timeout"),
    silent: bool = typer.Option(False, "--silent", help="Do not report cancellations"),
    wait: int | None = typer.Option(  # noqa: UP007
        None, "--wait", help="Milliseconds to wait before stopping (default: until done)"
    ),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Run a shell command with a delay, timeout and/or interval.

    Exit code is 1 when any failure was reported, 2 on invalid options.

    Example::

        spindle run "sleep 5" --timeout 1000 --may-interrupt
        spindle run "date" --interval 1000 --wait 3500
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_format == "json")

    shell = ShellCommand(command)
    failures = FailureLog()
    try:
        builder = (
            ThreadBuilder(settings=settings)
            .set_execution(Effect(shell, label=shell.label))
            .set_may_interrupt(may_interrupt)
            .set_silent(silent)
            .set_on_uncaught_failure(failures)
        )
        if delay is not None:
            builder.set_delay(delay)
        if timeout is not None:
            builder.set_timeout(timeout)
        if interval is not None:
            builder.set_interval(interval)
        result = builder.start()
    except ConfigurationFault as e:
        err_console.print(f"[red]Configuration error:[/red] {e.message}")
        raise typer.Exit(code=2) from e

    if not as_json:
        console.print(
            f"[bold green]Started[/bold green] {command!r} "
            f"([cyan]{builder.classification.value}[/cyan])"
        )
    _await(result, failures, wait, settings.shutdown_wait_seconds)

    reported = [
        f.to_dict() if isinstance(f, SpindleError) else {"message": str(f)} for f in failures.faults
    ]
    if as_json:
        print_json({"classification": builder.classification.value, **result.to_dict(), "failures": reported})
    else:
        print_futures(result.to_dict())
        for failure in reported:
            err_console.print(f"[red]{failure.get('error_type', 'Error')}:[/red] {failure['message']}")

    if failures.faults:
        raise typer.Exit(code=1)


# ── classify ─────────────────────────────────────────────────────────────


@app.command("classify")
def classify_command(
    delay: int | None = typer.Option(None, "--delay", help="Delay in milliseconds"),  # noqa: UP007
    timeout: int | None = typer.Option(None, "--timeout", help="Timeout in milliseconds"),  # noqa: UP007
    interval: int | None = typer.Option(None, "--interval", help="Interval in milliseconds"),  # noqa: UP007
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show how a timing configuration would be scheduled."""
    settings = get_settings()
    try:
        timing = TimingConfig()
        if delay is not None:
            timing = timing.with_delay(delay)
        if timeout is not None:
            timing = timing.with_timeout(timeout)
        if interval is not None:
            timing = timing.with_interval(interval)
    except ConfigurationFault as e:
        err_console.print(f"[red]Configuration error:[/red] {e.message}")
        raise typer.Exit(code=2) from e

    timing_class = classify(timing)
    minimum = settings.minimum_callback_delay_ms
    data = {
        "classification": timing_class.value,
        "periodic": timing_class.is_periodic,
        "guarded": timing_class.has_timeout,
        "effective_delay_ms": round(
            effective_delay(timing, has_callbacks=False, minimum_ms=minimum) * 1000
        ),
        "effective_delay_with_callbacks_ms": round(
            effective_delay(timing, has_callbacks=True, minimum_ms=minimum) * 1000
        ),
    }
    if as_json:
        print_json(data)
    else:
        print_dict(data, title="Timing")
