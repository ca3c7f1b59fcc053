"""CLI entrypoints (runner-daemon start, status, stop)."""

import importlib
import os
import signal
import sys
from typing import Any, Dict, Optional, Tuple

import click
from pydantic import ValidationError

from runner_daemon.core.config import DaemonSettings
from runner_daemon.core.models import EXIT_ERROR, EXIT_OK
from runner_daemon.daemon import Daemon
from runner_daemon.supervisor.pidfile import PidFile, SingletonGuard


def load_runner(spec: str) -> Tuple[str, Any]:
    """Resolve `NAME=package.module:attribute` to a runner callable."""
    name, sep, target = spec.partition("=")
    module_name, colon, attribute = target.partition(":")
    if not sep or not colon or not name or not module_name or not attribute:
        raise click.BadParameter(f"expected NAME=module:attribute, got {spec!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"cannot import {module_name}: {e}") from e

    runner = getattr(module, attribute, None)
    if not callable(runner):
        raise click.BadParameter(f"{target} is not callable")
    return name, runner


def _guard(name: str, pid_file: Optional[str]) -> SingletonGuard:
    try:
        settings = DaemonSettings(name=name, **({"pid_file": pid_file} if pid_file else {}))
    except ValidationError as e:
        raise click.UsageError("; ".join(error["msg"] for error in e.errors()))
    return SingletonGuard(PidFile(settings.pid_path))


@click.group()
@click.version_option(package_name="runner-daemon")
def main():
    """Runner Daemon command line."""


@main.command()
@click.option("--name", required=True, help="Daemon name")
@click.option("--pid-file", default=None, help="Pid file path")
@click.option("--log-file", default=None, help="Log file path")
@click.option("--workers", type=click.IntRange(min=1), default=1, show_default=True, help="Worker processes")
@click.option("--runner", "runners", multiple=True, required=True, help="NAME=module:attribute, repeatable")
def start(name: str, pid_file: Optional[str], log_file: Optional[str], workers: int, runners: Tuple[str, ...]):
    """Start the daemon in the background."""
    # Runner modules given relative to the working directory stay importable.
    if os.getcwd() not in sys.path:
        sys.path.insert(0, os.getcwd())
    loaded: Dict[str, Any] = dict(load_runner(spec) for spec in runners)

    daemon = Daemon(name, pid_file=pid_file, log_file=log_file)
    daemon.add_runners(loaded)
    daemon.start(workers)


@main.command()
@click.option("--name", required=True, help="Daemon name")
@click.option("--pid-file", default=None, help="Pid file path")
def status(name: str, pid_file: Optional[str]):
    """Report whether the daemon is running."""
    pid = _guard(name, pid_file).running_pid()
    if pid is None:
        click.echo(f"{name}: not running")
        sys.exit(EXIT_ERROR)
    click.echo(f"{name}: running (pid {pid})")
    sys.exit(EXIT_OK)


@main.command()
@click.option("--name", required=True, help="Daemon name")
@click.option("--pid-file", default=None, help="Pid file path")
def stop(name: str, pid_file: Optional[str]):
    """Send the termination signal to the running daemon."""
    pid = _guard(name, pid_file).running_pid()
    if pid is None:
        click.echo(f"{name}: not running")
        sys.exit(EXIT_ERROR)
    os.kill(pid, signal.SIGTERM)
    click.echo(f"{name}: sent SIGTERM to pid {pid}")


if __name__ == "__main__":
    main()
