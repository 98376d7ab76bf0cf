"""Командний рядок: один цикл або режим демона з паузою між циклами"""

from __future__ import annotations

import signal
import sys
import threading
from typing import Callable, Optional

import typer

from nginx_ip_defence import __version__, config
from nginx_ip_defence.cycle import run_cycle
from nginx_ip_defence.errors import DefenceError
from nginx_ip_defence.logger import log_message
from nginx_ip_defence.server import SERVER_TYPES, validate_server_type
from nginx_ip_defence.whois import make_whois_client

app = typer.Typer(
    help="Analyse a web-server access log, resolve whois countries and produce a blocklist.",
    add_completion=False,
)


def _version_callback(value: bool):
    if value:
        typer.echo(f"nginx-ip-defence v{__version__}")
        raise typer.Exit()


def run_cycles(
        cycle: Callable[[], object],
        daemon_mode: bool,
        interval_seconds: float,
        stop_event: threading.Event,
) -> int:
    """
    Один цикл, або в режимі демона цикли з паузою interval_seconds.

    Пауза переривається через stop_event (SIGINT/SIGTERM); повертає
    кількість виконаних циклів.
    """
    completed = 0
    while True:
        cycle()
        completed += 1

        if not daemon_mode:
            break

        log_message(f"Cycle {completed} done, next cycle in {interval_seconds / 3600:.1f}h")
        if stop_event.wait(interval_seconds):
            log_message("Shutdown requested, leaving daemon loop")
            break

    return completed


def _install_signal_handlers(stop_event: threading.Event) -> dict:
    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, lambda *_: stop_event.set())
    return previous


def _restore_signal_handlers(previous: dict):
    for signum, handler in previous.items():
        signal.signal(signum, handler)


@app.command()
def run(
        ctx: typer.Context,
        server_type: str = typer.Option(
            config.SERVER_TYPE,
            "--server-type",
            "-s",
            help=f"Currently active server: {' | '.join(SERVER_TYPES)}",
        ),
        daemon_mode: bool = typer.Option(
            False,
            "--daemon-mode/--no-daemon-mode",
            help="Keep running as a background service, one cycle per interval.",
        ),
        interval_hours: float = typer.Option(
            config.DAEMON_INTERVAL_HOURS,
            "--interval-hours",
            min=0,
            help="Hours to wait between cycles in daemon mode.",
        ),
        log_directory: str = typer.Option(
            config.LOG_DIRECTORY,
            "--log-directory",
            help="Directory holding <server-type>/access.log.",
        ),
        web_location: str = typer.Option(
            config.WEB_LOCATION,
            "--web-location",
            help="Existing directory that receives the reports.",
        ),
        whois_backend: str = typer.Option(
            config.WHOIS_BACKEND,
            "--whois-backend",
            help='Whois source: "command" (whois binary) or "rdap" (HTTP).',
        ),
        site_config: str = typer.Option(
            config.SITE_CONFIG_PATH,
            "--site-config",
            help="Write deny rules here and reload the server (disabled when empty).",
        ),
        blocklist_file: str = typer.Option(
            config.BLOCKLIST_FILE,
            "--blocklist-file",
            help="Persisted blocklist with expiry (disabled when empty).",
        ),
        version: Optional[bool] = typer.Option(
            None,
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Print the current version of this program and exit.",
        ),
):
    """
    Process the latest day of the access log and write the reports.

    Example:

        nginx-ip-defence --server-type nginx
        nginx-ip-defence -s apache --daemon-mode --interval-hours 12
    """
    try:
        server_type = validate_server_type(server_type)
        whois_client = make_whois_client(whois_backend, config.WHOIS_TIMEOUT, config.RDAP_URL)
    except DefenceError as e:
        typer.echo(str(e), err=True)
        typer.echo(ctx.get_help(), err=True)
        raise typer.Exit(code=1)

    access_log = config.access_log_path(log_directory, server_type)
    log_message(f"Starting nginx-ip-defence v{__version__} (server: {server_type}, log: {access_log})")

    def cycle():
        run_cycle(
            access_log,
            web_location,
            server_type,
            whois_client,
            site_config_path=site_config,
            blocklist_file=blocklist_file,
            block_expiry_hours=config.BLOCK_EXPIRY_HOURS,
        )

    stop_event = threading.Event()
    previous_handlers = _install_signal_handlers(stop_event) if daemon_mode else {}
    try:
        completed = run_cycles(cycle, daemon_mode, interval_hours * 3600, stop_event)
    except DefenceError as e:
        log_message(f"Fatal: {e}", "ERROR")
        raise typer.Exit(code=1)
    finally:
        _restore_signal_handlers(previous_handlers)

    log_message(f"nginx-ip-defence completed successfully ({completed} cycle(s))")


def main() -> None:
    """Точка входу для console_scripts"""
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Interrupted by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
