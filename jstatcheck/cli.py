import sys

import typer

from jstatcheck.errors import CheckError, UsageError
from jstatcheck.evaluation import evaluate
from jstatcheck.operations import (
    collect_gc_sample,
    collect_metaspace_capacity,
    resolve_target,
    tool_env,
)
from jstatcheck.types import Status, Thresholds
from jstatcheck.ui import (
    format_error_line,
    format_status_line,
    print_debug,
    set_debug,
    usage_text,
)

VERSION = "1.4"
PROG_NAME = "check_jstat"

DEFAULT_WARNING = 90
DEFAULT_CRITICAL = 95
DEFAULT_TIMEOUT = 10.0

# Exceptions of the click that typer runs on; recent typer releases bundle
# their own copy, whose errors are not click.UsageError subclasses
_click_exceptions = sys.modules[typer.BadParameter.__module__]

# -h prints the plugin usage and exits UNKNOWN, so click's --help is disabled
app = typer.Typer(add_completion=False, context_settings={"help_option_names": []})


def _version_callback(value: bool):
    if value:
        typer.echo(f"{PROG_NAME} version {VERSION}")
        raise typer.Exit()


def _help_callback(value: bool):
    if value:
        typer.echo(usage_text(PROG_NAME))
        raise typer.Exit(code=int(Status.UNKNOWN))


@app.command(help="Check heap and metaspace usage of a running JVM with jstat.")
def check(
    version: bool = typer.Option(
        False,
        "-v",
        callback=_version_callback,
        is_eager=True,
        help="Print version and exit.",
    ),
    show_help: bool = typer.Option(
        False,
        "-h",
        callback=_help_callback,
        is_eager=True,
        help="Print usage and exit.",
    ),
    pid: int | None = typer.Option(
        None, "-p", help="The PID of the process to monitor."
    ),
    service: str | None = typer.Option(
        None, "-s", help="Service name; the PID is read from /var/run/<service>.pid."
    ),
    java_name: str | None = typer.Option(
        None,
        "-j",
        help="Java app name as listed by jps. An empty name selects the only java app.",
    ),
    verbose_java_name: str | None = typer.Option(
        None, "-J", help="Same as -j but matched against 'jps -v' output."
    ),
    java_home: str | None = typer.Option(
        None, "-P", help="Use the jps/jstat of this java installation."
    ),
    warning: int = typer.Option(
        DEFAULT_WARNING, "-w", help="Warning threshold, used/max in %. 0 disables."
    ),
    critical: int = typer.Option(
        DEFAULT_CRITICAL, "-c", help="Critical threshold, used/max in %. 0 disables."
    ),
    timeout: float = typer.Option(
        DEFAULT_TIMEOUT,
        "-t",
        envvar="CHECK_JSTAT_TIMEOUT",
        help="Timeout in seconds for each jps/jstat call. 0 waits forever.",
    ),
    debug: bool = typer.Option(
        False, "-d", envvar="CHECK_JSTAT_DEBUG", help="Print diagnostics on stderr."
    ),
):
    set_debug(debug)
    thresholds = Thresholds(warning=warning, critical=critical)
    call_timeout = timeout if timeout > 0 else None

    try:
        env = tool_env(java_home)
        target = resolve_target(
            pid=pid,
            service=service,
            java_name=java_name,
            verbose_java_name=verbose_java_name,
            env=env,
            timeout=call_timeout,
        )
        gc = collect_gc_sample(target.pid, env=env, timeout=call_timeout)
        capacity = collect_metaspace_capacity(target.pid, env=env, timeout=call_timeout)
        verdict = evaluate(gc, capacity, thresholds)
    except CheckError as e:
        typer.echo(format_error_line(e.status, str(e)))
        if isinstance(e, UsageError):
            typer.echo(usage_text(PROG_NAME))
        raise typer.Exit(code=int(e.status))

    print_debug(f"{gc} {capacity} -> {verdict.status.name}")
    typer.echo(format_status_line(verdict, target.label))
    raise typer.Exit(code=int(verdict.status))


def main(args: list[str] | None = None):
    """Console script entry point.

    Flag parsing errors are reported as UNKNOWN (exit 3) rather than click's
    exit code 2, which a supervisor would read as CRITICAL.
    """
    command = typer.main.get_command(app)
    try:
        exit_code = command.main(
            args=args, prog_name=PROG_NAME, standalone_mode=False
        )
    except _click_exceptions.UsageError as e:
        typer.echo(format_error_line(Status.UNKNOWN, e.format_message()))
        typer.echo(usage_text(PROG_NAME))
        exit_code = Status.UNKNOWN
    sys.exit(int(exit_code or 0))


if __name__ == "__main__":
    main()
