from rich.console import Console
from rich.markup import escape

from jstatcheck.types import PerfDatum, Status, Verdict

# Diagnostics go to stderr; stdout carries only the plugin output
_console = Console(stderr=True)

_debug_enabled = False

USAGE_LINES = [
    "Usage: {prog} -v",
    "       Print version and exit",
    "Usage: {prog} -h",
    "      Print this help and exit",
    "Usage: {prog} -p <pid> [-w <%ratio>] [-c <%ratio>] [-P <java-home>]",
    "Usage: {prog} -s <service> [-w <%ratio>] [-c <%ratio>] [-P <java-home>]",
    "Usage: {prog} -j <java-name> [-w <%ratio>] [-c <%ratio>] [-P <java-home>]",
    "Usage: {prog} -J <java-name> [-w <%ratio>] [-c <%ratio>] [-P <java-home>]",
    "       -p <pid>       the PID of process to monitor",
    "       -s <service>   the service name of process to monitor",
    "       -j <java-name> the java app (see jps) process to monitor",
    "                      if this name in blank (-j '') any java app is",
    "                      looked for (as long there is only one)",
    "       -J <java-name> same as -j but checks on 'jps -v' output",
    "       -P <java-home> use this java installation path",
    "       -w <%>         the warning threshold ratio current/max in % (defaults to 90)",
    "       -c <%>         the critical threshold ratio current/max in % (defaults to 95)",
    "       -t <seconds>   timeout for each jps/jstat call (defaults to 10)",
    "       -d             print diagnostics on stderr",
]


def usage_text(prog: str) -> str:
    return "\n".join(line.format(prog=prog) for line in USAGE_LINES)


def format_perfdatum(datum: PerfDatum) -> str:
    return (
        f"{datum.label}={datum.value}{datum.unit};{datum.warning};{datum.critical};"
        f"{datum.minimum};{datum.maximum}"
    )


def format_status_line(verdict: Verdict, label: str) -> str:
    """Render the single line a Nagios-style supervisor reads.

    `<STATUS>: jstat process <label> <reason>|<perfdata>`
    """
    perfdata = " ".join(format_perfdatum(datum) for datum in verdict.perfdata)
    return f"{verdict.status.name}: jstat process {label} {verdict.reason}|{perfdata}"


def format_error_line(status: Status, message: str) -> str:
    return f"{status.name}: {message}"


def set_debug(enabled: bool):
    global _debug_enabled
    _debug_enabled = enabled


def print_debug(message: str, prefix: str = "🔍"):
    """Print a diagnostic message when debug output is on."""
    if _debug_enabled:
        _console.print(f"[dim]{prefix} {escape(message)}[/dim]")
