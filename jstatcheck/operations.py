"""Target resolution and jstat collection for jstatcheck."""

import os
import subprocess
from pathlib import Path

import psutil

from jstatcheck.errors import (
    CollectionFailure,
    ConfigurationError,
    TargetNotFound,
    UsageError,
    WrongProcessKind,
)
from jstatcheck.evaluation import GC_STATISTICS_ERROR, METASPACE_STATISTICS_ERROR
from jstatcheck.types import (
    GcSample,
    JavaProcess,
    MetaspaceCapacitySample,
    ProcessTarget,
)
from jstatcheck.ui import print_debug

RUN_DIR = Path("/var/run")

# Selector flags, in the order conflicts are reported
_SELECTOR_FLAGS = ["-p", "-s", "-j", "-J"]

_JPS_SELF = "Jps"


# ===== Tool search path =====


def tool_env(java_home: str | None) -> dict[str, str] | None:
    """Environment for jps/jstat, with <java_home>/bin searched first.

    Returns None (inherit our environment) when no java home is given.
    """
    if not java_home:
        return None

    bin_dir = Path(java_home) / "bin"
    jstat = bin_dir / "jstat"
    if not (jstat.is_file() and os.access(jstat, os.X_OK)):
        raise UsageError(f"jstat not found in {bin_dir}")

    env = dict(os.environ)
    env["PATH"] = os.pathsep.join(filter(None, [str(bin_dir), env.get("PATH", "")]))
    return env


# ===== Selector validation =====


def select_mode(
    pid: int | None,
    service: str | None,
    java_name: str | None,
    verbose_java_name: str | None,
) -> str:
    """Return the single selector flag in use.

    An empty -j/-J name still counts as given: it means "the only java app".
    """
    given = dict(zip(_SELECTOR_FLAGS, [pid, service, java_name, verbose_java_name]))
    used = [flag for flag, value in given.items() if value is not None]

    if not used:
        raise UsageError("One of -p, -s or -j parameter must be provided")
    if len(used) > 1:
        raise UsageError(
            f"Only one of {used[0]} or {used[1]} parameter must be provided"
        )
    return used[0]


# ===== Pidfile lookup =====


def pidfile_path(service: str) -> Path:
    return RUN_DIR / f"{service}.pid"


def read_pidfile(service: str) -> int:
    path = pidfile_path(service)
    try:
        content = path.read_text().strip()
    except UnicodeDecodeError:
        raise ConfigurationError(f"{path} does not hold a valid pid")
    except OSError:
        raise ConfigurationError(f"{path} not found")

    try:
        return int(content.split()[0])
    except (IndexError, ValueError):
        raise ConfigurationError(f"{path} does not hold a valid pid")


# ===== Java process listing and selection =====


def parse_jps_output(output: str) -> list[JavaProcess]:
    processes: list[JavaProcess] = []
    for line in output.splitlines():
        parts = line.split(None, 2)
        if not parts or not parts[0].isdigit():
            continue
        processes.append(
            JavaProcess(
                pid=int(parts[0]),
                name=parts[1] if len(parts) > 1 else "",
                arguments=parts[2] if len(parts) > 2 else "",
            )
        )
    return processes


def list_java_processes(
    verbose: bool = False,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
) -> list[JavaProcess]:
    """Java processes as reported by jps. Any jps failure yields an empty list."""
    cmd = ["jps", "-v"] if verbose else ["jps"]
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            errors="replace",
            env=env,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        print_debug(f"{' '.join(cmd)} failed: {e}")
        return []

    if result.returncode != 0:
        print_debug(f"{' '.join(cmd)} exited with {result.returncode}")
        return []

    return [p for p in parse_jps_output(result.stdout) if p.name != _JPS_SELF]


def filter_java_processes(
    processes: list[JavaProcess], name: str
) -> list[JavaProcess]:
    if not name:
        return list(processes)
    return [p for p in processes if name in f"{p.name} {p.arguments}"]


def select_java_process(processes: list[JavaProcess], name: str) -> ProcessTarget:
    candidates = filter_java_processes(processes, name)
    if len(candidates) != 1:
        print_debug(f"{len(candidates)} java app(s) match {name!r}")
        raise ConfigurationError("No (or multiple) java app found")

    match = candidates[0]
    return ProcessTarget(pid=match.pid, label=name or match.name or str(match.pid))


# ===== Target resolution =====


def verify_java_process(pid: int) -> None:
    if not psutil.pid_exists(pid):
        raise TargetNotFound(f"process pid[{pid}] not found")

    try:
        proc_name = psutil.Process(pid).name()
    except psutil.NoSuchProcess:
        raise TargetNotFound(f"process pid[{pid}] not found")
    except psutil.AccessDenied:
        # The name can't be read here, so only liveness is checked
        print_debug(f"cannot read the name of pid {pid}, skipping java check")
        return

    if proc_name != "java":
        raise WrongProcessKind(
            f"process pid[{pid}] seems not to be a JAVA application"
        )


def resolve_target(
    pid: int | None = None,
    service: str | None = None,
    java_name: str | None = None,
    verbose_java_name: str | None = None,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
) -> ProcessTarget:
    mode = select_mode(pid, service, java_name, verbose_java_name)

    if mode == "-p":
        target = ProcessTarget(pid=pid, label=str(pid))
    elif mode == "-s":
        target = ProcessTarget(pid=read_pidfile(service), label=service)
    else:
        verbose = mode == "-J"
        name = verbose_java_name if verbose else java_name
        processes = list_java_processes(verbose=verbose, env=env, timeout=timeout)
        target = select_java_process(processes, name)

    print_debug(f"resolved {mode} to pid {target.pid} ({target.label})")
    verify_java_process(target.pid)
    return target


# ===== jstat collection =====


def parse_named_table(output: str) -> dict[str, str]:
    """Map header names to the values of the first data row.

    Columns are looked up by name because their order differs between JDK
    releases.
    """
    rows = [line.split() for line in output.splitlines() if line.strip()]
    if len(rows) < 2:
        raise ValueError("expected a header row and a data row")

    header, values = rows[0], rows[1]
    columns = {name: index for index, name in enumerate(header)}
    return {
        name: values[index] for name, index in columns.items() if index < len(values)
    }


def named_number(row: dict[str, str], name: str) -> float:
    if name not in row:
        raise ValueError(f"column {name} missing")
    return float(row[name])


def run_jstat(
    option: str,
    pid: int,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
) -> str:
    """Run `jstat <option> <pid>` and return its stdout.

    Raises CalledProcessError on a nonzero exit and ValueError on empty output.
    """
    cmd = ["jstat", option, str(pid)]
    result = subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        errors="replace",
        env=env,
        timeout=timeout,
    )
    if result.returncode != 0:
        raise subprocess.CalledProcessError(
            result.returncode, cmd, result.stdout, result.stderr
        )
    if not result.stdout.strip():
        raise ValueError(f"{' '.join(cmd)} printed nothing")
    return result.stdout


def _collect_row(
    option: str,
    pid: int,
    error: str,
    env: dict[str, str] | None,
    timeout: float | None,
) -> dict[str, str]:
    try:
        return parse_named_table(run_jstat(option, pid, env=env, timeout=timeout))
    except (
        OSError,
        ValueError,
        subprocess.CalledProcessError,
        subprocess.TimeoutExpired,
    ) as e:
        print_debug(f"jstat {option} {pid}: {e}")
        raise CollectionFailure(error) from e


def collect_gc_sample(
    pid: int,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
) -> GcSample:
    row = _collect_row("-gc", pid, GC_STATISTICS_ERROR, env, timeout)
    try:
        return GcSample(
            s0_used=named_number(row, "S0U"),
            s1_used=named_number(row, "S1U"),
            eden_used=named_number(row, "EU"),
            old_used=named_number(row, "OU"),
            s0_capacity=named_number(row, "S0C"),
            s1_capacity=named_number(row, "S1C"),
            eden_capacity=named_number(row, "EC"),
            old_capacity=named_number(row, "OC"),
            metaspace_used=named_number(row, "MU"),
        )
    except ValueError as e:
        print_debug(f"jstat -gc {pid}: {e}")
        raise CollectionFailure(GC_STATISTICS_ERROR) from e


def collect_metaspace_capacity(
    pid: int,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
) -> MetaspaceCapacitySample:
    row = _collect_row(
        "-gcmetacapacity", pid, METASPACE_STATISTICS_ERROR, env, timeout
    )
    try:
        return MetaspaceCapacitySample(max_capacity=named_number(row, "MCMX"))
    except ValueError as e:
        print_debug(f"jstat -gcmetacapacity {pid}: {e}")
        raise CollectionFailure(METASPACE_STATISTICS_ERROR) from e
