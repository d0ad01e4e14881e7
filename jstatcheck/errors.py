"""Failures that end a check, each tied to the state it is reported as."""

from jstatcheck.types import Status


class CheckError(Exception):
    status = Status.UNKNOWN


class ConfigurationError(CheckError):
    """Bad or conflicting flags, unreadable pidfile, ambiguous process match."""

    status = Status.UNKNOWN


class TargetNotFound(CheckError):
    status = Status.CRITICAL


class WrongProcessKind(CheckError):
    status = Status.CRITICAL


class CollectionFailure(CheckError):
    """jstat failed, timed out, or returned output that can't be used."""

    status = Status.CRITICAL


class UsageError(ConfigurationError):
    """Missing or conflicting command-line flags; usage is printed after it."""
