"""External state available to asynchronous validation."""

import os
import typing
from dataclasses import dataclass, field


@typing.runtime_checkable
class UniquenessLookup(typing.Protocol):
    """Read-only data source answering uniqueness questions.

    Implementations wrap whatever store holds the records (a database
    collection, a cache, an HTTP service). Failures should be raised as
    exceptions; rulebook turns them into validation errors.
    """

    async def exists(
        self,
        collection: str,
        field: str,
        value: typing.Any,
        exclude_id: typing.Any | None = None,
    ) -> bool:
        """Return True if a record other than ``exclude_id`` has ``field == value``."""
        ...


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except (ValueError, TypeError):
        return 1


def _env_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except (ValueError, TypeError):
        return None


def default_max_concurrency() -> int:
    """Number of fields validated at once by ``validate_async``.

    Reads ``RULEBOOK_MAX_CONCURRENCY``; unparseable values fall back to 1.
    Without the variable the default is the CPU count, capped at 32.
    """
    env_value = _env_int("RULEBOOK_MAX_CONCURRENCY")
    if env_value is not None:
        return max(1, min(32, env_value))
    return min(32, os.cpu_count() or 1)


def default_lookup_timeout() -> float | None:
    """Seconds allowed per external lookup, from ``RULEBOOK_LOOKUP_TIMEOUT``."""
    timeout = _env_float("RULEBOOK_LOOKUP_TIMEOUT")
    if timeout is not None and timeout <= 0:
        return None
    return timeout


@dataclass(frozen=True)
class ValidationContext:
    """Collaborators and limits for one asynchronous validation.

    Attributes:
        lookup: Backend used by ``Rule.unique``; None if no rule needs it
        lookup_timeout: Seconds to wait for each lookup (None waits forever)
        max_concurrency: Maximum number of fields validated concurrently
    """

    lookup: UniquenessLookup | None = None
    lookup_timeout: float | None = field(default_factory=default_lookup_timeout)
    max_concurrency: int = field(default_factory=default_max_concurrency)
