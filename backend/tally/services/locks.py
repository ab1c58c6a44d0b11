"""Per-user single-flight guard for recompute operations."""

from contextlib import contextmanager
from threading import Lock
from typing import Iterator, Set, Tuple

from tally.exceptions import RecomputeInProgressError

_REGISTRY_LOCK = Lock()
_IN_FLIGHT: Set[Tuple[str, str]] = set()


@contextmanager
def single_flight(component: str, user_id: str) -> Iterator[None]:
    """
    Run the body as the only recompute of `component` for `user_id`.

    A concurrent second request is rejected with RecomputeInProgressError
    rather than queued. Keys are dropped on exit, so only running
    recomputes are registered.
    """
    key = (component, user_id)
    with _REGISTRY_LOCK:
        if key in _IN_FLIGHT:
            raise RecomputeInProgressError(component, user_id)
        _IN_FLIGHT.add(key)
    try:
        yield
    finally:
        with _REGISTRY_LOCK:
            _IN_FLIGHT.discard(key)


def in_flight_count() -> int:
    with _REGISTRY_LOCK:
        return len(_IN_FLIGHT)
