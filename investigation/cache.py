"""Named process-wide values: loaded case bundles and the API's live session.

Tests call `clear_all_caches()` between cases so no session or bundle leaks
from one test into the next.
"""
from __future__ import annotations

import threading
from typing import Any, Callable, TypeVar

T = TypeVar("T")

_CACHES: dict[str, Any] = {}
_LOCK = threading.RLock()


def get_cache_value(name: str, default_factory: Callable[[], T] | None = None) -> T:
    """Return the value stored under `name`, building it with `default_factory` on first use.

    Raises KeyError when nothing is stored and no factory is given.
    """
    with _LOCK:
        if name not in _CACHES:
            if default_factory is None:
                raise KeyError(f"Cache '{name}' not initialized")
            _CACHES[name] = default_factory()
        return _CACHES[name]


def set_cache_value(name: str, value: T) -> T:
    with _LOCK:
        _CACHES[name] = value
    return value


def pop_cache_value(name: str) -> Any | None:
    """Remove and return the value under `name` (None if absent)."""
    with _LOCK:
        return _CACHES.pop(name, None)


def clear_cache(name: str) -> None:
    pop_cache_value(name)


def clear_all_caches() -> None:
    with _LOCK:
        _CACHES.clear()
