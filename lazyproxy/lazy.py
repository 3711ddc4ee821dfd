"""Thread-safe deferred value holder backing every lazy proxy."""

from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Callable, Generic, Optional, TypeVar

from lazyproxy.errors import RecursiveInitializationError

T = TypeVar("T")


class Lazy(Generic[T]):
    """Single-assignment lazy container that runs its factory on first read.

    Concurrent first reads share one in-flight attempt, so the factory runs
    once and every caller of that attempt sees its value or its error. A
    failed attempt is not cached: the factory is kept and the next ``read``
    tries again.
    """

    __slots__ = ("_factory", "_value", "_produced", "_released", "_attempt", "_owner", "_lock")

    def __init__(self, factory: Callable[[], T]) -> None:
        if not callable(factory):
            raise TypeError(f"factory must be callable, got {type(factory).__name__}")
        self._factory: Optional[Callable[[], T]] = factory
        self._value: Optional[T] = None
        self._produced = False
        self._released = False
        self._attempt: Optional[Future] = None
        self._owner: Optional[int] = None
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        state = "produced" if self._produced else "pending"
        return f"<{type(self).__name__} {state}>"

    def is_produced(self) -> bool:
        return self._produced

    def get_if_initialized(self) -> Optional[T]:
        return self._value if self._produced else None

    def read(self) -> T:
        if self._produced:
            return self._value  # type: ignore[return-value]

        with self._lock:
            if self._produced:
                return self._value  # type: ignore[return-value]
            attempt = self._attempt
            if attempt is None:
                attempt = self._attempt = Future()
                self._owner = threading.get_ident()
                owner = True
            else:
                if self._owner == threading.get_ident():
                    raise RecursiveInitializationError(
                        "factory tried to read the value it is producing"
                    )
                owner = False

        if not owner:
            return attempt.result()
        return self._run(attempt)

    def _run(self, attempt: Future) -> T:
        factory = self._factory
        try:
            value = factory()  # type: ignore[misc]
        except BaseException as exc:
            with self._lock:
                self._attempt = None
                self._owner = None
            attempt.set_exception(exc)
            raise

        with self._lock:
            self._value = value
            self._produced = True
            self._factory = None
            self._attempt = None
            self._owner = None
        attempt.set_result(value)
        return value

    def release_if_produced(self) -> bool:
        """Close the produced value once; never runs the factory."""
        with self._lock:
            if not self._produced or self._released:
                return False
            self._released = True
            value = self._value

        close = getattr(value, "close", None)
        if callable(close):
            close()
        return True
