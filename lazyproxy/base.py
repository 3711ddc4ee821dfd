"""Runtime pieces shared by interfaces and synthesized proxy classes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Optional, TypeVar

from lazyproxy.lazy import Lazy

T = TypeVar("T")

HOLDER_ATTR = "_lazyproxy_holder"


class Disposable(ABC):
    """Disposal capability: ``close()`` releases owned resources.

    A lazy proxy of a ``Disposable`` interface only closes the real object if
    it was ever produced.
    """

    __slots__ = ()

    @abstractmethod
    def close(self) -> None:
        raise NotImplementedError

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class Ref(Generic[T]):
    """Mutable box for by-reference parameters."""

    __slots__ = ("value",)

    def __init__(self, value: T) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"


class Out(Ref[T]):
    """Box for output-only parameters; the callee assigns ``value``."""

    __slots__ = ()

    def __init__(self) -> None:
        super().__init__(None)  # type: ignore[arg-type]


class LazyProxyBase:
    """Base of every synthesized proxy class.

    Holds the deferred target. Generated classes add one forwarding member per
    interface member on top of this.
    """

    __slots__ = (HOLDER_ATTR,)

    __lazyproxy_interface__: Optional[type] = None

    def __init__(self, factory: Callable[[], Any]) -> None:
        self._lazyproxy_initialize(factory)

    def _lazyproxy_initialize(self, factory: Callable[[], Any]) -> None:
        object.__setattr__(self, HOLDER_ATTR, Lazy(factory))

    def __repr__(self) -> str:
        interface = self.__lazyproxy_interface__
        name = interface.__qualname__ if interface is not None else type(self).__qualname__
        holder = getattr(self, HOLDER_ATTR, None)
        state = "materialized" if holder is not None and holder.is_produced() else "pending"
        return f"<lazy {name} proxy ({state})>"


def holder_of(proxy: Any) -> Lazy:
    """Return the deferred value holder behind a proxy instance."""
    try:
        return object.__getattribute__(proxy, HOLDER_ATTR)
    except AttributeError:
        raise TypeError(f"{type(proxy).__name__} is not an initialized lazy proxy") from None


def is_materialized(proxy: Any) -> bool:
    return holder_of(proxy).is_produced()
