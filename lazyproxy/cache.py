"""Process-wide memo of synthesized proxy classes."""

from __future__ import annotations

import logging
import threading
import typing
from concurrent.futures import Future
from typing import Any, Dict, Optional, Tuple

from lazyproxy.errors import TypeArgumentError
from lazyproxy.surface import interface_origin, resolve
from lazyproxy.synthesizer import DEFAULT_TYPE_NAME_PREFIX, synthesize
from lazyproxy.types import GenericParameter, GenericParameterKind, InterfaceShape

logger = logging.getLogger(__name__)


class ProxyTypeCache:
    """Builds each proxy class once per open interface, single-flight across threads.

    Closed generic requests such as ``IPair[int, str]`` share the proxy class
    built for ``IPair`` and are specialized per argument tuple.
    """

    def __init__(
        self,
        *,
        type_name_prefix: str = DEFAULT_TYPE_NAME_PREFIX,
        validate_type_arguments: bool = True,
    ) -> None:
        self.type_name_prefix = type_name_prefix
        self.validate_type_arguments = validate_type_arguments
        self._lock = threading.Lock()
        self._entries: Dict[type, Future] = {}
        self._specializations: Dict[Tuple[type, Tuple[Any, ...]], Any] = {}

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for future in self._entries.values() if future.done())

    def __contains__(self, target: Any) -> bool:
        key = typing.get_origin(target) or target
        with self._lock:
            future = self._entries.get(key)
        return future is not None and future.done() and future.exception() is None

    def get_or_build(self, target: Any) -> Any:
        """Return the proxy class for ``target``, building it on first request."""
        interface = interface_origin(target)
        proxy_type = self._open_type(interface)

        args = typing.get_args(target)
        if not args:
            return proxy_type
        shape: InterfaceShape = proxy_type.__lazyproxy_shape__
        if not shape.is_generic:
            return proxy_type
        return self._specialize(interface, proxy_type, shape, args)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._specializations.clear()

    def _open_type(self, interface: type) -> type:
        with self._lock:
            future = self._entries.get(interface)
            owner = future is None
            if owner:
                future = self._entries[interface] = Future()

        if not owner:
            return future.result()

        try:
            proxy_type = synthesize(resolve(interface), type_name_prefix=self.type_name_prefix)
        except BaseException as exc:
            with self._lock:
                self._entries.pop(interface, None)
            future.set_exception(exc)
            raise

        future.set_result(proxy_type)
        return proxy_type

    def _specialize(
        self, interface: type, proxy_type: type, shape: InterfaceShape, args: Tuple[Any, ...]
    ) -> Any:
        key = (interface, args)
        with self._lock:
            cached = self._specializations.get(key)
        if cached is not None:
            return cached

        if self.validate_type_arguments:
            check_type_arguments(shape, args)
        closed = proxy_type[args]

        with self._lock:
            closed = self._specializations.setdefault(key, closed)
        logger.debug("Specialized %s with %s", proxy_type.__qualname__, args)
        return closed


def check_type_arguments(shape: InterfaceShape, args: Tuple[Any, ...]) -> None:
    """Reject type arguments that break a bound or constraint of the interface.

    Only plain classes are checked; protocols, aliases, forward references and
    type variables pass through unchecked.
    """
    for param, arg in zip(shape.type_parameters, args):
        if param.kind is not GenericParameterKind.TYPEVAR:
            continue
        problem = _argument_problem(param, arg)
        if problem is not None:
            raise TypeArgumentError(
                f"{shape.interface.__qualname__}[{param.name}]: {arg!r} {problem}"
            )


def _argument_problem(param: GenericParameter, arg: Any) -> Optional[str]:
    if not _checkable(arg):
        return None
    if param.constraints:
        checkable = [constraint for constraint in param.constraints if _checkable(constraint)]
        if len(checkable) != len(param.constraints):
            return None
        if not any(issubclass(arg, constraint) for constraint in checkable):
            names = ", ".join(constraint.__qualname__ for constraint in checkable)
            return f"is not one of the constraints ({names})"
        return None
    if param.bound is not None and _checkable(param.bound) and not issubclass(arg, param.bound):
        return f"is not a subclass of bound {param.bound.__qualname__}"
    return None


def _checkable(tp: Any) -> bool:
    return (
        isinstance(tp, type)
        and typing.get_origin(tp) is None
        and not getattr(tp, "_is_protocol", False)
    )
