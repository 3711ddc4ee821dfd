"""Run time synthesis of lazy proxy classes.

For an interface shape the synthesizer writes the source of one forwarding
function per member, compiles it, and assembles a class deriving from
:class:`~lazyproxy.base.LazyProxyBase` and the interface. For ``IService``
with a single method ``fetch(self, key, *, timeout=None)`` the generated
class is equivalent to::

    class LazyProxyImpl_<uuid>_IService(LazyProxyBase, IService):
        __slots__ = ()

        def fetch(self, /, key, *, timeout=<default>):
            return self._lazyproxy_holder.read().fetch(key, timeout=timeout)
"""

from __future__ import annotations

import inspect
import linecache
import logging
import types
import typing
import uuid
from typing import Any, Dict, List, Tuple

from lazyproxy.base import HOLDER_ATTR, LazyProxyBase
from lazyproxy.surface import annotations_of
from lazyproxy.types import (
    GenericParameter,
    GenericParameterKind,
    InterfaceShape,
    MemberDescriptor,
    MemberKind,
    ParameterDescriptor,
)

logger = logging.getLogger(__name__)

DEFAULT_TYPE_NAME_PREFIX = "LazyProxyImpl"

_P = inspect.Parameter


def synthesize(shape: InterfaceShape, *, type_name_prefix: str = DEFAULT_TYPE_NAME_PREFIX) -> type:
    """Build a new proxy class for ``shape``.

    Every call produces a distinct class with a unique name; caching is the
    job of :class:`~lazyproxy.cache.ProxyTypeCache`.
    """
    interface = shape.interface
    token = uuid.uuid4().hex
    class_name = f"{type_name_prefix}_{token}_{interface.__name__}"

    namespace = _compile_members(shape, class_name, token)
    if shape.disposable:
        namespace["close"] = _compile_close(class_name, token, interface)

    parameters = tuple(strip_variance(param) for param in shape.type_parameters)
    base = interface[parameters] if parameters else interface

    def exec_body(ns: Dict[str, Any]) -> None:
        ns.update(namespace)
        ns["__module__"] = interface.__module__
        ns["__qualname__"] = class_name
        ns["__doc__"] = f"Lazy proxy implementing {interface.__qualname__}."
        ns["__slots__"] = ()
        ns["__lazyproxy_interface__"] = interface
        ns["__lazyproxy_shape__"] = shape

    proxy_type = types.new_class(class_name, (LazyProxyBase, base), exec_body=exec_body)
    logger.debug(
        "Synthesized %s for %s.%s members=%d generic=%s",
        class_name,
        interface.__module__,
        interface.__qualname__,
        len(shape.members),
        bool(parameters),
    )
    return proxy_type


def strip_variance(param: GenericParameter) -> Any:
    """Return an invariant copy of a type variable, keeping bound, constraints and default."""
    if param.kind is not GenericParameterKind.TYPEVAR:
        return param.original
    kwargs: Dict[str, Any] = {}
    if param.bound is not None:
        kwargs["bound"] = param.bound
    if param.has_default:
        kwargs["default"] = param.default
    return typing.TypeVar(param.name, *param.constraints, **kwargs)


def _compile_members(shape: InterfaceShape, class_name: str, token: str) -> Dict[str, Any]:
    globals_ns: Dict[str, Any] = {"__builtins__": __builtins__}
    chunks: List[str] = []
    for index, member in enumerate(shape.members):
        if member.is_callable:
            chunks.append(_method_source(member, index, globals_ns))
        else:
            chunks.append(_property_source(member, index))

    source = "\n".join(chunks)
    filename = f"<lazyproxy {token} {shape.interface.__qualname__}>"
    _execute(source, filename, globals_ns)

    namespace: Dict[str, Any] = {}
    for index, member in enumerate(shape.members):
        if member.is_callable:
            function = globals_ns[member.name]
            _copy_metadata(function, member, class_name)
            namespace[member.name] = function
        else:
            namespace[member.name] = property(
                globals_ns.get(f"_lazyproxy_get_{index}"),
                globals_ns.get(f"_lazyproxy_set_{index}"),
                globals_ns.get(f"_lazyproxy_del_{index}"),
                _member_doc(member),
            )
    return namespace


def _compile_close(class_name: str, token: str, interface: type):
    source = (
        "def close(self):\n"
        f"    self.{HOLDER_ATTR}.release_if_produced()\n"
    )
    globals_ns: Dict[str, Any] = {"__builtins__": __builtins__}
    _execute(source, f"<lazyproxy {token} {interface.__qualname__}.close>", globals_ns)
    close = globals_ns["close"]
    close.__qualname__ = f"{class_name}.close"
    close.__module__ = interface.__module__
    close.__doc__ = "Close the real object if it was ever created."
    return close


def _execute(source: str, filename: str, globals_ns: Dict[str, Any]) -> None:
    linecache.cache[filename] = (len(source), None, source.splitlines(True), filename)
    exec(compile(source, filename, "exec"), globals_ns)


def _receiver_name(parameters: Tuple[ParameterDescriptor, ...]) -> str:
    names = {param.name for param in parameters}
    receiver = "self"
    while receiver in names:
        receiver = f"_{receiver}"
    return receiver


def _method_source(member: MemberDescriptor, index: int, globals_ns: Dict[str, Any]) -> str:
    receiver = _receiver_name(member.parameters)
    signature: List[str] = [receiver]
    arguments: List[str] = []
    positional_only_done = False
    star_written = False

    for position, param in enumerate(member.parameters):
        if param.kind is not _P.POSITIONAL_ONLY and not positional_only_done:
            signature.append("/")
            positional_only_done = True

        if param.kind is _P.VAR_POSITIONAL:
            signature.append(f"*{param.name}")
            arguments.append(f"*{param.name}")
            star_written = True
            continue
        if param.kind is _P.VAR_KEYWORD:
            signature.append(f"**{param.name}")
            arguments.append(f"**{param.name}")
            continue
        if param.kind is _P.KEYWORD_ONLY and not star_written:
            signature.append("*")
            star_written = True

        text = param.name
        if param.has_default:
            default_name = f"_lazyproxy_default_{index}_{position}"
            globals_ns[default_name] = param.default
            text = f"{text}={default_name}"
        signature.append(text)

        if param.kind is _P.KEYWORD_ONLY:
            arguments.append(f"{param.name}={param.name}")
        else:
            arguments.append(param.name)

    if not positional_only_done:
        signature.append("/")

    target = f"{receiver}.{HOLDER_ATTR}.read().{member.name}({', '.join(arguments)})"
    if member.kind is MemberKind.ASYNC_METHOD:
        return f"async def {member.name}({', '.join(signature)}):\n    return await {target}\n"
    return f"def {member.name}({', '.join(signature)}):\n    return {target}\n"


def _property_source(member: MemberDescriptor, index: int) -> str:
    target = f"self.{HOLDER_ATTR}.read().{member.name}"
    lines: List[str] = []
    if member.readable:
        lines.append(f"def _lazyproxy_get_{index}(self):\n    return {target}\n")
    if member.writable:
        lines.append(f"def _lazyproxy_set_{index}(self, value):\n    {target} = value\n")
    if member.deletable:
        lines.append(f"def _lazyproxy_del_{index}(self):\n    del {target}\n")
    return "\n".join(lines)


def _copy_metadata(function: Any, member: MemberDescriptor, class_name: str) -> None:
    original = member.original
    function.__qualname__ = f"{class_name}.{member.name}"
    function.__module__ = member.owner.__module__
    function.__doc__ = getattr(original, "__doc__", None)
    function.__annotations__ = annotations_of(original)
    type_params = getattr(original, "__type_params__", None)
    if type_params:
        function.__type_params__ = type_params


def _member_doc(member: MemberDescriptor) -> Any:
    original = member.original
    if isinstance(original, property):
        return original.__doc__
    return getattr(original, "__doc__", None) if original is not None else None
