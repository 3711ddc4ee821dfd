"""Interface surface resolution.

Turns an interface class into an immutable :class:`InterfaceShape`: every
forwardable member declared on the interface or inherited from its parent
interfaces, plus the generic parameters of the interface and of each generic
method.
"""

from __future__ import annotations

import functools
import inspect
import re
import typing
from abc import ABC, ABCMeta
from typing import Any, Dict, Generic, Iterable, List, Protocol, Set, Tuple

from lazyproxy.base import Disposable, Out, Ref
from lazyproxy.errors import UnsupportedTargetKindError
from lazyproxy.types import (
    EMPTY,
    GenericParameter,
    GenericParameterKind,
    InterfaceShape,
    MemberDescriptor,
    MemberKind,
    ParameterDescriptor,
    ParameterMode,
    Variance,
)

_IGNORED_BASES = frozenset({object, Generic, Protocol, ABC})

# Object lifecycle, attribute protocol and pickling hooks are never forwarded.
_SKIPPED_NAMES = frozenset(
    {
        "__init__",
        "__new__",
        "__del__",
        "__getattr__",
        "__getattribute__",
        "__setattr__",
        "__delattr__",
        "__init_subclass__",
        "__class_getitem__",
        "__subclasshook__",
        "__set_name__",
        "__annotate__",
        "__annotate_func__",
        "__reduce__",
        "__reduce_ex__",
        "__getstate__",
        "__setstate__",
    }
)

_DISPOSE_MEMBER = "close"

_BOX_ANNOTATION = re.compile(r"^\s*(?:[\w.]+\.)?(Out|Ref)\b")
_CLASSVAR_ANNOTATION = re.compile(r"^\s*(?:[\w.]+\.)?ClassVar\b")


def _is_protocol(cls: type) -> bool:
    return cls is not Protocol and bool(cls.__dict__.get("_is_protocol", False))


def _declares_constructor(cls: type) -> bool:
    if _is_protocol(cls):
        return False
    return "__init__" in cls.__dict__ or "__new__" in cls.__dict__


def _is_interface_class(cls: type) -> bool:
    if _is_protocol(cls):
        return True
    return isinstance(cls, ABCMeta) and not _declares_constructor(cls)


def interface_origin(target: Any) -> type:
    """Reduce ``target`` (class or parameterized alias) to its interface class.

    Raises :class:`UnsupportedTargetKindError` for anything that is not an
    interface.
    """
    origin = typing.get_origin(target)
    cls = origin if origin is not None else target
    if not isinstance(cls, type):
        raise UnsupportedTargetKindError(f"lazy proxies need an interface class, got {target!r}")
    check_interface(cls)
    return cls


def check_interface(cls: type) -> None:
    if cls in _IGNORED_BASES:
        raise UnsupportedTargetKindError(f"{cls.__qualname__} is not an interface")
    if not _is_interface_class(cls):
        raise UnsupportedTargetKindError(
            f"lazy proxies are supported only for interfaces, {cls.__qualname__} is a class"
        )
    if not _is_protocol(cls) and not inspect.isabstract(cls):
        raise UnsupportedTargetKindError(
            f"{cls.__qualname__} has no abstract members; concrete classes cannot be proxied"
        )
    for ancestor in cls.__mro__[1:]:
        if ancestor in _IGNORED_BASES:
            continue
        if not _is_interface_class(ancestor):
            raise UnsupportedTargetKindError(
                f"{cls.__qualname__} extends {ancestor.__qualname__}, which is not an interface"
            )


def resolve(target: Any) -> InterfaceShape:
    """Resolve the full, de-duplicated member surface of an interface.

    Nothing is memoized here, so resolving does not keep the interface alive;
    built proxy classes carry their shape as ``__lazyproxy_shape__``.
    """
    return _resolve_interface(interface_origin(target))


def _resolve_interface(interface: type) -> InterfaceShape:
    type_parameters = tuple(
        describe_type_parameter(param) for param in getattr(interface, "__parameters__", ())
    )
    class_params = {param.original for param in type_parameters}
    disposable = issubclass(interface, Disposable)

    seen: Set[str] = set()
    if disposable:
        seen.add(_DISPOSE_MEMBER)

    members: List[MemberDescriptor] = []
    for klass in interface.__mro__:
        if klass in _IGNORED_BASES or klass is Disposable:
            continue
        for name, value in klass.__dict__.items():
            if name in seen or name in _SKIPPED_NAMES:
                continue
            member = _describe_member(klass, name, value, class_params)
            if member is None:
                continue
            seen.add(name)
            members.append(member)
        if _is_protocol(klass):
            for name, annotation in annotations_of(klass).items():
                if name in seen or name in _SKIPPED_NAMES or _is_classvar(annotation):
                    continue
                if isinstance(klass.__dict__.get(name), (staticmethod, classmethod)):
                    continue
                seen.add(name)
                members.append(
                    MemberDescriptor(
                        name=name,
                        kind=MemberKind.ATTRIBUTE,
                        owner=klass,
                        return_annotation=annotation,
                        readable=True,
                        writable=True,
                        deletable=True,
                    )
                )

    return InterfaceShape(
        interface=interface,
        members=tuple(members),
        type_parameters=type_parameters,
        disposable=disposable,
    )


def _describe_member(klass: type, name: str, value: Any, class_params: Set[Any]):
    if isinstance(value, (staticmethod, classmethod)):
        return None
    if isinstance(value, property):
        return MemberDescriptor(
            name=name,
            kind=MemberKind.PROPERTY,
            owner=klass,
            return_annotation=_return_annotation(value.fget),
            readable=value.fget is not None,
            writable=value.fset is not None,
            deletable=value.fdel is not None,
            original=value,
        )
    if isinstance(value, functools.cached_property):
        return MemberDescriptor(
            name=name,
            kind=MemberKind.PROPERTY,
            owner=klass,
            return_annotation=_return_annotation(value.func),
            original=value,
        )
    if not inspect.isfunction(value):
        return None

    signature = inspect.signature(value)
    parameters = list(signature.parameters.values())
    if parameters and parameters[0].kind in (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
    ):
        parameters = parameters[1:]

    kind = MemberKind.ASYNC_METHOD if inspect.iscoroutinefunction(value) else MemberKind.METHOD
    return MemberDescriptor(
        name=name,
        kind=kind,
        owner=klass,
        parameters=tuple(_describe_parameter(param) for param in parameters),
        return_annotation=signature.return_annotation,
        type_parameters=_method_type_parameters(value, class_params),
        original=value,
    )


def _describe_parameter(param: inspect.Parameter) -> ParameterDescriptor:
    return ParameterDescriptor(
        name=param.name,
        kind=param.kind,
        mode=parameter_mode(param.annotation),
        default=param.default,
        annotation=param.annotation,
    )


def parameter_mode(annotation: Any) -> ParameterMode:
    """Classify a parameter annotation as value, by-reference or output-only."""
    if annotation is EMPTY:
        return ParameterMode.VALUE
    if isinstance(annotation, str):
        match = _BOX_ANNOTATION.match(annotation)
        if match is None:
            return ParameterMode.VALUE
        return ParameterMode.OUT if match.group(1) == "Out" else ParameterMode.BY_REF
    origin = typing.get_origin(annotation) or annotation
    if isinstance(origin, type):
        if issubclass(origin, Out):
            return ParameterMode.OUT
        if issubclass(origin, Ref):
            return ParameterMode.BY_REF
    return ParameterMode.VALUE


def describe_type_parameter(param: Any) -> GenericParameter:
    if isinstance(param, typing.ParamSpec):
        kind = GenericParameterKind.PARAMSPEC
    elif isinstance(param, typing.TypeVarTuple):
        kind = GenericParameterKind.TYPEVARTUPLE
    else:
        kind = GenericParameterKind.TYPEVAR

    if getattr(param, "__infer_variance__", False):
        variance = Variance.INFERRED
    elif getattr(param, "__covariant__", False):
        variance = Variance.COVARIANT
    elif getattr(param, "__contravariant__", False):
        variance = Variance.CONTRAVARIANT
    else:
        variance = Variance.INVARIANT

    has_default = getattr(param, "has_default", None)
    default = param.__default__ if callable(has_default) and has_default() else EMPTY

    return GenericParameter(
        name=param.__name__,
        kind=kind,
        variance=variance,
        bound=getattr(param, "__bound__", None),
        constraints=tuple(getattr(param, "__constraints__", ())),
        default=default,
        original=param,
    )


def _method_type_parameters(func: Any, class_params: Set[Any]) -> Tuple[GenericParameter, ...]:
    found: List[Any] = list(getattr(func, "__type_params__", ()))
    for annotation in _type_hints(func).values():
        for param in _iter_type_parameters(annotation):
            if param not in class_params and param not in found:
                found.append(param)
    return tuple(describe_type_parameter(param) for param in found)


def _iter_type_parameters(annotation: Any) -> Iterable[Any]:
    if isinstance(annotation, (typing.TypeVar, typing.ParamSpec, typing.TypeVarTuple)):
        yield annotation
        return
    for arg in getattr(annotation, "__args__", None) or ():
        yield from _iter_type_parameters(arg)


def _type_hints(func: Any) -> Dict[str, Any]:
    try:
        return typing.get_type_hints(func)
    except Exception:
        # String annotations naming locals cannot be evaluated here.
        return annotations_of(func)


def annotations_of(obj: Any) -> Dict[str, Any]:
    try:
        return dict(inspect.get_annotations(obj))
    except NameError:
        return {}


def _return_annotation(func: Any) -> Any:
    if func is None:
        return EMPTY
    return annotations_of(func).get("return", EMPTY)


def _is_classvar(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return _CLASSVAR_ANNOTATION.match(annotation) is not None
    return annotation is typing.ClassVar or typing.get_origin(annotation) is typing.ClassVar
