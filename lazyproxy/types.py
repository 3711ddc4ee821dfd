"""Interface shape model shared by the resolver and the synthesizer."""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple

EMPTY = inspect.Parameter.empty


class Variance(str, Enum):
    """Declared variance of a generic parameter."""

    INVARIANT = "invariant"
    COVARIANT = "covariant"
    CONTRAVARIANT = "contravariant"
    INFERRED = "inferred"


class GenericParameterKind(str, Enum):
    TYPEVAR = "typevar"
    PARAMSPEC = "paramspec"
    TYPEVARTUPLE = "typevartuple"


class MemberKind(str, Enum):
    """How a member is forwarded."""

    METHOD = "method"
    ASYNC_METHOD = "async_method"
    PROPERTY = "property"
    ATTRIBUTE = "attribute"


class ParameterMode(str, Enum):
    """Passing mode of a method parameter."""

    VALUE = "value"
    BY_REF = "by_ref"
    OUT = "out"


@dataclass(frozen=True)
class GenericParameter:
    """Type parameter of a generic interface or method, with its constraints."""

    name: str
    kind: GenericParameterKind
    variance: Variance = Variance.INVARIANT
    bound: Any = None
    constraints: Tuple[Any, ...] = ()
    default: Any = EMPTY
    original: Any = field(default=None, compare=False, repr=False)

    @property
    def has_default(self) -> bool:
        return self.default is not EMPTY


@dataclass(frozen=True)
class ParameterDescriptor:
    name: str
    kind: inspect._ParameterKind
    mode: ParameterMode = ParameterMode.VALUE
    default: Any = EMPTY
    annotation: Any = EMPTY

    @property
    def has_default(self) -> bool:
        return self.default is not EMPTY


@dataclass(frozen=True)
class MemberDescriptor:
    """One forwardable member of an interface."""

    name: str
    kind: MemberKind
    owner: type
    parameters: Tuple[ParameterDescriptor, ...] = ()
    return_annotation: Any = EMPTY
    type_parameters: Tuple[GenericParameter, ...] = ()
    readable: bool = True
    writable: bool = False
    deletable: bool = False
    original: Any = field(default=None, compare=False, repr=False)

    @property
    def is_generic(self) -> bool:
        return bool(self.type_parameters)

    @property
    def is_callable(self) -> bool:
        return self.kind in (MemberKind.METHOD, MemberKind.ASYNC_METHOD)


@dataclass(frozen=True)
class InterfaceShape:
    """Normalized, de-duplicated member surface of an interface."""

    interface: type
    members: Tuple[MemberDescriptor, ...]
    type_parameters: Tuple[GenericParameter, ...] = ()
    disposable: bool = False

    @property
    def name(self) -> str:
        return self.interface.__name__

    @property
    def is_generic(self) -> bool:
        return bool(self.type_parameters)

    def member(self, name: str) -> Optional[MemberDescriptor]:
        for member in self.members:
            if member.name == name:
                return member
        return None

    def member_names(self) -> Tuple[str, ...]:
        return tuple(member.name for member in self.members)
