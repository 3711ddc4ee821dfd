import threading
import time
import typing
from abc import ABC, abstractmethod
from typing import Generic, Protocol, TypeVar, runtime_checkable

import pytest

from lazyproxy.base import Disposable, Out, Ref, holder_of, is_materialized
from lazyproxy.builder import LazyProxyBuilder, create_lazy_instance, get_proxy_type
from lazyproxy.config import Config, SynthesisSettings
from lazyproxy.errors import UnsupportedTargetKindError

T = TypeVar("T")
T1 = TypeVar("T1")
T2 = TypeVar("T2")


class IFoo(ABC):
    @abstractmethod
    def foo(self) -> str: ...


class Foo(IFoo):
    def foo(self):
        return "x"


class IParentService(ABC):
    @property
    @abstractmethod
    def parent_property(self) -> int: ...

    @parent_property.setter
    @abstractmethod
    def parent_property(self, value: int) -> None: ...

    @abstractmethod
    def parent_method(self, flag: bool) -> str: ...


class IService(IParentService):
    @abstractmethod
    def method(self, text: str, count: int) -> str: ...

    @abstractmethod
    def method_with_default(self, arg: str = "arg") -> str: ...

    @abstractmethod
    def try_parse(self, text: str, result: Out[int]) -> bool: ...

    @abstractmethod
    def double(self, value: Ref[int]) -> None: ...

    @abstractmethod
    def first_of(self, items: typing.List[T]) -> T: ...

    @abstractmethod
    def __getitem__(self, index: int) -> str: ...

    @abstractmethod
    def __setitem__(self, index: int, value: str) -> None: ...


class Service(IService):
    def __init__(self) -> None:
        self._parent_property = 0
        self.items = {}

    @property
    def parent_property(self):
        return self._parent_property

    @parent_property.setter
    def parent_property(self, value):
        self._parent_property = value

    def parent_method(self, flag):
        return f"parent:{flag}"

    def method(self, text, count):
        return text * count

    def method_with_default(self, arg="arg"):
        return f"got {arg}"

    def try_parse(self, text, result):
        if text.isdigit():
            result.value = int(text)
            return True
        return False

    def double(self, value):
        value.value *= 2

    def first_of(self, items):
        return items[0]

    def __getitem__(self, index):
        return self.items[index]

    def __setitem__(self, index, value):
        self.items[index] = value


class IPair(ABC, Generic[T1, T2]):
    @abstractmethod
    def get1(self) -> T1: ...

    @abstractmethod
    def get2(self) -> T2: ...


class Pair(IPair[T1, T2]):
    def __init__(self, first, second) -> None:
        self.first = first
        self.second = second

    def get1(self):
        return self.first

    def get2(self):
        return self.second


class IConnection(Disposable):
    @abstractmethod
    def send(self, payload: bytes) -> int: ...


class Connection(IConnection):
    def __init__(self) -> None:
        self.disposed = 0

    def send(self, payload):
        return len(payload)

    def close(self):
        self.disposed += 1


class ServiceError(Exception):
    pass


class IFailing(ABC):
    @abstractmethod
    def explode(self) -> None: ...


class Failing(IFailing):
    def explode(self):
        raise ServiceError("boom")


@runtime_checkable
class IClock(Protocol):
    def now(self) -> float: ...


class Clock:
    def now(self):
        return 12.5


@runtime_checkable
class INamed(Protocol):
    name: str

    def describe(self) -> str: ...


class Named:
    def __init__(self) -> None:
        self.name = "ada"

    def describe(self):
        return f"named {self.name}"


class IVersioned(Protocol):
    version: int = 1

    def describe(self) -> str: ...


class Versioned:
    def __init__(self) -> None:
        self.version = 7

    def describe(self):
        return f"v{self.version}"


class NotAnInterface:
    def foo(self):
        return "x"


def _counting(factory):
    calls = {"count": 0}

    def wrapped():
        calls["count"] += 1
        return factory()

    return wrapped, calls


def test_single_method_forwards_and_constructs_once():
    factory, calls = _counting(Foo)
    proxy = create_lazy_instance(IFoo, factory)

    assert calls["count"] == 0
    assert proxy.foo() == "x"
    assert proxy.foo() == "x"
    assert calls["count"] == 1


def test_creating_proxy_never_runs_factory():
    factory, calls = _counting(Service)

    proxy = create_lazy_instance(IService, factory)

    assert calls["count"] == 0
    assert not is_materialized(proxy)
    assert "pending" in repr(proxy)


def test_proxy_is_instance_of_interface_and_parents():
    proxy = create_lazy_instance(IService, Service)

    assert isinstance(proxy, IService)
    assert isinstance(proxy, IParentService)
    assert not is_materialized(proxy)


def test_get_proxy_type_is_stable():
    assert get_proxy_type(IService) is get_proxy_type(IService)
    assert type(create_lazy_instance(IService, Service)) is get_proxy_type(IService)


def test_methods_properties_and_parent_members_are_forwarded():
    service = Service()
    proxy = create_lazy_instance(IService, lambda: service)

    assert proxy.method("ab", 3) == "ababab"
    assert proxy.parent_method(True) == "parent:True"
    proxy.parent_property = 5
    assert service.parent_property == 5
    assert proxy.parent_property == 5
    assert proxy.method_with_default() == "got arg"
    assert proxy.method_with_default("other") == "got other"


def test_indexer_is_forwarded():
    service = Service()
    proxy = create_lazy_instance(IService, lambda: service)

    proxy[3] = "three"

    assert service.items == {3: "three"}
    assert proxy[3] == "three"
    with pytest.raises(KeyError):
        proxy[4]


def test_generic_method_is_forwarded():
    proxy = create_lazy_instance(IService, Service)

    assert proxy.first_of(["a", "b"]) == "a"
    assert proxy.first_of([1, 2]) == 1


def test_out_parameter_delivers_value():
    proxy = create_lazy_instance(IService, Service)
    result = Out()

    assert proxy.try_parse("42", result) is True
    assert result.value == 42

    missing = Out()
    assert proxy.try_parse("nope", missing) is False
    assert missing.value is None


def test_ref_parameter_round_trips():
    proxy = create_lazy_instance(IService, Service)
    value = Ref(21)

    proxy.double(value)

    assert value.value == 42


def test_real_object_identity_is_stable():
    proxy = create_lazy_instance(IService, Service)

    proxy.method("a", 1)
    target = holder_of(proxy).read()
    proxy.method("b", 1)

    assert holder_of(proxy).read() is target
    assert holder_of(proxy).get_if_initialized() is target


def test_generic_interface_instantiations_share_open_type():
    proxy_int_str = create_lazy_instance(IPair[int, str], lambda: Pair(1, "one"))
    proxy_str_float = create_lazy_instance(IPair[str, float], lambda: Pair("two", 2.0))

    assert proxy_int_str.get1() == 1
    assert proxy_int_str.get2() == "one"
    assert proxy_str_float.get1() == "two"
    assert proxy_str_float.get2() == 2.0

    assert type(proxy_int_str) is type(proxy_str_float)
    assert proxy_int_str.__orig_class__ == get_proxy_type(IPair[int, str])
    assert get_proxy_type(IPair[int, str]) is not get_proxy_type(IPair[str, float])
    assert typing.get_origin(get_proxy_type(IPair[int, str])) is get_proxy_type(IPair)
    assert isinstance(proxy_int_str, IPair)


def test_dispose_after_use_forwards_once():
    connection = Connection()
    proxy = create_lazy_instance(IConnection, lambda: connection)

    assert proxy.send(b"abc") == 3
    proxy.close()
    proxy.close()

    assert connection.disposed == 1


def test_dispose_without_use_never_builds_real_object():
    factory, calls = _counting(Connection)
    proxy = create_lazy_instance(IConnection, factory)

    proxy.close()

    assert calls["count"] == 0
    assert not is_materialized(proxy)


def test_with_block_disposes_conditionally():
    factory, calls = _counting(Connection)

    with create_lazy_instance(IConnection, factory) as proxy:
        assert isinstance(proxy, IConnection)
    assert calls["count"] == 0

    connection = Connection()
    with create_lazy_instance(IConnection, lambda: connection) as proxy:
        proxy.send(b"x")
    assert connection.disposed == 1


def test_member_exception_is_transparent():
    proxy = create_lazy_instance(IFailing, Failing)

    with pytest.raises(ServiceError, match="boom") as excinfo:
        proxy.explode()
    assert type(excinfo.value) is ServiceError


def test_factory_exception_propagates_and_retries():
    attempts = {"count": 0}

    def factory():
        attempts["count"] += 1
        if attempts["count"] == 1:
            raise ConnectionError("dial failed")
        return Foo()

    proxy = create_lazy_instance(IFoo, factory)

    with pytest.raises(ConnectionError, match="dial failed"):
        proxy.foo()
    assert not is_materialized(proxy)
    assert proxy.foo() == "x"
    assert attempts["count"] == 2


def test_concurrent_first_calls_construct_once():
    calls = {"count": 0}
    barrier = threading.Barrier(2)
    results = []
    targets = []
    lock = threading.Lock()

    def factory():
        calls["count"] += 1
        time.sleep(0.1)
        return Foo()

    proxy = create_lazy_instance(IFoo, factory)

    def worker():
        barrier.wait()
        value = proxy.foo()
        with lock:
            results.append(value)
            targets.append(holder_of(proxy).read())

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert calls["count"] == 1
    assert results == ["x", "x"]
    assert targets[0] is targets[1]


def test_protocol_interfaces_are_supported():
    proxy = create_lazy_instance(IClock, Clock)

    assert isinstance(proxy, IClock)
    assert proxy.now() == 12.5


def test_isinstance_on_protocol_with_data_member_does_not_build_target():
    factory, calls = _counting(Named)
    proxy = create_lazy_instance(INamed, factory)

    assert isinstance(proxy, INamed)
    assert calls["count"] == 0
    assert not is_materialized(proxy)
    assert proxy.describe() == "named ada"
    assert calls["count"] == 1


def test_protocol_member_with_default_reads_real_object():
    versioned = Versioned()
    proxy = create_lazy_instance(IVersioned, lambda: versioned)

    assert proxy.version == 7
    proxy.version = 8
    assert versioned.version == 8
    assert proxy.describe() == "v8"


def test_proxy_type_can_be_constructed_with_factory():
    proxy_type = get_proxy_type(IFoo)

    proxy = proxy_type(Foo)

    assert proxy.foo() == "x"


def test_non_interface_fails_fast():
    with pytest.raises(UnsupportedTargetKindError):
        create_lazy_instance(NotAnInterface, NotAnInterface)
    with pytest.raises(UnsupportedTargetKindError):
        get_proxy_type(NotAnInterface)


def test_builder_uses_configured_prefix():
    builder = LazyProxyBuilder(Config(synthesis=SynthesisSettings(type_name_prefix="Deferred")))

    proxy = builder.create_instance(IFoo, Foo)

    assert type(proxy).__name__.startswith("Deferred_")
    assert proxy.foo() == "x"
    assert builder.get_type(IFoo) is not get_proxy_type(IFoo)
