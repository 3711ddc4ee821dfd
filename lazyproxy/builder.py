"""Public entry points: proxy class lookup and lazy instance creation."""

from __future__ import annotations

import typing
from pathlib import Path
from typing import Any, Callable, Optional, Type, TypeVar

from lazyproxy.cache import ProxyTypeCache
from lazyproxy.config import Config
from lazyproxy.lazy import Lazy

T = TypeVar("T")


class LazyProxyBuilder:
    """Creates lazy proxy classes and instances for interfaces."""

    def __init__(self, config: Optional[Config] = None, *, cache: Optional[ProxyTypeCache] = None):
        self.config = config or Config()
        self.cache = cache or ProxyTypeCache(
            type_name_prefix=self.config.synthesis.type_name_prefix,
            validate_type_arguments=self.config.synthesis.validate_type_arguments,
        )

    @classmethod
    def from_config_file(cls, path: Optional[Path] = None) -> "LazyProxyBuilder":
        return cls(Config.load(path))

    def get_type(self, interface: Any) -> Any:
        """Return the proxy class implementing ``interface``, built once and reused."""
        return self.cache.get_or_build(interface)

    def create_instance(self, interface: Type[T], factory: Callable[[], T]) -> T:
        """Return a proxy for ``interface`` whose target is created by ``factory`` on first use."""
        proxy_type = self.get_type(interface)
        origin = typing.get_origin(proxy_type) or proxy_type

        instance = object.__new__(origin)
        if origin is not proxy_type:
            try:
                object.__setattr__(instance, "__orig_class__", proxy_type)
            except AttributeError:
                # Slotted proxies have no instance dict to record the alias in.
                pass
        instance._lazyproxy_initialize(factory)
        return instance


_default_builder: Lazy[LazyProxyBuilder] = Lazy(LazyProxyBuilder.from_config_file)


def default_builder() -> LazyProxyBuilder:
    return _default_builder.read()


def get_proxy_type(interface: Any) -> Any:
    """Build or reuse the forwarding class for ``interface``."""
    return default_builder().get_type(interface)


def create_lazy_instance(interface: Type[T], factory: Callable[[], T]) -> T:
    """Return a not-yet-constructed proxy for ``interface`` backed by ``factory``."""
    return default_builder().create_instance(interface, factory)
