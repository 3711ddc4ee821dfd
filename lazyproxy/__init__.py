"""Lazy interface proxies: defer building a service until a member is first used."""

from __future__ import annotations

import importlib
import logging
from typing import Any

__version__ = "1.0.0"
__license__ = "MIT"

logging.getLogger(__name__).addHandler(logging.NullHandler())

_LAZY_EXPORTS = {
    "Config": ("lazyproxy.config", "Config"),
    "configure_logging": ("lazyproxy.logging_config", "configure_logging"),
    "LazyProxyBuilder": ("lazyproxy.builder", "LazyProxyBuilder"),
    "get_proxy_type": ("lazyproxy.builder", "get_proxy_type"),
    "create_lazy_instance": ("lazyproxy.builder", "create_lazy_instance"),
    "ProxyTypeCache": ("lazyproxy.cache", "ProxyTypeCache"),
    "Lazy": ("lazyproxy.lazy", "Lazy"),
    "LazyProxyBase": ("lazyproxy.base", "LazyProxyBase"),
    "Disposable": ("lazyproxy.base", "Disposable"),
    "Ref": ("lazyproxy.base", "Ref"),
    "Out": ("lazyproxy.base", "Out"),
    "is_materialized": ("lazyproxy.base", "is_materialized"),
    "holder_of": ("lazyproxy.base", "holder_of"),
    "LazyRegistry": ("lazyproxy.registry", "LazyRegistry"),
    "resolve": ("lazyproxy.surface", "resolve"),
    "synthesize": ("lazyproxy.synthesizer", "synthesize"),
    "LazyProxyError": ("lazyproxy.errors", "LazyProxyError"),
    "UnsupportedTargetKindError": ("lazyproxy.errors", "UnsupportedTargetKindError"),
    "TypeArgumentError": ("lazyproxy.errors", "TypeArgumentError"),
    "RecursiveInitializationError": ("lazyproxy.errors", "RecursiveInitializationError"),
    "RegistrationError": ("lazyproxy.errors", "RegistrationError"),
    "ConfigError": ("lazyproxy.errors", "ConfigError"),
}


def __getattr__(name: str) -> Any:
    if name not in _LAZY_EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module_name, attr_name = _LAZY_EXPORTS[name]
    module = importlib.import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(list(globals().keys()) + list(_LAZY_EXPORTS))


__all__ = ["__version__", *_LAZY_EXPORTS]
