"""Lazy service registry wiring interfaces to deferred implementations."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from lazyproxy.builder import LazyProxyBuilder, default_builder
from lazyproxy.errors import RegistrationError
from lazyproxy.lazy import Lazy

logger = logging.getLogger(__name__)


class Lifetime(str, Enum):
    """How many real objects a registration produces."""

    TRANSIENT = "transient"
    SINGLETON = "singleton"


@dataclass
class Registration:
    interface: Any
    implementation: Callable[[], Any]
    lifetime: Lifetime
    private_key: str
    proxy_type: Any
    shared: Optional[Lazy] = field(default=None, repr=False)
    shared_proxy: Any = field(default=None, repr=False)

    def produce(self) -> Any:
        if self.shared is not None:
            return self.shared.read()
        return self.implementation()


class LazyRegistry:
    """Registers implementations behind lazy interface proxies.

    Each registration stores the implementation under a private key and the
    interface under its proxy class. ``resolve`` hands out a proxy whose
    factory produces from that registration, so the implementation is only
    built when a member is first used.
    """

    def __init__(self, *, builder: Optional[LazyProxyBuilder] = None):
        self.builder = builder or default_builder()
        self._lock = threading.Lock()
        self._by_interface: Dict[Any, Registration] = {}
        self._by_key: Dict[str, Registration] = {}

    def register(
        self,
        interface: Any,
        implementation: Callable[[], Any],
        *,
        singleton: bool = False,
    ) -> Registration:
        if not callable(implementation):
            raise TypeError(f"implementation for {interface!r} must be callable")
        proxy_type = self.builder.get_type(interface)
        lifetime = Lifetime.SINGLETON if singleton else Lifetime.TRANSIENT
        registration = Registration(
            interface=interface,
            implementation=implementation,
            lifetime=lifetime,
            private_key=uuid.uuid4().hex,
            proxy_type=proxy_type,
            shared=Lazy(implementation) if singleton else None,
        )
        if singleton:
            registration.shared_proxy = self.builder.create_instance(interface, registration.produce)
        with self._lock:
            previous = self._by_interface.get(interface)
            if previous is not None:
                self._by_key.pop(previous.private_key, None)
            self._by_interface[interface] = registration
            self._by_key[registration.private_key] = registration
        logger.debug(
            "Registered %r lifetime=%s key=%s", interface, lifetime.value, registration.private_key
        )
        return registration

    def has(self, interface: Any) -> bool:
        with self._lock:
            return interface in self._by_interface

    def registrations(self) -> List[Registration]:
        with self._lock:
            return list(self._by_interface.values())

    def resolve(self, interface: Any) -> Any:
        """Return a lazy proxy for a registered interface.

        Transient registrations get a fresh proxy per call; singletons hand out
        the one proxy created at registration. A proxy stays bound to the
        registration it came from, even after ``interface`` is registered again.
        """
        with self._lock:
            registration = self._by_interface.get(interface)
        if registration is None:
            raise RegistrationError(f"no registration for {interface!r}")
        if registration.shared_proxy is not None:
            return registration.shared_proxy
        return self.builder.create_instance(interface, registration.produce)

    def resolve_private(self, private_key: str) -> Any:
        """Build (or reuse, for singletons) the real object behind a private key."""
        with self._lock:
            registration = self._by_key.get(private_key)
        if registration is None:
            raise RegistrationError(f"no registration for private key {private_key!r}")
        return registration.produce()
