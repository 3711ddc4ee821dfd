"""Lazy proxy error types."""


class LazyProxyError(Exception):
    """Base error for lazy proxy failures."""


class UnsupportedTargetKindError(LazyProxyError, TypeError):
    """Raised when a proxy is requested for something that is not an interface."""


class TypeArgumentError(LazyProxyError, TypeError):
    """Raised when a type argument violates a generic parameter's bound or constraints."""


class RecursiveInitializationError(LazyProxyError, RuntimeError):
    """Raised when a factory reads the holder it is initializing."""


class RegistrationError(LazyProxyError, LookupError):
    """Raised when resolving an interface that was never registered."""


class ConfigError(LazyProxyError, ValueError):
    """Raised when configuration content is invalid."""
