"""
facade_registry exception hierarchy.

- FacadeRegistryError: base for every error raised by this package
- ConfigError: configuration loading, validation and facade import failures
- RegistryError: registry build failures
  - IntrospectionError: malformed rpc metadata on a facade class
  - DuplicateMethodError: an rpc method name declared twice
  - DuplicateEventBindingError: an event name bound to two rpc methods

Every exception carries an ``error_code`` for programmatic handling and a
``context`` dictionary for debugging.

Usage Examples:
    >>> try:
    ...     registry = build_registry(config)
    ... except DuplicateEventBindingError as e:
    ...     logger.error(f"Misconfigured facades: {e}")
    ...     if e.kind == "start":
    ...         ...
"""

from typing import Any, Dict, Optional
from pathlib import Path


class FacadeRegistryError(Exception):
    """
    Base exception class for all facade_registry errors.

    Attributes:
        error_code (str): Unique identifier for programmatic error handling
        context (Dict[str, Any]): Additional context information for debugging

    Error Codes:
        FACADE_001: Generic facade_registry error
    """

    def __init__(
        self,
        message: str,
        error_code: str = "FACADE_001",
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.context = dict(context or {})

    def with_context(self, context: Dict[str, Any]) -> 'FacadeRegistryError':
        """
        Add additional context to the exception and return self for chaining.

        Example:
            >>> raise RegistryError("Build failed").with_context({"sdk_level": 19})
        """
        self.context.update(context)
        return self

    def __str__(self) -> str:
        message = super().__str__()
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{message} [Error Code: {self.error_code}, Context: {context_str}]"
        return f"{message} [Error Code: {self.error_code}]"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={super().__str__()!r}, "
            f"error_code={self.error_code!r}, "
            f"context={self.context!r})"
        )


class ConfigError(FacadeRegistryError):
    """
    Configuration loading and validation errors.

    Error Codes:
        CONFIG_001: Configuration file not found
        CONFIG_002: YAML parsing error
        CONFIG_003: Pydantic validation failure
        CONFIG_004: Facade import path could not be resolved
        CONFIG_005: SDK level missing or invalid
    """

    def __init__(
        self,
        message: str,
        error_code: str = "CONFIG_001",
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message, error_code, context)
        if context and isinstance(context.get('config_path'), Path):
            self.context['config_path'] = str(context['config_path'])


class RegistryError(FacadeRegistryError):
    """
    Registry build errors.

    Error Codes:
        REGISTRY_001: Registry build failed
        REGISTRY_002: Facade introspection failed
        REGISTRY_003: Duplicate rpc method name
        REGISTRY_004: Duplicate event binding
    """

    def __init__(
        self,
        message: str,
        error_code: str = "REGISTRY_001",
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message, error_code, context)


class IntrospectionError(RegistryError):
    """Raised when a facade class exposes malformed rpc metadata."""

    def __init__(
        self,
        message: str,
        facade: Optional[type] = None,
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message, "REGISTRY_002", context)
        self.facade = facade
        if facade is not None:
            self.context.setdefault('facade', getattr(facade, '__qualname__', repr(facade)))


class DuplicateMethodError(RegistryError):
    """
    Raised when two rpc table entries share a method name.

    Covers both a duplicate inside one facade and a collision between two
    facades when the registry is built with ``CollisionPolicy.FAIL``.
    """

    def __init__(
        self,
        method_name: str,
        facades: Optional[tuple] = None,
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        owners = tuple(getattr(f, '__qualname__', repr(f)) for f in (facades or ()))
        message = f"Duplicate rpc method name '{method_name}'"
        if owners:
            message += f" declared by {', '.join(owners)}"
        super().__init__(message, "REGISTRY_003", context)
        self.method_name = method_name
        self.context.setdefault('method_name', method_name)
        if owners:
            self.context.setdefault('conflicting_facades', owners)


class DuplicateEventBindingError(RegistryError):
    """
    Raised when an event name is bound to more than one rpc method.

    ``kind`` is ``"start"`` or ``"stop"`` and names the event mapping in which
    the duplicate was found.
    """

    def __init__(
        self,
        event_name: str,
        kind: str,
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(
            f"Duplicate {kind} event method descriptor found for event '{event_name}'",
            "REGISTRY_004",
            context,
        )
        self.event_name = event_name
        self.kind = kind
        self.context.setdefault('event_name', event_name)
        self.context.setdefault('kind', kind)
