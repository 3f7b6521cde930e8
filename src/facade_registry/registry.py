"""
The facade registry: method index, event index and read-only accessors.

:func:`build_registry` runs the whole initialization pass once:

1. resolve the SDK level
2. gate the configured facades against it
3. introspect every enabled facade, in order, into a name-sorted method index
4. derive the start/stop event indexes from the method index

The resulting :class:`FacadeRegistry` holds only read-only mappings and
tuples, so any number of threads may query it without locking. There is no
reload path: build a new registry and swap the reference instead.

Example:
    >>> registry = build_registry("facades.yaml")
    >>> registry.get_method_descriptor("battery_get_level")
    MethodDescriptor(name='battery_get_level', facade=<class 'BatteryFacade'>, ...)
    >>> registry.collect_start_event_method_descriptors()["battery"].name
    'battery_start_monitoring'
"""

import threading
from functools import partial
from types import MappingProxyType
from typing import (
    Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union
)
from pathlib import Path

from facade_registry import logger
from facade_registry.config import CollisionPolicy, FacadeEntry, RegistryConfig, load_config
from facade_registry.exceptions import (
    DuplicateEventBindingError, DuplicateMethodError, FacadeRegistryError, RegistryError
)
from facade_registry.gating import assemble_facade_set, resolve_sdk_level
from facade_registry.rpc import MethodDescriptor, collect_from


MethodIndex = Mapping[str, MethodDescriptor]
EventIndex = Mapping[str, MethodDescriptor]


def build_method_index(
    facades: Iterable[type],
    collision_policy: Union[CollisionPolicy, str] = CollisionPolicy.FAIL,
) -> MethodIndex:
    """
    Introspect ``facades`` in order and index their methods by name.

    Args:
        facades: Ordered facade classes
        collision_policy: ``FAIL`` raises on a name declared by two facades,
            ``LAST_WINS`` keeps the descriptor of the later facade

    Returns:
        Read-only mapping sorted lexicographically by method name

    Raises:
        DuplicateMethodError: On a cross-facade collision under ``FAIL``
        IntrospectionError: If a facade's rpc table is malformed
    """
    policy = CollisionPolicy(collision_policy)
    collected: Dict[str, MethodDescriptor] = {}

    for facade in facades:
        for descriptor in collect_from(facade):
            existing = collected.get(descriptor.name)
            if existing is not None:
                if policy is CollisionPolicy.FAIL:
                    logger.error(
                        f"Rpc method {descriptor.name} declared by both "
                        f"{existing.facade.__qualname__} and {descriptor.facade.__qualname__}"
                    )
                    raise DuplicateMethodError(descriptor.name, (existing.facade, descriptor.facade))
                logger.warning(
                    f"Rpc method {descriptor.name} of {existing.facade.__qualname__} "
                    f"replaced by {descriptor.facade.__qualname__}"
                )
            collected[descriptor.name] = descriptor

    return MappingProxyType({name: collected[name] for name in sorted(collected)})


def _bind_event(
    events: Dict[str, MethodDescriptor],
    event_name: Optional[str],
    descriptor: MethodDescriptor,
    kind: str,
) -> None:
    if event_name is None:
        return
    existing = events.get(event_name)
    if existing is not None:
        logger.error(f"Duplicate {kind} eventName {event_name}")
        raise DuplicateEventBindingError(
            event_name,
            kind,
            context={'bound_method': existing.name, 'conflicting_method': descriptor.name},
        )
    events[event_name] = descriptor


def build_event_index(method_index: MethodIndex) -> Tuple[EventIndex, EventIndex]:
    """
    Derive the start-event and stop-event indexes from ``method_index``.

    Returns:
        ``(start_events, stop_events)``, both read-only

    Raises:
        DuplicateEventBindingError: If an event name is bound twice in either index
    """
    start_events: Dict[str, MethodDescriptor] = {}
    stop_events: Dict[str, MethodDescriptor] = {}
    for descriptor in method_index.values():
        _bind_event(start_events, descriptor.start_event_name, descriptor, "start")
        _bind_event(stop_events, descriptor.stop_event_name, descriptor, "stop")
    return MappingProxyType(start_events), MappingProxyType(stop_events)


class FacadeRegistry:
    """
    Immutable index of the rpc methods exposed by the enabled facades.

    Instances are created by :func:`build_registry`.
    """

    def __init__(
        self,
        sdk_level: int,
        facades: Tuple[type, ...],
        method_index: MethodIndex,
        start_events: EventIndex,
        stop_events: EventIndex,
    ):
        self._sdk_level = sdk_level
        self._facades = tuple(facades)
        self._method_index = MappingProxyType(dict(method_index))
        self._start_events = MappingProxyType(dict(start_events))
        self._stop_events = MappingProxyType(dict(stop_events))

    def get_sdk_level(self) -> int:
        return self._sdk_level

    def get_facade_classes(self) -> Tuple[type, ...]:
        """Returns the enabled facades in configured order."""
        return self._facades

    def get_method_descriptor(self, name: str) -> Optional[MethodDescriptor]:
        """Returns a method by name, or None if no enabled facade declares it."""
        return self._method_index.get(name)

    def collect_method_descriptors(self) -> List[MethodDescriptor]:
        """Returns every descriptor, sorted by name."""
        return list(self._method_index.values())

    def collect_supported_method_descriptors(self) -> List[MethodDescriptor]:
        """
        Returns the descriptors that are not deprecated and whose minimum
        SDK level is satisfied by the current one, sorted by name.
        """
        return [d for d in self._method_index.values() if d.is_supported(self._sdk_level)]

    def collect_start_event_method_descriptors(self) -> EventIndex:
        return self._start_events

    def collect_stop_event_method_descriptors(self) -> EventIndex:
        return self._stop_events

    def method_names(self) -> List[str]:
        return list(self._method_index)

    def help_text(self, supported_only: bool = True) -> str:
        """Concatenated help of every (supported) method."""
        descriptors = (
            self.collect_supported_method_descriptors()
            if supported_only
            else self.collect_method_descriptors()
        )
        return "\n\n".join(d.help() for d in descriptors)

    def __contains__(self, name: object) -> bool:
        return name in self._method_index

    def __len__(self) -> int:
        return len(self._method_index)

    def __iter__(self) -> Iterator[MethodDescriptor]:
        return iter(self._method_index.values())

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(sdk_level={self._sdk_level}, "
            f"facades={len(self._facades)}, methods={len(self._method_index)})"
        )


def build_registry(
    config: Union[str, Path, dict, RegistryConfig, None] = None,
    *,
    facades: Optional[Iterable[Union[FacadeEntry, type]]] = None,
    sdk_level: Optional[int] = None,
    collision_policy: Union[CollisionPolicy, str, None] = None,
) -> FacadeRegistry:
    """
    Run the one-time initialization pass and return an immutable registry.

    Args:
        config: Configuration file, dictionary or model (optional)
        facades: Facade entries or bare classes; overrides ``config.facades``
        sdk_level: Platform level; overrides the configuration and environment
        collision_policy: Overrides ``config.collision_policy`` (default ``FAIL``)

    Returns:
        The built registry

    Raises:
        ConfigError: If the configuration or SDK level is invalid
        DuplicateEventBindingError: If an event name is bound twice
        DuplicateMethodError: On a method name collision under ``FAIL``
        IntrospectionError: If a facade's rpc metadata is malformed
        RegistryError: If the build fails for any other reason
    """
    config = load_config(config) if config is not None else None
    if facades is None:
        facades = config.facades if config is not None else ()
    if collision_policy is None:
        collision_policy = config.collision_policy if config is not None else CollisionPolicy.FAIL

    try:
        policy = CollisionPolicy(collision_policy)
        level = resolve_sdk_level(sdk_level, config)
        logger.info(f"Building facade registry for SDK level {level} (collision policy: {policy.value})")

        facade_set = assemble_facade_set(facades, level)
        method_index = build_method_index(facade_set, policy)
        start_events, stop_events = build_event_index(method_index)
    except FacadeRegistryError:
        raise
    except Exception as e:
        logger.error(f"Facade registry build failed: {e}")
        raise RegistryError(
            f"Failed to build facade registry: {e}",
            error_code="REGISTRY_001",
            context={'original_error': str(e), 'error_type': type(e).__name__},
        ) from e

    registry = FacadeRegistry(level, facade_set, method_index, start_events, stop_events)
    logger.info(
        f"Facade registry built: {len(facade_set)} facades, {len(method_index)} methods, "
        f"{len(start_events)} start events, {len(stop_events)} stop events"
    )
    return registry


class LazyRegistry:
    """
    Builds a registry on first access, exactly once.

    The build runs under a lock and completes before any caller receives the
    registry. A failed build is remembered and re-raised on every access.

    Example:
        >>> lazy = LazyRegistry(config="facades.yaml")
        >>> lazy.get().get_method_descriptor("battery_get_level")
    """

    def __init__(self, builder: Optional[Callable[[], FacadeRegistry]] = None, **build_kwargs):
        if builder is not None and build_kwargs:
            raise TypeError("Pass either a builder or build_registry keyword arguments, not both")
        self._builder = builder or partial(build_registry, **build_kwargs)
        self._lock = threading.Lock()
        self._registry: Optional[FacadeRegistry] = None
        self._error: Optional[Exception] = None

    @property
    def is_built(self) -> bool:
        return self._registry is not None

    def get(self) -> FacadeRegistry:
        registry = self._registry
        if registry is not None:
            return registry

        with self._lock:
            if self._registry is None:
                if self._error is not None:
                    raise self._error
                try:
                    self._registry = self._builder()
                except Exception as e:
                    self._error = e
                    raise
            return self._registry
