"""
Rpc metadata: registration tables, the ``@rpc`` decorator and the introspector.

Every facade derives from :class:`RpcReceiver`. When the class body is
executed, ``RpcReceiver.__init_subclass__`` gathers the methods marked with
``@rpc(...)`` (in definition order) together with any hand-written
``rpc_entries`` into the class's explicit ``rpc_table``. :func:`collect_from`
only ever reads that table, so the operation set of a facade is fixed at
import time and can be audited by printing ``Facade.rpc_table``.

Example:
    >>> class BatteryFacade(RpcReceiver):
    ...     @rpc("Returns the battery level in percent.", returns="int",
    ...          min_sdk_level=5)
    ...     def battery_get_level(self):
    ...         ...
    ...
    ...     @rpc("Starts tracking battery state.", start_event="battery")
    ...     def battery_start_monitoring(self):
    ...         ...
    >>> [d.name for d in collect_from(BatteryFacade)]
    ['battery_get_level', 'battery_start_monitoring']
"""

from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, Iterable, List, Optional, Tuple

from facade_registry import logger
from facade_registry.exceptions import DuplicateMethodError, IntrospectionError


_RPC_ENTRY_ATTR = "__rpc_entry__"
_OWN_ENTRIES_ATTR = "_rpc_own_entries"


@dataclass(frozen=True)
class RpcParameter:
    """One parameter of an rpc method signature."""

    name: str
    type: Any = object
    description: str = ""
    default: Any = None
    optional: bool = False

    @property
    def type_name(self) -> str:
        return getattr(self.type, '__name__', str(self.type))

    def help(self) -> str:
        text = f"{self.type_name} {self.name}"
        if self.description:
            text += f": {self.description}"
        if self.default is not None:
            text += f" (default={self.default!r})"
        elif self.optional:
            text += " (optional)"
        return text


@dataclass(frozen=True)
class RpcEntry:
    """
    One row of a facade's registration table.

    Attributes:
        name: Method name exposed to remote callers
        handler: The function implementing the method
        parameters: Ordered parameter signature
        description: Human readable description used in help output
        returns: Description of the return value
        deprecated: Excludes the method from the supported view
        replacement: Name of the method that replaces a deprecated one
        min_sdk_level: Lowest platform level on which the method is supported
        start_event: Event name this method starts generating
        stop_event: Event name this method stops generating
    """

    name: str
    handler: Callable[..., Any]
    parameters: Tuple[RpcParameter, ...] = ()
    description: str = ""
    returns: Optional[str] = None
    deprecated: bool = False
    replacement: Optional[str] = None
    min_sdk_level: Optional[int] = None
    start_event: Optional[str] = None
    stop_event: Optional[str] = None


def rpc(
    description: str = "",
    *,
    name: Optional[str] = None,
    returns: Optional[str] = None,
    parameters: Iterable[RpcParameter] = (),
    deprecated: bool = False,
    replacement: Optional[str] = None,
    min_sdk_level: Optional[int] = None,
    start_event: Optional[str] = None,
    stop_event: Optional[str] = None,
):
    """
    Mark a facade method as remotely invocable.

    The decorator only attaches an :class:`RpcEntry` to the function; the
    owning :class:`RpcReceiver` subclass copies it into ``rpc_table`` when
    the class is created.

    Args:
        description: Help text for the method
        name: Exposed name (defaults to the function name)
        returns: Description of the return value
        parameters: Ordered :class:`RpcParameter` signature
        deprecated: Tag the method as deprecated
        replacement: Method to use instead of a deprecated one
        min_sdk_level: Minimum platform level for the supported view
        start_event: Event name started by this method
        stop_event: Event name stopped by this method
    """
    def decorator(func):
        entry = RpcEntry(
            name=func.__name__ if name is None else name,
            handler=func,
            parameters=tuple(parameters),
            description=description,
            returns=returns,
            deprecated=deprecated or replacement is not None,
            replacement=replacement,
            min_sdk_level=min_sdk_level,
            start_event=start_event,
            stop_event=stop_event,
        )
        setattr(func, _RPC_ENTRY_ATTR, entry)
        return func

    return decorator


class RpcReceiver:
    """
    Base class for facades.

    Subclasses get a ``rpc_table`` class attribute holding the entries
    inherited from their bases followed by their own, in declaration order.
    Inherited entries are merged along the MRO, so a facade deriving from
    several facades exposes the methods of all of them. An entry from a
    class earlier in the MRO replaces one with the same name from a later
    class, and the subclass's own entries replace both.
    """

    rpc_table: ClassVar[Tuple[RpcEntry, ...]] = ()

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)

        own: List[RpcEntry] = []
        for value in cls.__dict__.values():
            entry = getattr(getattr(value, '__func__', value), _RPC_ENTRY_ATTR, None)
            if isinstance(entry, RpcEntry):
                own.append(entry)
        own.extend(cls.__dict__.get('rpc_entries', ()))

        seen = set()
        for entry in own:
            _validate_entry(entry, cls)
            if entry.name in seen:
                raise DuplicateMethodError(entry.name, (cls,))
            seen.add(entry.name)

        inherited: Dict[str, RpcEntry] = {}
        for base in reversed(cls.__mro__[1:]):
            for entry in base.__dict__.get(_OWN_ENTRIES_ATTR, ()):
                inherited[entry.name] = entry

        setattr(cls, _OWN_ENTRIES_ATTR, tuple(own))
        cls.rpc_table = tuple(
            [entry for name, entry in inherited.items() if name not in seen] + own
        )


@dataclass(frozen=True)
class MethodDescriptor:
    """Metadata for one remotely invocable operation of one facade."""

    name: str
    facade: type
    handler: Callable[..., Any] = field(repr=False)
    parameters: Tuple[RpcParameter, ...] = ()
    description: str = ""
    returns: Optional[str] = None
    deprecated: bool = False
    replacement: Optional[str] = None
    min_sdk_level: Optional[int] = None
    start_event_name: Optional[str] = None
    stop_event_name: Optional[str] = None

    @classmethod
    def from_entry(cls, facade: type, entry: RpcEntry) -> 'MethodDescriptor':
        return cls(
            name=entry.name,
            facade=facade,
            handler=entry.handler,
            parameters=entry.parameters,
            description=entry.description,
            returns=entry.returns,
            deprecated=entry.deprecated,
            replacement=entry.replacement,
            min_sdk_level=entry.min_sdk_level,
            start_event_name=entry.start_event,
            stop_event_name=entry.stop_event,
        )

    @property
    def parameter_types(self) -> Tuple[Any, ...]:
        return tuple(p.type for p in self.parameters)

    def is_supported(self, sdk_level: int) -> bool:
        """True unless deprecated or gated above ``sdk_level``."""
        if self.deprecated:
            return False
        return self.min_sdk_level is None or self.min_sdk_level <= sdk_level

    def help(self) -> str:
        """Render the multi-line help text shown to script authors."""
        text = f"{self.name}(" + ",\n  ".join(p.help() for p in self.parameters) + ")"
        if self.description:
            text += f"\n\n{self.description}"
        if self.returns:
            text += f"\n\nReturns:\n  {self.returns}"
        if self.start_event_name:
            text += f"\n\nGenerates \"{self.start_event_name}\" events."
        if self.min_sdk_level is not None:
            text += f"\n\nRequires API Level {self.min_sdk_level}."
        if self.deprecated:
            text += "\n\nDeprecated!"
            if self.replacement:
                text += f" Please use {self.replacement} instead."
        return text


def _validate_entry(entry: Any, facade: type) -> None:
    if not isinstance(entry, RpcEntry):
        raise IntrospectionError(f"Rpc table row {entry!r} is not an RpcEntry", facade)
    if not isinstance(entry.name, str) or not entry.name:
        raise IntrospectionError("Rpc method name must be a non-empty string", facade)
    if not callable(entry.handler):
        raise IntrospectionError(
            f"Handler for rpc method '{entry.name}' is not callable", facade
        )
    if not isinstance(entry.deprecated, bool):
        raise IntrospectionError(
            f"deprecated flag of rpc method '{entry.name}' must be a bool, got {entry.deprecated!r}",
            facade,
        )
    level = entry.min_sdk_level
    if level is not None and (isinstance(level, bool) or not isinstance(level, int) or level < 0):
        raise IntrospectionError(
            f"min_sdk_level of rpc method '{entry.name}' must be a non-negative int, got {level!r}",
            facade,
        )
    for kind, event in (("start", entry.start_event), ("stop", entry.stop_event)):
        if event is not None and (not isinstance(event, str) or not event):
            raise IntrospectionError(
                f"{kind} event of rpc method '{entry.name}' must be a non-empty string",
                facade,
            )
    for parameter in entry.parameters:
        if not isinstance(parameter, RpcParameter):
            raise IntrospectionError(
                f"Parameter {parameter!r} of rpc method '{entry.name}' is not an RpcParameter",
                facade,
            )


def collect_from(facade: type) -> List[MethodDescriptor]:
    """
    Produce one :class:`MethodDescriptor` per row of ``facade.rpc_table``.

    Args:
        facade: An :class:`RpcReceiver` subclass

    Returns:
        Descriptors in table order

    Raises:
        IntrospectionError: If ``facade`` is not a facade class or a row is malformed
        DuplicateMethodError: If the table names a method twice
    """
    if not isinstance(facade, type) or not issubclass(facade, RpcReceiver):
        raise IntrospectionError(f"{facade!r} is not an RpcReceiver subclass", facade if isinstance(facade, type) else None)

    seen = set()
    descriptors = []
    for entry in facade.rpc_table:
        _validate_entry(entry, facade)
        if entry.name in seen:
            raise DuplicateMethodError(entry.name, (facade,))
        seen.add(entry.name)
        descriptors.append(MethodDescriptor.from_entry(facade, entry))

    logger.debug(f"Collected {len(descriptors)} rpc methods from {facade.__qualname__}")
    return descriptors
