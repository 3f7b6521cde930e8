"""Platform-level resolution and provider-level gating of the facade set."""

import os
from typing import Iterable, Optional, Tuple, Union

from pydantic import ValidationError

from facade_registry import logger
from facade_registry.config import FacadeEntry, RegistryConfig, _format_validation_errors
from facade_registry.exceptions import ConfigError

SDK_LEVEL_ENV_VAR = "FACADE_REGISTRY_SDK_LEVEL"


def _validate_level(value, source: str) -> int:
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError as e:
            raise ConfigError(
                f"SDK level from {source} is not an integer: {value!r}",
                error_code="CONFIG_005",
                context={'source': source},
            ) from e
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(
            f"SDK level from {source} must be a non-negative integer, got {value!r}",
            error_code="CONFIG_005",
            context={'source': source},
        )
    return value


def resolve_sdk_level(
    explicit: Optional[int] = None,
    config: Optional[RegistryConfig] = None,
) -> int:
    """
    Determine the platform level for this process.

    The first of these that is set wins: ``explicit``, ``config.sdk_level``,
    the ``FACADE_REGISTRY_SDK_LEVEL`` environment variable.

    Raises:
        ConfigError: CONFIG_005 if no source provides a level or the value is invalid
    """
    if explicit is not None:
        return _validate_level(explicit, "argument")
    if config is not None and config.sdk_level is not None:
        return _validate_level(config.sdk_level, "configuration")

    env_value = os.environ.get(SDK_LEVEL_ENV_VAR)
    if env_value is not None:
        return _validate_level(env_value, SDK_LEVEL_ENV_VAR)

    raise ConfigError(
        f"No SDK level given; pass one, set sdk_level in the configuration or export {SDK_LEVEL_ENV_VAR}",
        error_code="CONFIG_005",
    )


def _as_entry(item: Union[FacadeEntry, type]) -> FacadeEntry:
    if isinstance(item, FacadeEntry):
        return item
    try:
        return FacadeEntry(facade=item)
    except ValidationError as e:
        error_details = _format_validation_errors(e)
        raise ConfigError(
            f"Invalid facade entry {item!r}:\n" + "\n".join(error_details),
            error_code="CONFIG_003",
            context={'facade': repr(item), 'validation_errors': error_details},
        ) from e


def is_facade_enabled(entry: Union[FacadeEntry, type], sdk_level: int) -> bool:
    """True if ``entry``'s level bounds admit ``sdk_level``."""
    return _as_entry(entry).enabled_for(sdk_level)


def assemble_facade_set(
    entries: Iterable[Union[FacadeEntry, type]],
    sdk_level: int,
) -> Tuple[type, ...]:
    """
    Gate the configured facades against ``sdk_level``.

    Order follows ``entries``; a facade listed more than once keeps its first
    enabled position.

    Returns:
        The enabled facade classes
    """
    facades = []
    seen = set()
    for item in entries:
        entry = _as_entry(item)
        name = entry.facade.__qualname__
        if not entry.enabled_for(sdk_level):
            logger.debug(
                f"Facade {name} excluded at SDK level {sdk_level} "
                f"(min={entry.min_sdk_level}, max={entry.max_sdk_level})"
            )
            continue
        if entry.facade in seen:
            logger.debug(f"Facade {name} listed more than once; keeping first occurrence")
            continue
        seen.add(entry.facade)
        facades.append(entry.facade)
        logger.debug(f"Facade {name} enabled at SDK level {sdk_level}")

    logger.info(f"Assembled {len(facades)} facades for SDK level {sdk_level}")
    return tuple(facades)
