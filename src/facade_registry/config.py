"""
Pydantic configuration models and YAML loading for the facade registry.

A configuration names the platform level (optional, it can also come from
the environment), the policy applied to rpc method name collisions and the
ordered list of facades with their platform-level bounds:

.. code-block:: yaml

    sdk_level: 19
    collision_policy: fail
    facades:
      - myapp.facades:AndroidFacade
      - facade: myapp.facades:TextToSpeechFacade
        min_sdk_level: 4
      - facade: myapp.facades:EyesFreeFacade
        max_sdk_level: 3
"""

import importlib
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from facade_registry import logger
from facade_registry.exceptions import ConfigError
from facade_registry.rpc import RpcReceiver


class CollisionPolicy(str, Enum):
    """How the method index treats one rpc name declared by two facades."""

    FAIL = "fail"
    LAST_WINS = "last_wins"


def import_facade(path: str) -> type:
    """
    Resolve ``"package.module:ClassName"`` or ``"package.module.ClassName"``.

    Raises:
        ConfigError: If the module or attribute cannot be imported (CONFIG_004)
    """
    if ':' in path:
        module_name, _, attr = path.partition(':')
    else:
        module_name, _, attr = path.rpartition('.')

    if not module_name or not attr:
        raise ConfigError(
            f"Invalid facade import path: {path!r}",
            error_code="CONFIG_004",
            context={'facade_path': path},
        )

    try:
        module = importlib.import_module(module_name)
        facade = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        logger.error(f"Failed to import facade {path}: {e}")
        raise ConfigError(
            f"Could not import facade {path!r}: {e}",
            error_code="CONFIG_004",
            context={'facade_path': path, 'original_error': str(e)},
        ) from e

    logger.debug(f"Imported facade {path}")
    return facade


class FacadeEntry(BaseModel):
    """
    One facade of the provider set with its platform-level bounds.

    Attributes:
        facade: Facade class, or its import path
        min_sdk_level: Lowest platform level that enables the facade
        max_sdk_level: Highest platform level that enables the facade (inclusive)
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    facade: Any = Field(description="RpcReceiver subclass or 'module:Class' import path")
    min_sdk_level: Optional[int] = Field(default=None, ge=0)
    max_sdk_level: Optional[int] = Field(default=None, ge=0)

    @field_validator('facade', mode='before')
    @classmethod
    def resolve_facade(cls, v: Any) -> type:
        if isinstance(v, str):
            v = import_facade(v)
        if not isinstance(v, type) or not issubclass(v, RpcReceiver):
            raise ValueError(f"{v!r} is not an RpcReceiver subclass")
        return v

    @model_validator(mode='after')
    def check_bounds(self) -> 'FacadeEntry':
        if (
            self.min_sdk_level is not None
            and self.max_sdk_level is not None
            and self.min_sdk_level > self.max_sdk_level
        ):
            raise ValueError(
                f"min_sdk_level ({self.min_sdk_level}) exceeds max_sdk_level ({self.max_sdk_level})"
            )
        return self

    def enabled_for(self, sdk_level: int) -> bool:
        if self.min_sdk_level is not None and sdk_level < self.min_sdk_level:
            return False
        if self.max_sdk_level is not None and sdk_level > self.max_sdk_level:
            return False
        return True


class RegistryConfig(BaseModel):
    """Top-level registry configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    sdk_level: Optional[int] = Field(
        default=None,
        ge=0,
        description="Platform level; falls back to FACADE_REGISTRY_SDK_LEVEL when unset",
    )
    collision_policy: CollisionPolicy = CollisionPolicy.FAIL
    facades: List[FacadeEntry] = Field(default_factory=list)

    @field_validator('facades', mode='before')
    @classmethod
    def expand_shorthand(cls, v: Any) -> Any:
        # A bare class or import path is an entry without bounds
        if isinstance(v, (list, tuple)):
            return [
                {'facade': item} if isinstance(item, (str, type)) else item
                for item in v
            ]
        return v


def _format_validation_errors(error: ValidationError) -> List[str]:
    details = []
    for item in error.errors():
        field_path = " -> ".join(str(loc) for loc in item['loc'])
        details.append(f"Field '{field_path}': {item['msg']}")
    return details


def load_config(
    config_path_or_dict: Union[str, Path, Dict[str, Any], RegistryConfig]
) -> RegistryConfig:
    """
    Load and validate a registry configuration.

    Args:
        config_path_or_dict: YAML file path, already-parsed dictionary or
            an existing :class:`RegistryConfig`

    Returns:
        Validated configuration

    Raises:
        ConfigError: CONFIG_001 if the file is missing, CONFIG_002 on YAML
            syntax errors, CONFIG_003 on validation failures, CONFIG_004 if a
            facade import path cannot be resolved
    """
    if isinstance(config_path_or_dict, RegistryConfig):
        return config_path_or_dict

    config_path = None
    if isinstance(config_path_or_dict, dict):
        logger.debug("Processing dictionary-based registry configuration")
        raw_config = config_path_or_dict
    elif isinstance(config_path_or_dict, (str, Path)):
        config_path = Path(config_path_or_dict)
        if not config_path.is_file():
            raise ConfigError(
                f"Configuration file not found: {config_path}",
                error_code="CONFIG_001",
                context={'config_path': config_path},
            )
        with open(config_path, 'r', encoding='utf-8') as f:
            try:
                raw_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                logger.error(f"Error parsing YAML configuration {config_path}: {e}")
                raise ConfigError(
                    f"Error parsing YAML configuration: {e}",
                    error_code="CONFIG_002",
                    context={'config_path': config_path},
                ) from e
        logger.debug(f"Raw YAML configuration loaded from {config_path}")
    else:
        raise ConfigError(
            f"Invalid input type: {type(config_path_or_dict)}. Expected a string, Path, or dictionary.",
            error_code="CONFIG_003",
        )

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Registry configuration must be a mapping",
            error_code="CONFIG_003",
            context={'config_path': config_path, 'config_type': type(raw_config).__name__},
        )

    try:
        config = RegistryConfig.model_validate(raw_config)
    except ValidationError as e:
        error_details = _format_validation_errors(e)
        detailed_error = "Registry configuration validation failed:\n" + "\n".join(error_details)
        logger.error(detailed_error)
        raise ConfigError(
            detailed_error,
            error_code="CONFIG_003",
            context={'config_path': config_path, 'validation_errors': error_details},
        ) from e

    logger.info(
        f"Registry configuration loaded with {len(config.facades)} facade entries"
        + (f" from {config_path}" if config_path else "")
    )
    return config
