#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""Engine settings, read from `configs/engine.yaml` with OmegaConf."""

import logging
from importlib.resources import files

from omegaconf import OmegaConf
from omegaconf.errors import OmegaConfBaseException
from pydantic import (
    BaseModel,
    ConfigDict,
    PositiveInt,
    ValidationError,
    field_validator,
)

from recur.constants import CONFIGS_ROOT, ENGINE_CONFIG_NAME
from recur.exceptions import ConfigError, InvalidConfiguration
from recur.zones import resolve_zone

logger = logging.getLogger(__name__)


class ExpansionConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    max_idle_years: PositiveInt


class DisplayConfig(BaseModel):
    """Settings of the `recur-expand` command."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_zone: str
    limit: PositiveInt
    datetime_format: str

    @field_validator("default_zone")
    @classmethod
    def zone_exists(cls, value: str) -> str:
        try:
            resolve_zone(value)
        except InvalidConfiguration as e:
            raise ValueError(str(e))
        return value


class LoggingConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    level: str

    @field_validator("level")
    @classmethod
    def known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown logging level: {value}")
        return value


class EngineConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    expansion: ExpansionConfig
    display: DisplayConfig
    logging: LoggingConfig


def load_config(overrides: list[str] | None = None) -> EngineConfig:
    """Load the packaged engine settings.

    Parameters
    ----------
    overrides
        Dot-list overrides applied on top of the defaults, eg
        `["display.limit=5", "expansion.max_idle_years=20"]`.

    Raises
    ------
    ConfigError if an override is malformed or the resulting settings are invalid.
    """
    defaults = OmegaConf.create(
        files(CONFIGS_ROOT).joinpath(ENGINE_CONFIG_NAME).read_text()
    )
    try:
        cfg = OmegaConf.merge(defaults, OmegaConf.from_dotlist(overrides or []))
        container = OmegaConf.to_container(cfg, resolve=True)
    except OmegaConfBaseException as e:
        raise ConfigError(f"Invalid configuration overrides {overrides}: {e}") from e
    try:
        config = EngineConfig.model_validate(container)
    except ValidationError as e:
        raise ConfigError(str(e)) from e
    logger.debug(f"Loaded engine configuration: {config}")
    return config
