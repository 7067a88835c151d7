"""Per-user weekly capacity configuration."""

from __future__ import annotations

import logging
from dataclasses import replace
from numbers import Real

from weekload.errors import ValidationError
from weekload.models import CapacityConfig
from weekload.persistence import Store

logger = logging.getLogger(__name__)

CONFIG_FIELDS = ("weekly_minutes", "buffer_percentage")


def validate_config(config: CapacityConfig) -> CapacityConfig:
    """Raise ValidationError unless *config* describes a usable week."""
    wm = config.weekly_minutes
    if isinstance(wm, bool) or not isinstance(wm, int) or wm <= 0:
        raise ValidationError(f"weekly_minutes must be a positive integer, got {wm!r}")

    bp = config.buffer_percentage
    if isinstance(bp, bool) or not isinstance(bp, Real) or not 0 <= bp <= 100:
        raise ValidationError(f"buffer_percentage must be between 0 and 100, got {bp!r}")

    if config.usable_minutes <= 0:
        raise ValidationError("buffer_percentage leaves no usable minutes in the week")
    return config


def apply_config_update(current: CapacityConfig, partial: dict) -> CapacityConfig:
    """Return a new validated config with *partial* merged over *current*."""
    unknown = sorted(set(partial) - set(CONFIG_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown config field(s): {', '.join(unknown)}")
    changes = {k: v for k, v in partial.items() if v is not None}
    return validate_config(replace(current, **changes))


class CapacityConfigStore:
    """Holds the capacity config inside the user's database.

    The config is created with defaults on first read and only ever replaced
    wholesale, never deleted. Replacing it does not touch committed work;
    it only changes later overload readings.
    """

    def __init__(self, store: Store):
        self.store = store

    def get_config(self) -> CapacityConfig:
        config, tasks, projects = self.store.load()
        if config is None:
            config = CapacityConfig()
            self.store.save(config, tasks, projects)
            logger.info("Created default capacity config: %s", config.to_dict())
        return config

    def set_config(self, partial: dict) -> CapacityConfig:
        config, tasks, projects = self.store.load()
        updated = apply_config_update(config or CapacityConfig(), partial)
        self.store.save(updated, tasks, projects)
        logger.info("Capacity config updated: %s", updated.to_dict())
        return updated
