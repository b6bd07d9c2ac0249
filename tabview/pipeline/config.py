"""Pipeline configuration defaults and limit value objects."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict

from .errors import ConfigurationError

DEFAULT_CFG: Dict = {
    "limits": {
        "maxGroups": None,
        "maxItemsPerGroup": None,
        "expandThreshold": 10,
    },
    "groupKeyDelimiter": " | ",
    "ungroupedKey": "Ungrouped",
    "allGroupKey": "all",
    "unknownCountLabel": "Unknown",
    "unknownDomainLabel": "Unknown Domain",
    "searchFields": ["title", "url", "domain"],
}

_LIMIT_KEYS = {
    "maxGroups": "max_groups",
    "maxItemsPerGroup": "max_items_per_group",
    "expandThreshold": "expand_threshold",
}


def merge_cfg(*overrides: Dict | None) -> Dict:
    merged = dict(DEFAULT_CFG)
    merged["limits"] = dict(DEFAULT_CFG["limits"])
    for override in overrides:
        if not override:
            continue
        for key, value in override.items():
            if key == "limits" and isinstance(value, dict):
                merged["limits"].update(value)
            else:
                merged[key] = value
    return merged


@dataclass(frozen=True)
class Limits:
    """Caps on visible groups and items per group. None means unlimited."""

    max_groups: int | None = None
    max_items_per_group: int | None = None
    expand_threshold: int = 10

    def __post_init__(self):
        for name in ("max_groups", "max_items_per_group", "expand_threshold"):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an integer or None, got {value!r}")
            if value < 0:
                raise ConfigurationError(f"{name} must not be negative, got {value}")

    @property
    def applied(self) -> bool:
        return self.max_groups is not None or self.max_items_per_group is not None

    @classmethod
    def from_cfg(cls, limits_cfg: Dict | None) -> "Limits":
        return cls().merged(limits_cfg)

    def merged(self, limits_cfg: "Dict | Limits | None") -> "Limits":
        """Overlay camelCase (or snake_case) limit keys onto these limits."""
        if limits_cfg is None:
            return self
        if isinstance(limits_cfg, Limits):
            return limits_cfg
        changes = {}
        for key, value in limits_cfg.items():
            field_name = _LIMIT_KEYS.get(key, key)
            if field_name not in _LIMIT_KEYS.values():
                raise ConfigurationError(f"Unknown limit '{key}'")
            changes[field_name] = value
        return replace(self, **changes)

    def to_cfg(self) -> Dict:
        return {
            "maxGroups": self.max_groups,
            "maxItemsPerGroup": self.max_items_per_group,
            "expandThreshold": self.expand_threshold,
        }
