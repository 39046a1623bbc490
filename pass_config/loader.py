"""
Configuration Loader (``pass_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into an ``AllowanceSettings``.
The single public entry point for runtime settings is
``pass_config.get_active_settings()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or wrongly typed values  -> ``ValueError``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from pass_config.schema import AllowanceSettings

_KNOWN_KEYS = frozenset({
    "config_id",
    "price_per_pass",
    "party_pass_limit",
    "default_free_pass_limit",
    "timezone",
    "serialize_unit_allowance",
})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, name: str) -> Decimal:
    """Parse a money amount without going through float."""
    if isinstance(value, float):
        value = repr(value)
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{name} is not a decimal amount: {value!r}") from exc


def parse_settings(data: dict[str, Any]) -> AllowanceSettings:
    """
    Parse ``AllowanceSettings`` from a dict.

    The YAML may nest the keys under a top-level ``allowances`` mapping.
    Missing keys fall back to the dataclass defaults.
    """
    if "allowances" in data:
        data = {"config_id": data.get("config_id", "defaults"), **(data["allowances"] or {})}

    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise ValueError(f"Unknown settings keys: {', '.join(sorted(unknown))}")

    kwargs: dict[str, Any] = {}
    if "config_id" in data:
        kwargs["config_id"] = str(data["config_id"])
    if "price_per_pass" in data:
        kwargs["price_per_pass"] = parse_decimal(data["price_per_pass"], "price_per_pass")
    for name in ("party_pass_limit", "default_free_pass_limit"):
        if name in data:
            kwargs[name] = data[name]
    if "timezone" in data:
        kwargs["timezone"] = str(data["timezone"])
    if "serialize_unit_allowance" in data:
        kwargs["serialize_unit_allowance"] = data["serialize_unit_allowance"]

    return AllowanceSettings(**kwargs)
