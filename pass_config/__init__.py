"""
pass_config -- single public entrypoint for allowance settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``.  Returns a frozen ``AllowanceSettings`` that
    callers pass explicitly into the ledger and selectors.  There is no
    module-level settings singleton.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``ValueError`` -- unknown keys or validation failures.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pass_config.loader import load_yaml_file, parse_settings
from pass_config.schema import AllowanceSettings
from pass_config.validator import ConfigValidationResult, validate_settings

_logger = logging.getLogger("pass_kernel.config")

_DEFAULT_SETTINGS_FILE = Path(__file__).parent / "settings.yaml"


def get_active_settings(config_path: Path | None = None) -> AllowanceSettings:
    """The ONLY public settings entrypoint.

    Guarantees:
        - The returned ``AllowanceSettings`` has passed validation.
        - A ``PASS_CONFIG_TRACE`` log entry is emitted on every call.

    Non-goals:
        - Does NOT cache settings across calls; callers hold the returned
          value for the duration of a request.

    Args:
        config_path: Override path to the YAML settings file.
            Defaults to pass_config/settings.yaml.

    Raises:
        FileNotFoundError: If the settings file is missing.
        ValueError: If the settings fail validation.
    """
    path = config_path or _DEFAULT_SETTINGS_FILE
    settings = parse_settings(load_yaml_file(path))

    validation = validate_settings(settings)
    if not validation.is_valid:
        raise ValueError(
            "Settings validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("settings_warning", extra={"warning": warning})

    _logger.info(
        "PASS_CONFIG_TRACE",
        extra={
            "trace_type": "PASS_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_path": str(path),
            "price_per_pass": str(settings.price_per_pass),
            "party_pass_limit": settings.party_pass_limit,
            "default_free_pass_limit": settings.default_free_pass_limit,
            "timezone": settings.timezone,
            "serialize_unit_allowance": settings.serialize_unit_allowance,
        },
    )
    return settings


__all__ = [
    "AllowanceSettings",
    "ConfigValidationResult",
    "get_active_settings",
    "validate_settings",
]
