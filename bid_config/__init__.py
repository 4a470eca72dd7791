"""
bid_config -- single public entrypoint for bid engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``EngineConfig``.

Architecture position:
    Configuration.  This package sits above ``bid_kernel``; the kernel MUST
    NEVER import from ``bid_config``.  ``bid_config.bridges`` translates the
    configuration into kernel collaborators.

Resolution order for the file:
    1. The ``path`` argument.
    2. The ``BID_ENGINE_CONFIG`` environment variable.
    3. The packaged ``bid_config/defaults.yaml``.

``BID_ENGINE_DATABASE_URL``, when set, overrides ``engine.database_url``.

Failure modes:
    - ``FileNotFoundError`` -- the configured file does not exist.
    - ``ValueError`` -- malformed values or unknown keys.
"""

from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path

from bid_config.loader import load_config
from bid_config.schema import EngineConfig, EngineSettings, OperatingExpenseDefaults
from bid_kernel.logging_config import get_logger

logger = get_logger("config")

CONFIG_ENV_VAR = "BID_ENGINE_CONFIG"
DATABASE_URL_ENV_VAR = "BID_ENGINE_DATABASE_URL"

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "defaults.yaml"


def get_active_config(path: Path | str | None = None) -> EngineConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: Configuration file; see the module docstring for fallbacks.

    Returns:
        EngineConfig.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    config_path = Path(path or env_path or _DEFAULT_CONFIG_FILE)
    config = load_config(config_path)

    database_url = os.environ.get(DATABASE_URL_ENV_VAR)
    if database_url:
        config = replace(
            config, settings=replace(config.settings, database_url=database_url)
        )

    logger.info(
        "config_loaded",
        extra={
            "source": config.source,
            "bid_number_prefix": config.settings.bid_number_prefix,
            "organization_override_count": len(config.organization_overrides),
            "database_url_from_env": bool(database_url),
        },
    )
    return config


__all__ = [
    "CONFIG_ENV_VAR",
    "DATABASE_URL_ENV_VAR",
    "EngineConfig",
    "EngineSettings",
    "OperatingExpenseDefaults",
    "get_active_config",
]
