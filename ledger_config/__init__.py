"""
ledger_config -- single public entrypoint for runtime configuration.

Responsibility:
    ``load_config()`` is the only place that reads configuration files or
    environment variables.  It returns a validated, frozen ``LedgerConfig``.

Resolution order (later wins):
    1. ``ledger_config/defaults.yaml`` shipped with the package.
    2. The YAML file passed as ``path`` (or named by ``LEDGER_CONFIG``).
    3. ``LEDGER_DATABASE_URL`` and ``LEDGER_LOG_LEVEL``.

Failure modes:
    - ``FileNotFoundError`` -- an explicit ``path`` does not exist.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``ValueError`` -- unknown keys or invalid values.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from ledger_config.schema import LedgerConfig
from ledger_kernel.logging_config import get_logger

logger = get_logger("config")

_DEFAULTS_FILE = Path(__file__).parent / "defaults.yaml"

_ENV_OVERRIDES = {
    "LEDGER_DATABASE_URL": "database_url",
    "LEDGER_LOG_LEVEL": "log_level",
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load one YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> LedgerConfig:
    """
    Build the active configuration.

    Args:
        path: Optional YAML file overriding the packaged defaults.
        environ: Environment mapping (defaults to ``os.environ``).
    """
    env = os.environ if environ is None else environ
    data = load_yaml_file(_DEFAULTS_FILE)

    override_path = path or env.get("LEDGER_CONFIG")
    if override_path:
        data.update(load_yaml_file(Path(override_path)))

    for variable, key in _ENV_OVERRIDES.items():
        value = env.get(variable)
        if value:
            data[key] = value

    config = LedgerConfig.from_dict(data)
    logger.info(
        "ledger_config_loaded",
        extra={
            "source": str(override_path) if override_path else "defaults",
            "stale_project_days": config.stale_project_days,
            "collaborator_timeout_seconds": config.collaborator_timeout_seconds,
        },
    )
    return config


__all__ = ["LedgerConfig", "load_config", "load_yaml_file"]
