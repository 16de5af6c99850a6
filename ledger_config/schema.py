"""
Configuration schema (``ledger_config.schema``).

Responsibility
--------------
The typed runtime configuration of the ledger: database location, the
windows used by the schedulers and the strategic aggregator, collaborator
timeouts and listing limits.

Invariants enforced
-------------------
* Every window and limit is positive; ``ledger_page_size`` never exceeds
  ``max_page_size``.
* ``default_currency`` is a valid ISO 4217 code.

Failure modes
-------------
* Invalid values -> ``ValueError`` from ``__post_init__``.
* Unknown keys in ``from_dict`` -> ``ValueError`` naming them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Any, Self

from ledger_kernel.db.types import is_valid_currency
from ledger_kernel.logging_config import get_logger

logger = get_logger("config")

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class LedgerConfig:
    """
    Runtime settings for the ledger.

    Contract:
        All fields have working defaults.  ``__post_init__`` validates every
        constraint and raises ``ValueError`` on violation.

    Example::

        config = LedgerConfig.from_dict({"stale_project_days": 14})
    """

    database_url: str = "sqlite:///ledger.db"
    stale_project_days: int = 7
    collaborator_timeout_seconds: float = 2.0
    upcoming_window_days: int = 7
    default_currency: str = "EUR"
    ledger_page_size: int = 20
    max_page_size: int = 200
    log_level: str = "INFO"

    def __post_init__(self):
        if not self.database_url:
            raise ValueError("database_url is required")
        if self.stale_project_days <= 0:
            raise ValueError("stale_project_days must be positive")
        if self.collaborator_timeout_seconds <= 0:
            raise ValueError("collaborator_timeout_seconds must be positive")
        if self.upcoming_window_days < 0:
            raise ValueError("upcoming_window_days cannot be negative")
        if not is_valid_currency(self.default_currency):
            raise ValueError(f"default_currency is not ISO 4217: {self.default_currency}")
        if self.ledger_page_size <= 0 or self.max_page_size <= 0:
            raise ValueError("page sizes must be positive")
        if self.ledger_page_size > self.max_page_size:
            raise ValueError("ledger_page_size cannot exceed max_page_size")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {_LOG_LEVELS}")

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level.upper())

    def clamp_page_size(self, limit: int | None) -> int:
        """Requested page size bounded to [1, max_page_size]; None -> default."""
        if limit is None:
            return self.ledger_page_size
        return max(1, min(limit, self.max_page_size))

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the built-in defaults."""
        logger.info("ledger_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create config from a dictionary (e.g. parsed YAML)."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {unknown}")
        logger.info(
            "ledger_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
