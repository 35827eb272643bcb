"""
HybridSeal — Settings & Logging
================================

Runtime settings are read from the environment (prefix ``HYBRIDSEAL_``)
and an optional ``.env`` file::

    HYBRIDSEAL_OAEP_HASH=sha1
    HYBRIDSEAL_LEGACY_RECOVERY=false
    HYBRIDSEAL_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .ciphers import OaepHash
from .legacy import MAX_SHIFT, MIN_SHIFT, SYMMETRIC_SHIFT, LegacyKeyRecovery
from .recovery import KeyRecoveryStrategy

LOGGER_NAME = "hybridseal"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class EnvelopeSettings(BaseSettings):
    # Ciphers
    oaep_hash: OaepHash = OaepHash.SHA256
    parallel_seal: bool = False

    # Legacy key recovery
    legacy_recovery: bool = True
    min_shift: int = Field(default=MIN_SHIFT, ge=1)
    max_shift: int = Field(default=MAX_SHIFT, ge=1)
    symmetric_shift: int = Field(default=SYMMETRIC_SHIFT, ge=0)

    # Demo key generation
    demo_rsa_key_size: int = Field(default=2048, ge=2048)

    # Logging
    log_level: str = "WARNING"

    model_config = SettingsConfigDict(
        env_prefix="HYBRIDSEAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {value!r}")
        return level

    @model_validator(mode="after")
    def _shift_range(self) -> "EnvelopeSettings":
        if self.min_shift > self.max_shift:
            raise ValueError("min_shift must not exceed max_shift")
        return self

    def recovery_strategy(self) -> KeyRecoveryStrategy:
        """Legacy-aware recovery, or the strict strategy when disabled."""
        if not self.legacy_recovery:
            return KeyRecoveryStrategy()
        return LegacyKeyRecovery(self.min_shift, self.max_shift, self.symmetric_shift)


def load_settings(**overrides: Any) -> EnvelopeSettings:
    """Read settings from the environment; keyword arguments win."""
    return EnvelopeSettings(**overrides)


def configure_logging(level: "int | str" = logging.WARNING) -> logging.Logger:
    """
    Attach one stream handler to the ``hybridseal`` logger and set *level*.

    Calling it again only changes the level.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    if not any(getattr(h, "_hybridseal", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._hybridseal = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
