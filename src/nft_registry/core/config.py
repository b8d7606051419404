"""
NFT Registry Configuration

Deployment settings are read once from environment variables. The collection
name and symbol are fixed at deployment and have no mutation path afterwards.

Environment:
- NFT_REGISTRY_NAME / NFT_REGISTRY_SYMBOL: collection identity
- NFT_REGISTRY_BASE_URI: prefix used to build token URIs
- NFT_REGISTRY_MINTER: optional privileged minter account
- NFT_REGISTRY_REQUIRE_CHECKSUM: reject non-checksummed mixed-case input (0/1)
- NFT_REGISTRY_LOG_LEVEL / NFT_REGISTRY_LOG_DIR: structured logging output
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


# Ledger constants
ZERO_ADDRESS = "0x" + "0" * 40
MAX_UINT256 = 2**256 - 1
ADDRESS_HEX_LENGTH = 40

# Deployment defaults (the StylusNFT demo collection)
DEFAULT_NAME = "StylusNFT"
DEFAULT_SYMBOL = "SNFT"
DEFAULT_BASE_URI = "https://foobar/"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL")


def _get_flag(env_var: str, default: str = "0") -> bool:
    raw = os.getenv(env_var, default).strip()
    if raw not in ("0", "1"):
        raise ConfigurationError(f"{env_var} must be 0 or 1, got {raw!r}")
    return raw == "1"


def _get_non_empty(env_var: str, default: str) -> str:
    value = os.getenv(env_var, default).strip()
    if not value:
        raise ConfigurationError(f"{env_var} cannot be empty")
    return value


@dataclass(frozen=True)
class RegistrySettings:
    """Immutable deployment settings for one registry instance."""

    name: str = DEFAULT_NAME
    symbol: str = DEFAULT_SYMBOL
    base_uri: str = DEFAULT_BASE_URI
    minter: str | None = None
    require_checksum: bool = False
    log_level: str = "INFO"
    log_dir: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("Registry name cannot be empty")
        if not self.symbol:
            raise ConfigurationError("Registry symbol cannot be empty")
        if self.log_level.upper() not in VALID_LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid log level {self.log_level!r}; expected one of {', '.join(VALID_LOG_LEVELS)}"
            )

    @classmethod
    def from_env(cls) -> "RegistrySettings":
        """Build settings from NFT_REGISTRY_* environment variables."""
        minter = os.getenv("NFT_REGISTRY_MINTER", "").strip() or None
        log_dir = os.getenv("NFT_REGISTRY_LOG_DIR", "").strip() or None
        settings = cls(
            name=_get_non_empty("NFT_REGISTRY_NAME", DEFAULT_NAME),
            symbol=_get_non_empty("NFT_REGISTRY_SYMBOL", DEFAULT_SYMBOL),
            base_uri=os.getenv("NFT_REGISTRY_BASE_URI", DEFAULT_BASE_URI).strip(),
            minter=minter,
            require_checksum=_get_flag("NFT_REGISTRY_REQUIRE_CHECKSUM"),
            log_level=os.getenv("NFT_REGISTRY_LOG_LEVEL", "INFO").strip().upper(),
            log_dir=log_dir,
        )
        logger.debug(
            "Registry settings loaded",
            extra={
                "event": "config.loaded",
                "registry_name": settings.name,
                "symbol": settings.symbol,
                "minter_restricted": settings.minter is not None,
            },
        )
        return settings
