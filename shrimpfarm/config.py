"""
Shrimp farm configuration.

Provides:
1. Hierarchical configuration with defaults
2. Environment variable overrides (SHRIMPFARM_* prefix)
3. Config file loading (JSON/TOML/YAML)
4. Validation on construction

Configuration Hierarchy (highest to lowest priority):
1. Environment variables
2. Config file
3. Default values

Example:
    config = ShrimpFarmConfig.load("farm.yaml")
    print(config.economy.min_buy)

    # Override with environment
    # SHRIMPFARM_ECONOMY_MIN_BUY=20000000
"""

from __future__ import annotations

import json
import logging
import os
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from .collaborators import DEFAULT_ALLOWED_PROGRAMS
from .constants import (
    DEFAULT_MAX_AUX_INSTRUCTIONS,
    DEFAULT_RENT_RESERVE,
    DEV_FEE,
    MAX_AUX_INSTRUCTIONS_LIMIT,
    MAX_WHITELIST_LEN,
    MIN_BUY,
    NFT_BONUS,
    NFT_MIN_BUY,
    NFT_SUPPLY,
    PREMARKET_FEE,
    REFERRAL_CASHBACK,
    REFERRAL_FEE,
    TESTNET_BONUS,
    USERNAME_MAX_LEN,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Sections
# =============================================================================

@dataclass
class EconomyConfig:
    """Economic parameters (lamports and percentages)."""
    min_buy: int = MIN_BUY
    nft_min_buy: int = NFT_MIN_BUY
    nft_supply: int = NFT_SUPPLY
    dev_fee: int = DEV_FEE
    premarket_fee: int = PREMARKET_FEE
    referral_fee: int = REFERRAL_FEE
    referral_cashback: int = REFERRAL_CASHBACK
    nft_bonus: int = NFT_BONUS
    testnet_bonus: int = TESTNET_BONUS
    rent_reserve: int = DEFAULT_RENT_RESERVE
    default_cooldown: int = 300
    username_max_len: int = USERNAME_MAX_LEN

    def __post_init__(self):
        for name in (
            "min_buy", "nft_min_buy", "nft_supply", "dev_fee", "premarket_fee",
            "referral_fee", "referral_cashback", "nft_bonus", "testnet_bonus",
            "rent_reserve", "default_cooldown",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.min_buy == 0:
            raise ValueError("min_buy must be positive")
        if self.username_max_len <= 0:
            raise ValueError("username_max_len must be positive")
        if self.dev_fee + self.premarket_fee + self.referral_fee + self.referral_cashback >= 100:
            raise ValueError("combined fees must stay below 100%")

    @property
    def trade_fee(self) -> int:
        """Fee applied to curve purchases (dev + pre-sale)."""
        return self.dev_fee + self.premarket_fee


@dataclass
class GuardConfig:
    """Instruction guard bounds."""
    default_max_aux_instructions: int = DEFAULT_MAX_AUX_INSTRUCTIONS
    max_aux_instructions_limit: int = MAX_AUX_INSTRUCTIONS_LIMIT
    max_whitelist_len: int = MAX_WHITELIST_LEN
    allowed_programs: Tuple[str, ...] = DEFAULT_ALLOWED_PROGRAMS

    def __post_init__(self):
        self.allowed_programs = tuple(self.allowed_programs)
        if not (0 <= self.default_max_aux_instructions < self.max_aux_instructions_limit):
            raise ValueError("default_max_aux_instructions must be below max_aux_instructions_limit")
        if self.max_whitelist_len < 0:
            raise ValueError("max_whitelist_len must be non-negative")


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "text"  # "json" or "text"
    file: Optional[str] = None
    redact: bool = True


# =============================================================================
# Main Configuration
# =============================================================================

@dataclass
class ShrimpFarmConfig:
    """Root configuration combining all sections."""
    economy: EconomyConfig = field(default_factory=EconomyConfig)
    guards: GuardConfig = field(default_factory=GuardConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(
        cls,
        config_file: Optional[Union[str, Path]] = None,
        env_prefix: str = "SHRIMPFARM",
    ) -> "ShrimpFarmConfig":
        """
        Load configuration with hierarchy: env vars > config file > defaults.

        Args:
            config_file: Path to config file (JSON, TOML or YAML)
            env_prefix: Prefix for environment variables

        Returns:
            Loaded and validated configuration
        """
        config_dict: Dict[str, Any] = {}

        if config_file:
            config_dict = cls._load_file(Path(config_file))

        config_dict = cls._apply_env_overrides(config_dict, env_prefix)

        config = cls._from_dict(config_dict)
        config.validate()
        return config

    @classmethod
    def _load_file(cls, path: Path) -> Dict[str, Any]:
        """Load configuration from file."""
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return {}

        content = path.read_text()

        if path.suffix == ".json":
            parsed = json.loads(content)
        elif path.suffix == ".toml":
            parsed = tomllib.loads(content)
        elif path.suffix in {".yaml", ".yml"}:
            parsed = yaml.safe_load(content)
        else:
            logger.warning(f"Unknown config file format: {path.suffix}")
            return {}

        if not isinstance(parsed, dict):
            logger.warning("Config file must be a mapping at top level")
            return {}
        return parsed

    @classmethod
    def _apply_env_overrides(cls, config: Dict[str, Any], prefix: str) -> Dict[str, Any]:
        """Apply environment variable overrides."""
        for key, value in os.environ.items():
            if not key.startswith(f"{prefix}_"):
                continue

            # SHRIMPFARM_ECONOMY_MIN_BUY -> economy.min_buy
            parts = key[len(prefix) + 1:].lower().split("_")

            if len(parts) < 2:
                continue

            section = parts[0]
            if section not in {"economy", "guards", "logging"}:
                continue
            field_name = "_".join(parts[1:])

            config.setdefault(section, {})
            config[section][field_name] = cls._parse_env_value(value)

        return config

    @staticmethod
    def _parse_env_value(value: str) -> Any:
        """Parse environment variable value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    @classmethod
    def _from_dict(cls, config_dict: Dict[str, Any]) -> "ShrimpFarmConfig":
        return cls(
            economy=EconomyConfig(**config_dict.get("economy", {})),
            guards=GuardConfig(**config_dict.get("guards", {})),
            logging=LoggingConfig(**config_dict.get("logging", {})),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["guards"]["allowed_programs"] = list(self.guards.allowed_programs)
        return data

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def save(self, path: Union[str, Path]) -> None:
        """Save configuration as JSON or YAML depending on the suffix."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        if path.suffix in {".yaml", ".yml"}:
            path.write_text(yaml.safe_dump(self.to_dict(), sort_keys=False))
        else:
            path.write_text(self.to_json())

    def validate(self) -> None:
        """Cross-section validation; per-section checks run in __post_init__."""
        if self.logging.level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid logging level: {self.logging.level}")

        if self.logging.format not in ("json", "text"):
            raise ValueError(f"Invalid logging format: {self.logging.format}")


# =============================================================================
# Global Config Instance
# =============================================================================

_global_config: Optional[ShrimpFarmConfig] = None


def get_config() -> ShrimpFarmConfig:
    """Get global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = ShrimpFarmConfig.load()
    return _global_config


def set_config(config: ShrimpFarmConfig) -> None:
    global _global_config
    _global_config = config


def reset_config() -> None:
    """Reset global configuration to None (forces reload)."""
    global _global_config
    _global_config = None
