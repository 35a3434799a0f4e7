# -*- coding: utf-8 -*-
"""
otc/config.py
OTC Generator Configuration Loader

This module provides:
1. OTCSymbolSettings - Pydantic model for one symbol's generator parameters
2. OTCGeneratorSettings - Pydantic model for the whole generator
3. OTCConfigLoader - Load and merge configuration from YAML files
4. Factory functions for building a ready generator from config

Usage:
    from otc.config import load_otc_config, create_generator_from_config

    settings = load_otc_config("my_symbols.yaml")  # merged over the packaged defaults
    generator = create_generator_from_config(settings)
    tick = generator.generate_next_price("EUR/USD-OTC")

YAML layout:
    generator:
      seed: 42
      enforce_tick_interval: false
    symbols:
      EUR/USD-OTC:
        base_symbol: EUR/USD
        pip_size: 0.00001
        start_price: 1.19080
        ...

References:
    - Pydantic v2 docs: https://docs.pydantic.dev/
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from core_errors import InvalidConfigError
from otc.manual_control import ManualControlService
from otc.models import MarketType, SymbolConfig
from otc.price_generator import OTCPriceGenerator, create_price_generator

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Installed with the package (setup.py package_data)
DEFAULT_OTC_CONFIG_PATH = Path(__file__).resolve().parent / "configs" / "otc_symbols.yaml"

# Environment variable prefix for overrides
ENV_PREFIX = "OTC_"


# =============================================================================
# Models
# =============================================================================

class OTCSymbolSettings(BaseModel):
    """Generator parameters for one OTC symbol."""

    model_config = ConfigDict(extra="forbid")

    symbol: str = Field(min_length=1)
    base_symbol: str = ""
    market_type: MarketType = MarketType.FOREX
    pip_size: float = Field(default=0.00001, gt=0)
    base_volatility: float = Field(default=0.00001, ge=0)
    volatility_multiplier: float = Field(default=1.0, gt=0)
    mean_reversion_strength: float = Field(default=0.001, ge=0, le=1)
    max_deviation_percent: float = Field(default=0.5, gt=0)
    price_offset_pips: float = 0.0
    momentum_factor: float = Field(default=0.15, ge=0, le=1)
    garch_alpha: float = Field(default=0.1, ge=0)
    garch_beta: float = Field(default=0.85, ge=0)
    garch_omega: float = Field(default=0.05, ge=0)
    start_price: Optional[float] = Field(default=None, gt=0)

    @field_validator("market_type", mode="before")
    @classmethod
    def _parse_market_type(cls, value: Any) -> MarketType:
        return MarketType.parse(value)

    @model_validator(mode="after")
    def _check_garch_stationary(self) -> "OTCSymbolSettings":
        if self.garch_alpha + self.garch_beta >= 1.0:
            raise ValueError(
                f"garch_alpha + garch_beta must be < 1, got {self.garch_alpha + self.garch_beta:.4f}"
            )
        return self

    def to_symbol_config(self) -> SymbolConfig:
        """Convert to the generator's immutable SymbolConfig."""
        data = self.model_dump(exclude={"start_price"})
        return SymbolConfig.from_dict(data).validate()


class OTCGeneratorSettings(BaseModel):
    """Generator-wide settings plus per-symbol parameters keyed by symbol."""

    model_config = ConfigDict(extra="forbid")

    seed: Optional[int] = Field(default=None, ge=0)
    enforce_tick_interval: bool = False
    symbols: Dict[str, OTCSymbolSettings] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_symbol_keys(self) -> "OTCGeneratorSettings":
        for key, settings in self.symbols.items():
            if key != settings.symbol:
                raise ValueError(f"symbol key {key!r} does not match symbol {settings.symbol!r}")
        return self

    def get(self, symbol: str) -> OTCSymbolSettings:
        try:
            return self.symbols[symbol]
        except KeyError:
            raise InvalidConfigError(f"No configuration for symbol {symbol!r}") from None

    def symbol_configs(self) -> List[SymbolConfig]:
        return [settings.to_symbol_config() for settings in self.symbols.values()]

    def start_prices(self) -> Dict[str, float]:
        """Start prices of the symbols that define one."""
        return {
            symbol: settings.start_price
            for symbol, settings in self.symbols.items()
            if settings.start_price is not None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OTCGeneratorSettings":
        """
        Create from the YAML layout (generator section plus symbols mapping).

        Raises:
            InvalidConfigError: If validation fails
        """
        generator_section = dict(data.get("generator") or {})
        symbols_section = data.get("symbols") or {}
        if not isinstance(symbols_section, dict):
            raise InvalidConfigError("'symbols' must be a mapping of symbol -> parameters")

        symbols: Dict[str, Any] = {}
        for symbol, params in symbols_section.items():
            params = dict(params or {})
            params.setdefault("symbol", symbol)
            symbols[symbol] = params

        try:
            return cls(symbols=symbols, **generator_section)
        except ValidationError as exc:
            raise InvalidConfigError(f"Invalid OTC configuration: {exc}") from exc
        except TypeError as exc:
            raise InvalidConfigError(f"Invalid OTC configuration: {exc}") from exc

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "OTCGeneratorSettings":
        """
        Load from a YAML file.

        Raises:
            FileNotFoundError: If the file does not exist
            InvalidConfigError: If the file is malformed or invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        return cls.from_dict(_read_yaml(path))


# =============================================================================
# Configuration Loader
# =============================================================================

def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise InvalidConfigError(f"Malformed YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidConfigError(f"Top level of {path} must be a mapping")
    return data


def _parse_bool(value: str) -> bool:
    lower = value.strip().lower()
    if lower in ("true", "1", "yes", "on"):
        return True
    if lower in ("false", "0", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


class OTCConfigLoader:
    """
    Loads and merges OTC generator configuration from multiple sources.

    Priority (highest to lowest):
    1. Environment variables (OTC_*)
    2. Overrides dictionary
    3. User config file (if provided)
    4. Default config file (otc/configs/otc_symbols.yaml)
    """

    ENV_MAPPINGS: Dict[str, Tuple[Tuple[str, ...], Callable[[str], Any]]] = {
        f"{ENV_PREFIX}SEED": (("generator", "seed"), int),
        f"{ENV_PREFIX}ENFORCE_TICK_INTERVAL": (("generator", "enforce_tick_interval"), _parse_bool),
    }

    def __init__(self, default_path: Union[str, Path, None] = DEFAULT_OTC_CONFIG_PATH) -> None:
        """
        Args:
            default_path: Path to the default configuration (None = no defaults)
        """
        self.default_path = Path(default_path) if default_path is not None else None

    def load(
        self,
        user_config_path: Union[str, Path, None] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> OTCGeneratorSettings:
        """
        Load configuration with optional overrides.

        Args:
            user_config_path: Optional user configuration file path
            overrides: Optional dictionary merged over the files

        Returns:
            OTCGeneratorSettings instance

        Raises:
            FileNotFoundError: If user_config_path does not exist
            InvalidConfigError: If merging or validation fails
        """
        config_data: Dict[str, Any] = {}
        if self.default_path is not None:
            if self.default_path.exists():
                config_data = _read_yaml(self.default_path)
            else:
                logger.warning("Default OTC config not found: %s", self.default_path)

        if user_config_path:
            user_path = Path(user_config_path)
            if not user_path.exists():
                raise FileNotFoundError(f"Config file not found: {user_path}")
            config_data = self._deep_merge(config_data, _read_yaml(user_path))

        if overrides:
            config_data = self._deep_merge(config_data, overrides)

        config_data = self._apply_env_overrides(config_data)

        settings = OTCGeneratorSettings.from_dict(config_data)
        logger.info("Loaded OTC config with %d symbol(s)", len(settings.symbols))
        return settings

    def _deep_merge(self, base: Dict, override: Dict) -> Dict:
        """Deep merge two dictionaries."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        for env_var, (path, parse) in self.ENV_MAPPINGS.items():
            raw = os.environ.get(env_var)
            if raw is None or raw.strip() == "":
                continue
            try:
                value = parse(raw)
            except ValueError as exc:
                raise InvalidConfigError(f"Invalid value for {env_var}: {raw!r}") from exc
            self._set_nested(config, path, value)
            logger.debug("Config override from %s: %s=%r", env_var, ".".join(path), value)
        return config

    def _set_nested(self, d: Dict, path: Tuple[str, ...], value: Any) -> None:
        for key in path[:-1]:
            d = d.setdefault(key, {})
        d[path[-1]] = value


# =============================================================================
# Factory Functions
# =============================================================================

def load_otc_config(
    path: Union[str, Path, None] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> OTCGeneratorSettings:
    """
    Load OTC generator configuration.

    Args:
        path: Optional user configuration file merged over the defaults
        overrides: Optional dictionary of override values

    Returns:
        OTCGeneratorSettings instance
    """
    return OTCConfigLoader().load(user_config_path=path, overrides=overrides)


def create_generator_from_config(
    settings: OTCGeneratorSettings,
    manual_controls: Optional[ManualControlService] = None,
    clock_ms: Optional[Callable[[], int]] = None,
) -> OTCPriceGenerator:
    """
    Build a generator and initialize every symbol that has a start price.

    Symbols without a start_price are left for the caller to initialize.
    """
    generator = create_price_generator(
        seed=settings.seed,
        manual_controls=manual_controls,
        enforce_tick_interval=settings.enforce_tick_interval,
        clock_ms=clock_ms,
    )
    for symbol, start_price in settings.start_prices().items():
        generator.initialize_symbol(settings.get(symbol).to_symbol_config(), start_price)
    return generator


__all__ = [
    "DEFAULT_OTC_CONFIG_PATH",
    "OTCSymbolSettings",
    "OTCGeneratorSettings",
    "OTCConfigLoader",
    "load_otc_config",
    "create_generator_from_config",
]
