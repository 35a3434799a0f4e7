# -*- coding: utf-8 -*-
"""
otc/models.py
Data model for synthetic (OTC) price generation.

Contains:
1. Enums - market type, price mode, wave phase, direction
2. SymbolConfig - immutable per-symbol generator parameters
3. SymbolState - mutable per-symbol simulation state
4. SymbolSnapshot - typed read-only copy of a state for diagnostics
5. PriceTick - generated tick handed to consumers

Prices are plain floats; pip quantization happens in the generator.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field, fields, replace
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any, Deque, Dict, Tuple

from core_errors import InvalidConfigError


# =============================================================================
# Constants
# =============================================================================

# Number of prices kept per symbol for change / change% computation
PRICE_HISTORY_SIZE = 300

# Spread quoted around the generated price, in pips
DEFAULT_SPREAD_PIPS = 2.0

# Base delay between ticks (ms) and its random variance
BASE_TICK_INTERVAL_MS = 500
TICK_INTERVAL_VARIANCE_MS = 120


# =============================================================================
# Enums
# =============================================================================

class MarketType(str, Enum):
    """Market the synthetic instrument mimics."""
    FOREX = "FOREX"
    CRYPTO = "CRYPTO"

    @classmethod
    def parse(cls, value: Any) -> "MarketType":
        """Case-insensitive lookup; unknown values fall back to FOREX."""
        if isinstance(value, MarketType):
            return value
        normalized = str(value or "").strip().upper()
        try:
            return cls(normalized)
        except ValueError:
            return cls.FOREX


class PriceMode(str, Enum):
    """Source of a tick price."""
    REAL = "REAL"
    OTC = "OTC"
    ANCHORING = "ANCHORING"


class WavePhase(str, Enum):
    """Phase of the momentum overlay."""
    TREND = "TREND"
    PULLBACK = "PULLBACK"


class Direction(IntEnum):
    """Price direction, usable directly as a +1/-1 multiplier."""
    UP = 1
    DOWN = -1

    def reversed(self) -> "Direction":
        return Direction(-int(self))


# =============================================================================
# Configuration
# =============================================================================

def _is_finite_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


@dataclass(frozen=True)
class SymbolConfig:
    """
    Immutable generator parameters for one OTC symbol.

    Attributes:
        symbol: OTC symbol, e.g. "EUR/USD-OTC"
        base_symbol: Real-market symbol used for reference pricing
        market_type: FOREX or CRYPTO
        pip_size: Smallest quoted increment
        base_volatility: Baseline per-tick relative standard deviation
        volatility_multiplier: Scale factor on the volatility
        mean_reversion_strength: Pull toward the reference price, [0, 1]
        max_deviation_percent: Hard cap on divergence from reference (percent)
        price_offset_pips: Constant offset applied to the reference price
        momentum_factor: Weight of the wave/trend component, [0, 1]
        garch_alpha: GARCH(1,1) weight of the last squared return
        garch_beta: GARCH(1,1) weight of the previous variance
        garch_omega: GARCH(1,1) constant term
    """
    symbol: str
    base_symbol: str = ""
    market_type: MarketType = MarketType.FOREX
    pip_size: float = 0.00001
    base_volatility: float = 0.00001
    volatility_multiplier: float = 1.0
    mean_reversion_strength: float = 0.001
    max_deviation_percent: float = 0.5
    price_offset_pips: float = 0.0
    momentum_factor: float = 0.15
    garch_alpha: float = 0.1
    garch_beta: float = 0.85
    garch_omega: float = 0.05

    def __post_init__(self) -> None:
        object.__setattr__(self, "market_type", MarketType.parse(self.market_type))

    def validate(self) -> "SymbolConfig":
        """
        Check structural validity.

        Returns:
            self, to allow chaining

        Raises:
            InvalidConfigError: On the first invalid field
        """
        if not self.symbol or not str(self.symbol).strip():
            raise InvalidConfigError("symbol must be a non-empty string")

        numeric = (
            "pip_size", "base_volatility", "volatility_multiplier",
            "mean_reversion_strength", "max_deviation_percent",
            "price_offset_pips", "momentum_factor",
            "garch_alpha", "garch_beta", "garch_omega",
        )
        for name in numeric:
            if not _is_finite_number(getattr(self, name)):
                raise InvalidConfigError(f"{self.symbol}: {name} must be a finite number")

        if self.pip_size <= 0:
            raise InvalidConfigError(f"{self.symbol}: pip_size must be > 0, got {self.pip_size}")
        if self.base_volatility < 0:
            raise InvalidConfigError(f"{self.symbol}: base_volatility must be >= 0")
        if self.volatility_multiplier <= 0:
            raise InvalidConfigError(f"{self.symbol}: volatility_multiplier must be > 0")
        if not 0.0 <= self.mean_reversion_strength <= 1.0:
            raise InvalidConfigError(f"{self.symbol}: mean_reversion_strength must be in [0, 1]")
        if not 0.0 <= self.momentum_factor <= 1.0:
            raise InvalidConfigError(f"{self.symbol}: momentum_factor must be in [0, 1]")
        if self.max_deviation_percent <= 0:
            raise InvalidConfigError(f"{self.symbol}: max_deviation_percent must be > 0")
        if min(self.garch_alpha, self.garch_beta, self.garch_omega) < 0:
            raise InvalidConfigError(f"{self.symbol}: GARCH parameters must be >= 0")
        if self.garch_alpha + self.garch_beta >= 1.0:
            raise InvalidConfigError(
                f"{self.symbol}: garch_alpha + garch_beta must be < 1 "
                f"(got {self.garch_alpha + self.garch_beta:.4f})"
            )
        return self

    def replace(self, **updates: Any) -> "SymbolConfig":
        """Return a validated copy with some fields changed."""
        unknown = set(updates) - {f.name for f in fields(self)}
        if unknown:
            raise InvalidConfigError(f"{self.symbol}: unknown config fields {sorted(unknown)}")
        if "symbol" in updates and updates["symbol"] != self.symbol:
            raise InvalidConfigError("symbol cannot be changed on an existing config")
        return replace(self, **updates).validate()

    @property
    def unconditional_variance(self) -> float:
        """Long-run GARCH variance omega / (1 - alpha - beta)."""
        persistence = self.garch_alpha + self.garch_beta
        if persistence >= 1.0:
            return self.garch_omega
        return self.garch_omega / (1.0 - persistence)

    @property
    def price_decimals(self) -> int:
        """Number of decimals implied by the pip size."""
        exponent = Decimal(repr(self.pip_size)).normalize().as_tuple().exponent
        return max(0, -int(exponent))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SymbolConfig":
        """Create from a snake_case dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        out = {f.name: getattr(self, f.name) for f in fields(self)}
        out["market_type"] = self.market_type.value
        return out


# =============================================================================
# State
# =============================================================================

@dataclass
class WaveState:
    """
    Momentum overlay state.

    The wave alternates TREND and PULLBACK phases. A fake-out temporarily
    reverses the trend direction inside a TREND phase.
    """
    direction: Direction
    is_pullback: bool = False
    ticks_in_phase: int = 0
    phase_length: int = 0
    target_units: float = 0.0
    progress_units: float = 0.0
    start_price: float = 0.0
    in_fake_out: bool = False
    fake_out_remaining: int = 0
    fake_out_original_direction: Direction = Direction.UP

    @property
    def phase(self) -> WavePhase:
        return WavePhase.PULLBACK if self.is_pullback else WavePhase.TREND

    @property
    def remaining_ticks(self) -> int:
        return max(0, self.phase_length - self.ticks_in_phase)

    @property
    def effective_direction(self) -> Direction:
        """Direction the overlay pushes toward on the next tick."""
        if self.is_pullback:
            return self.direction.reversed()
        return self.direction


@dataclass
class CandleState:
    """Running OHLC of the candle currently being formed."""
    open: float
    high: float
    low: float
    tick_count: int = 0

    def update(self, price: float) -> None:
        if price > self.high:
            self.high = price
        if price < self.low:
            self.low = price
        self.tick_count += 1

    def reset(self, price: float) -> None:
        self.open = price
        self.high = price
        self.low = price
        self.tick_count = 0


@dataclass
class AntiPatternState:
    """Memory used to break long same-direction streaks."""
    last_direction: Direction
    same_direction_count: int = 0


@dataclass
class SymbolState:
    """
    Mutable simulation state of one symbol.

    Owned by the generator; consumers only see SymbolSnapshot copies.
    """
    symbol: str
    current_price: float
    reference_price: float
    conditional_variance: float
    wave: WaveState
    candle: CandleState
    anti_pattern: AntiPatternState
    last_update_timestamp: int
    last_squared_return: float = 0.0
    last_return: float = 0.0
    next_tick_delay_ms: int = BASE_TICK_INTERVAL_MS
    tick_count: int = 0
    price_history: Deque[float] = field(
        default_factory=lambda: deque(maxlen=PRICE_HISTORY_SIZE)
    )

    def record_price(self, price: float) -> None:
        self.price_history.append(price)

    def snapshot(self) -> "SymbolSnapshot":
        """Typed copy safe to hand out of the lock."""
        wave = replace(self.wave)
        candle = replace(self.candle)
        return SymbolSnapshot(
            symbol=self.symbol,
            current_price=self.current_price,
            reference_price=self.reference_price,
            conditional_variance=self.conditional_variance,
            last_squared_return=self.last_squared_return,
            last_return=self.last_return,
            wave=wave,
            candle=candle,
            last_direction=self.anti_pattern.last_direction,
            same_direction_count=self.anti_pattern.same_direction_count,
            last_update_timestamp=self.last_update_timestamp,
            next_tick_delay_ms=self.next_tick_delay_ms,
            tick_count=self.tick_count,
            price_history=tuple(self.price_history),
        )


@dataclass(frozen=True)
class SymbolSnapshot:
    """Read-only diagnostic view of a SymbolState."""
    symbol: str
    current_price: float
    reference_price: float
    conditional_variance: float
    last_squared_return: float
    last_return: float
    wave: WaveState
    candle: CandleState
    last_direction: Direction
    same_direction_count: int
    last_update_timestamp: int
    next_tick_delay_ms: int
    tick_count: int
    price_history: Tuple[float, ...] = ()

    @property
    def phase(self) -> WavePhase:
        return self.wave.phase


# =============================================================================
# Ticks
# =============================================================================

@dataclass(frozen=True)
class PriceTick:
    """
    Single generated tick.

    Attributes:
        symbol: OTC symbol
        price: Quantized tick price
        bid: price - half spread
        ask: price + half spread
        timestamp: Epoch milliseconds
        price_mode: REAL, OTC or ANCHORING
        volatility_state: Conditional GARCH variance after the tick
        change: Price change versus the oldest price in the history window
        change_percent: Same change in percent
    """
    symbol: str
    price: float
    bid: float
    ask: float
    timestamp: int
    price_mode: PriceMode = PriceMode.OTC
    volatility_state: float = 0.0
    change: float = 0.0
    change_percent: float = 0.0

    @property
    def spread(self) -> float:
        return self.ask - self.bid

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "symbol": self.symbol,
            "price": self.price,
            "bid": self.bid,
            "ask": self.ask,
            "timestamp": self.timestamp,
            "price_mode": self.price_mode.value,
            "volatility_state": self.volatility_state,
            "change": self.change,
            "change_percent": self.change_percent,
        }


@dataclass(frozen=True)
class CandleOHLC:
    """OHLC view of the current candle."""
    open: float
    high: float
    low: float
    close: float
    tick_count: int


__all__ = [
    "PRICE_HISTORY_SIZE",
    "DEFAULT_SPREAD_PIPS",
    "BASE_TICK_INTERVAL_MS",
    "TICK_INTERVAL_VARIANCE_MS",
    "MarketType",
    "PriceMode",
    "WavePhase",
    "Direction",
    "SymbolConfig",
    "WaveState",
    "CandleState",
    "AntiPatternState",
    "SymbolState",
    "SymbolSnapshot",
    "PriceTick",
    "CandleOHLC",
]
