# -*- coding: utf-8 -*-
"""
otc/price_generator.py
Synthetic (OTC) Price Path Generator

Produces realistic-looking tick data for synthetic instruments without a
real market feed. Each symbol is advanced one tick at a time from its own
state; different symbols are independent.

Per-tick model:
1. GARCH(1,1) conditional variance on standardized returns
   (volatility clustering: calm and turbulent periods)
2. Wave overlay: TREND -> PULLBACK -> TREND state machine with fake-outs,
   micro-reversals and a streak breaker
3. Price delta = Gaussian shock + mean reversion + momentum
4. Clamp to the allowed deviation band around the reference price
5. Quantize to the pip grid

Usage:
    generator = OTCPriceGenerator(random_source=NumpyRandomSource(seed=42))
    generator.initialize_symbol(config, 1.19080)
    generator.update_real_price("EUR/USD-OTC", 1.19085)
    tick = generator.generate_next_price("EUR/USD-OTC")

References:
    - Bollerslev (1986): "Generalized Autoregressive Conditional
      Heteroskedasticity"
    - Dacorogna et al. (2001): "An Introduction to High-Frequency Finance"
"""

from __future__ import annotations

import logging
import math
import time
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Callable, Dict, List, Optional, Tuple

from core_errors import InvalidPriceError, QuantizeError, UnknownSymbolError
from otc.manual_control import ManualControlService
from otc.models import (
    BASE_TICK_INTERVAL_MS,
    DEFAULT_SPREAD_PIPS,
    TICK_INTERVAL_VARIANCE_MS,
    CandleOHLC,
    Direction,
    MarketType,
    PriceMode,
    PriceTick,
    SymbolConfig,
    SymbolSnapshot,
    SymbolState,
    WaveState,
)
from otc.random_source import RandomSource, create_random_source
from otc.state_store import SymbolStateStore

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Trend phase: duration (ticks) and target (move units, before the market multiplier)
WAVE_PARAMS: Dict[str, float] = {
    "length_min": 15,
    "length_max": 100,
    "target_min": 8.0,
    "target_max": 45.0,
    "continuation_prob": 0.42,  # < 0.5 keeps the next trend hard to guess
}

# Pullback phase: counter-trend run after each trend
PULLBACK_PARAMS: Dict[str, float] = {
    "length_min": 2,
    "length_max": 5,
    "strength": 0.45,  # move size multiplier while pulling back
}

# Per-market overlay. wave_bias: P(a trend tick follows the wave direction);
# move_multiplier: pips per move unit in the momentum step
MARKET_PARAMS: Dict[MarketType, Dict[str, float]] = {
    MarketType.FOREX: {"move_multiplier": 0.85, "wave_bias": 0.54},
    MarketType.CRYPTO: {"move_multiplier": 15.0, "wave_bias": 0.51},
}

UNPREDICTABILITY_PARAMS: Dict[str, float] = {
    "micro_reversal_prob": 0.12,
    "fake_out_prob": 0.06,
    "fake_out_length_min": 3,
    "fake_out_length_max": 7,
    "anti_pattern_threshold": 4,
    "anti_pattern_step": 0.08,
    "anti_pattern_max_prob": 0.7,
}

# Move size distribution: (min, max, probability); 40% small, 45% medium, 15% large
CANDLE_SIZE_BUCKETS: Tuple[Tuple[float, float, float], ...] = (
    (0.25, 0.55, 0.40),
    (0.55, 1.15, 0.45),
    (1.15, 2.20, 0.15),
)
CANDLE_NOISE_PARAMS: Dict[str, float] = {
    "factor": 0.25,
    "min": 0.4,
    "max": 1.6,
}

# Standardized squared returns above this are capped before entering the
# GARCH recursion; keeps variance <= (omega + alpha * cap) / (1 - beta)
MAX_STANDARDIZED_SQ_RETURN = 25.0

# Extra pull toward the reference once outside this fraction of the band
SOFT_REVERSION_ZONE = 0.5
SOFT_REVERSION_PULL = 0.02

# Admin bias: P(follow bias) = 0.5 + |bias|/100 * strength * weight
ADMIN_BIAS_WEIGHT = 0.35

# Volume model
VOLUME_BASE = 50.0
VOLUME_PER_PIP = 10.0
VOLUME_UNKNOWN_SYMBOL = 10


# =============================================================================
# Pip grid helpers
# =============================================================================

def _pip_decimal(pip_size: float) -> Decimal:
    try:
        pip = Decimal(repr(pip_size))
    except InvalidOperation as exc:
        raise QuantizeError(f"invalid pip size {pip_size!r}") from exc
    if not pip.is_finite() or pip <= 0:
        raise QuantizeError(f"pip size must be > 0, got {pip_size!r}")
    return pip


def quantize_price(price: float, pip_size: float) -> float:
    """Round a price to the nearest multiple of pip_size."""
    pip = _pip_decimal(pip_size)
    steps = (Decimal(repr(price)) / pip).to_integral_value(rounding=ROUND_HALF_EVEN)
    return float(steps * pip)


def quantize_within_band(
    price: float,
    pip_size: float,
    lower: float,
    upper: float,
    anchor: float,
) -> float:
    """
    Round to the pip grid without leaving [lower, upper].

    When no grid point lies inside the band, the grid point nearest to the
    anchor is returned.
    """
    pip = _pip_decimal(pip_size)
    # Decimal(float) is exact, so grid points computed from it never overshoot
    lo_steps = (Decimal(lower) / pip).to_integral_value(rounding=ROUND_CEILING)
    hi_steps = (Decimal(upper) / pip).to_integral_value(rounding=ROUND_FLOOR)
    if lo_steps > hi_steps:
        return quantize_price(anchor, pip_size)
    steps = (Decimal(repr(price)) / pip).to_integral_value(rounding=ROUND_HALF_EVEN)
    steps = min(max(steps, lo_steps), hi_steps)
    return float(steps * pip)


def market_params(market_type: MarketType) -> Dict[str, float]:
    """Overlay parameters for a market; unknown markets use FOREX values."""
    return MARKET_PARAMS.get(MarketType.parse(market_type), MARKET_PARAMS[MarketType.FOREX])


def _now_ms() -> int:
    return int(time.time() * 1000)


# =============================================================================
# Generator
# =============================================================================

class OTCPriceGenerator:
    """
    Tick generator for synthetic OTC symbols.

    One instance is created at service startup and shared by every consumer
    (feed pushes, tick schedulers, admin tooling). Tests create isolated
    instances with seeded random sources.

    Args:
        random_source: Source of all randomness (seed it for reproducibility)
        store: Symbol state store (a private one is created if omitted)
        manual_controls: Optional admin controls consulted on every tick
        clock_ms: Time source in epoch milliseconds
        enforce_tick_interval: Return None from generate_next_price until the
            symbol's jittered next-tick delay (500 +/- 120 ms) has elapsed
    """

    def __init__(
        self,
        random_source: Optional[RandomSource] = None,
        store: Optional[SymbolStateStore] = None,
        manual_controls: Optional[ManualControlService] = None,
        clock_ms: Optional[Callable[[], int]] = None,
        enforce_tick_interval: bool = False,
    ) -> None:
        self._rng = random_source or create_random_source()
        self._clock_ms = clock_ms or _now_ms
        self._store = store or SymbolStateStore(clock_ms=self._clock_ms)
        self._controls = manual_controls
        self.enforce_tick_interval = enforce_tick_interval

    @property
    def store(self) -> SymbolStateStore:
        return self._store

    @property
    def manual_controls(self) -> Optional[ManualControlService]:
        return self._controls

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def initialize_symbol(
        self,
        config: SymbolConfig,
        start_price: float,
        *,
        replace: bool = False,
    ) -> SymbolSnapshot:
        """
        Register a symbol for price generation.

        Raises:
            InvalidConfigError: Invalid config or start price
            AlreadyInitializedError: Symbol exists and replace is False
        """
        # Initial waves are random; draw them from our source
        return self._store.initialize_symbol(
            config, start_price, replace=replace, wave_factory=self._initial_wave,
        )

    def update_real_price(self, symbol: str, price: float) -> bool:
        """
        Update the reference price used for reversion and bounds.

        Unknown symbols and invalid prices are ignored.

        Returns:
            True if the reference price was updated
        """
        try:
            self._store.update_reference_price(symbol, price)
        except UnknownSymbolError:
            logger.debug("Ignoring real price for unknown symbol %s", symbol)
            return False
        except InvalidPriceError:
            logger.warning("Ignoring invalid real price %r for %s", price, symbol)
            return False
        return True

    def generate_next_price(self, symbol: str) -> Optional[PriceTick]:
        """
        Advance a symbol by one tick.

        Returns:
            The new tick, or None when tick pacing is enforced and the
            symbol is not due yet

        Raises:
            UnknownSymbolError: If the symbol was never initialized
        """
        with self._store.locked(symbol) as (config, state):
            now = self._clock_ms()
            if self.enforce_tick_interval and now - state.last_update_timestamp < state.next_tick_delay_ms:
                return None

            if self._controls is not None:
                override = self._controls.get_price_override(symbol)
                if override is not None:
                    return self._apply_manual_override(config, state, override, now)

            return self._generate_organic_price(config, state, now)

    def generate_all(self) -> List[PriceTick]:
        """One tick for every active symbol; symbols not due are skipped."""
        ticks: List[PriceTick] = []
        for symbol in self._store.active_symbols():
            try:
                tick = self.generate_next_price(symbol)
            except UnknownSymbolError:
                # removed concurrently
                continue
            if tick is not None:
                ticks.append(tick)
        return ticks

    def get_state(self, symbol: str) -> SymbolSnapshot:
        """
        Raises:
            UnknownSymbolError: If the symbol is not registered
        """
        return self._store.get_state(symbol)

    def get_extended_state(self, symbol: str) -> Optional[SymbolSnapshot]:
        """Diagnostic snapshot, or None for unknown symbols."""
        try:
            return self._store.get_state(symbol)
        except UnknownSymbolError:
            return None

    def get_current_price(self, symbol: str) -> Optional[float]:
        snapshot = self.get_extended_state(symbol)
        return snapshot.current_price if snapshot is not None else None

    def get_real_based_price(self, symbol: str, real_price: float) -> PriceTick:
        """
        REAL mode tick: the real price plus up to one pip of noise.

        Also moves the reference price to real_price. Only the current price
        and the running candle follow the tick; tick count, price history and
        pacing stay with the OTC stream.

        Raises:
            UnknownSymbolError: If the symbol is not registered
            InvalidPriceError: If real_price is not finite or not positive
        """
        if not math.isfinite(real_price) or real_price <= 0:
            raise InvalidPriceError(f"{symbol}: invalid real price {real_price!r}")
        with self._store.locked(symbol) as (config, state):
            now = self._clock_ms()
            noise = (self._rng.random() - 0.5) * 2.0 * config.pip_size
            price = quantize_price(real_price + noise, config.pip_size)

            state.reference_price = float(real_price)
            state.current_price = price
            state.last_update_timestamp = now
            state.candle.update(price)
            return self._create_tick(config, state, price, PriceMode.REAL, now)

    def get_candle_ohlc(self, symbol: str) -> Optional[CandleOHLC]:
        snapshot = self.get_extended_state(symbol)
        if snapshot is None:
            return None
        candle = snapshot.candle
        return CandleOHLC(
            open=candle.open,
            high=candle.high,
            low=candle.low,
            close=snapshot.current_price,
            tick_count=candle.tick_count,
        )

    def reset_candle(self, symbol: str) -> None:
        """Start a new candle at the current price (no-op if unknown)."""
        try:
            with self._store.locked(symbol) as (_config, state):
                state.candle.reset(state.current_price)
        except UnknownSymbolError:
            return

    def generate_volume(self, symbol: str) -> int:
        """Synthetic volume proportional to the current candle's range."""
        try:
            with self._store.locked(symbol) as (config, state):
                range_pips = (state.candle.high - state.candle.low) / config.pip_size
                base_volume = VOLUME_BASE + range_pips * VOLUME_PER_PIP
                return int(round(base_volume * self._rng.uniform(0.7, 1.3)))
        except UnknownSymbolError:
            return VOLUME_UNKNOWN_SYMBOL

    def active_symbols(self) -> List[str]:
        return self._store.active_symbols()

    def has_symbol(self, symbol: str) -> bool:
        return self._store.has_symbol(symbol)

    def remove_symbol(self, symbol: str) -> bool:
        return self._store.remove_symbol(symbol)

    def update_config(self, symbol: str, **updates) -> SymbolConfig:
        """
        Raises:
            UnknownSymbolError: If the symbol is not registered
            InvalidConfigError: If the updated config is invalid
        """
        return self._store.update_config(symbol, **updates)

    # ------------------------------------------------------------------
    # Admin wave controls
    # ------------------------------------------------------------------

    def force_impulse(self, symbol: str, direction: str, duration: int = 20) -> None:
        """
        Start a new trend in the given direction ("up" or "down").

        Raises:
            UnknownSymbolError: If the symbol is not registered
            ValueError: On an unknown direction or non-positive duration
        """
        normalized = direction.strip().lower()
        if normalized not in ("up", "down"):
            raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")
        if duration <= 0:
            raise ValueError(f"duration must be > 0, got {duration}")
        forced = Direction.UP if normalized == "up" else Direction.DOWN
        with self._store.locked(symbol) as (_config, state):
            state.wave = self._new_trend(state, forced)
            state.wave.phase_length = duration
        logger.info("Impulse forced on %s: %s for %d ticks", symbol, normalized, duration)

    def force_consolidation(self, symbol: str, duration: int = 15) -> None:
        """
        Shrink the current trend so the price ranges for a while.

        Raises:
            UnknownSymbolError: If the symbol is not registered
        """
        if duration <= 0:
            raise ValueError(f"duration must be > 0, got {duration}")
        with self._store.locked(symbol) as (_config, state):
            wave = state.wave
            wave.is_pullback = False
            wave.in_fake_out = False
            wave.target_units = 3.0
            wave.progress_units = 0.0
            wave.ticks_in_phase = 0
            wave.phase_length = duration
        logger.info("Consolidation forced on %s for %d ticks", symbol, duration)

    # ------------------------------------------------------------------
    # Core algorithm
    # ------------------------------------------------------------------

    def _generate_organic_price(
        self,
        config: SymbolConfig,
        state: SymbolState,
        now: int,
    ) -> PriceTick:
        params = market_params(config.market_type)
        variance = self._update_variance(config, state)

        self._process_fake_out(state.wave)

        direction = self._wave_direction(state.wave, params["wave_bias"])
        direction = self._apply_micro_reversal(direction)
        direction = self._apply_anti_pattern(state, direction)
        direction = self._apply_admin_bias(config.symbol, direction)

        admin_vol = self._controls.get_volatility_multiplier(config.symbol) if self._controls else 1.0
        unit = config.base_volatility * config.volatility_multiplier * state.current_price * admin_vol

        shock = self._rng.normal() * math.sqrt(variance) * unit

        move_units = self._sample_move_size()
        if state.wave.is_pullback:
            move_units *= PULLBACK_PARAMS["strength"]
        step = move_units * params["move_multiplier"] * config.pip_size * admin_vol
        momentum = config.momentum_factor * int(direction) * step

        reversion = self._mean_reversion(config, state)

        raw_price = state.current_price + shock + momentum + reversion
        new_price = self._bound_price(config, state.reference_price, raw_price)

        self._update_state(config, state, new_price, direction, move_units, variance, now)
        return self._create_tick(config, state, new_price, PriceMode.OTC, now)

    def _update_variance(self, config: SymbolConfig, state: SymbolState) -> float:
        """GARCH(1,1): omega + alpha * r^2 + beta * sigma^2, kept finite and >= 0."""
        variance = (
            config.garch_omega
            + config.garch_alpha * state.last_squared_return
            + config.garch_beta * state.conditional_variance
        )
        if not math.isfinite(variance):
            variance = config.unconditional_variance
        return max(0.0, variance)

    def _mean_reversion(self, config: SymbolConfig, state: SymbolState) -> float:
        target = state.reference_price + config.price_offset_pips * config.pip_size
        pull = config.mean_reversion_strength * (target - state.current_price)

        deviation = state.reference_price - state.current_price
        max_deviation = state.reference_price * config.max_deviation_percent / 100.0
        if abs(deviation) > max_deviation * SOFT_REVERSION_ZONE:
            pull += deviation * SOFT_REVERSION_PULL
        return pull

    def _bound_price(self, config: SymbolConfig, reference: float, raw_price: float) -> float:
        band = reference * config.max_deviation_percent / 100.0
        lower = reference - band
        upper = reference + band
        if not math.isfinite(raw_price):
            raw_price = reference
        clamped = min(max(raw_price, lower), upper)
        return quantize_within_band(clamped, config.pip_size, lower, upper, reference)

    # --- direction ---

    def _process_fake_out(self, wave: WaveState) -> None:
        """Fake-outs reverse a trend for a few ticks, trapping trend followers."""
        if wave.in_fake_out:
            wave.fake_out_remaining -= 1
            if wave.fake_out_remaining <= 0:
                wave.in_fake_out = False
                wave.direction = wave.fake_out_original_direction.reversed()
            return

        if wave.is_pullback:
            return

        if self._rng.random() < UNPREDICTABILITY_PARAMS["fake_out_prob"]:
            wave.in_fake_out = True
            wave.fake_out_remaining = self._rng.integers(
                int(UNPREDICTABILITY_PARAMS["fake_out_length_min"]),
                int(UNPREDICTABILITY_PARAMS["fake_out_length_max"]),
            )
            wave.fake_out_original_direction = wave.direction
            wave.direction = wave.direction.reversed()

    def _wave_direction(self, wave: WaveState, wave_bias: float) -> Direction:
        """Fake-outs and pullbacks push their own way; plain trend ticks follow with P(wave_bias)."""
        if wave.in_fake_out or wave.is_pullback:
            return wave.effective_direction
        if self._rng.random() < wave_bias:
            return wave.direction
        return wave.direction.reversed()

    def _apply_micro_reversal(self, direction: Direction) -> Direction:
        if self._rng.random() < UNPREDICTABILITY_PARAMS["micro_reversal_prob"]:
            return direction.reversed()
        return direction

    def _apply_anti_pattern(self, state: SymbolState, direction: Direction) -> Direction:
        """Reversal probability grows with the same-direction streak length."""
        ap = state.anti_pattern
        if ap.last_direction == direction:
            ap.same_direction_count += 1
            streak = max(0, ap.same_direction_count - int(UNPREDICTABILITY_PARAMS["anti_pattern_threshold"]))
            reversal_prob = min(
                UNPREDICTABILITY_PARAMS["anti_pattern_max_prob"],
                streak * UNPREDICTABILITY_PARAMS["anti_pattern_step"],
            )
            if self._rng.random() < reversal_prob:
                ap.same_direction_count = 0
                return direction.reversed()
        else:
            ap.same_direction_count = 1
        return direction

    def _apply_admin_bias(self, symbol: str, direction: Direction) -> Direction:
        if self._controls is None:
            return direction
        bias, strength = self._controls.get_direction_bias(symbol)
        if bias == 0 or strength <= 0:
            return direction
        influence = 0.5 + (abs(bias) / 100.0) * strength * ADMIN_BIAS_WEIGHT
        if self._rng.random() < influence:
            return Direction.UP if bias > 0 else Direction.DOWN
        return direction

    def _sample_move_size(self) -> float:
        """Move size in move units: bucketed size times clamped noise."""
        rand = self._rng.random()
        cumulative = 0.0
        low, high = CANDLE_SIZE_BUCKETS[-1][:2]
        for bucket_low, bucket_high, probability in CANDLE_SIZE_BUCKETS:
            cumulative += probability
            if rand < cumulative:
                low, high = bucket_low, bucket_high
                break
        base = self._rng.uniform(low, high)

        noise = 1.0 + self._rng.normal() * CANDLE_NOISE_PARAMS["factor"]
        noise = min(max(noise, CANDLE_NOISE_PARAMS["min"]), CANDLE_NOISE_PARAMS["max"])
        return base * noise

    # --- wave ---

    def _initial_wave(self, config: SymbolConfig, start_price: float) -> WaveState:
        direction = Direction.UP if self._rng.random() > 0.5 else Direction.DOWN
        return WaveState(
            direction=direction,
            phase_length=self._rng.integers(int(WAVE_PARAMS["length_min"]), int(WAVE_PARAMS["length_max"])),
            target_units=self._rng.uniform(WAVE_PARAMS["target_min"], WAVE_PARAMS["target_max"]),
            start_price=start_price,
            fake_out_original_direction=direction,
        )

    def _new_trend(self, state: SymbolState, forced: Optional[Direction] = None) -> WaveState:
        if forced is not None:
            direction = forced
        elif self._rng.random() < WAVE_PARAMS["continuation_prob"]:
            direction = state.wave.direction
        else:
            direction = Direction.UP if self._rng.random() > 0.5 else Direction.DOWN
        return WaveState(
            direction=direction,
            phase_length=self._rng.integers(int(WAVE_PARAMS["length_min"]), int(WAVE_PARAMS["length_max"])),
            target_units=self._rng.uniform(WAVE_PARAMS["target_min"], WAVE_PARAMS["target_max"]),
            start_price=state.current_price,
            fake_out_original_direction=direction,
        )

    def _advance_wave(self, state: SymbolState, direction: Direction, move_units: float) -> None:
        """Count the tick against the current phase and switch phase when it is done."""
        wave = state.wave
        wave.ticks_in_phase += 1

        if wave.is_pullback:
            if wave.ticks_in_phase >= wave.phase_length:
                state.wave = self._new_trend(state)
            return

        signed = move_units if direction == wave.direction else -move_units
        wave.progress_units += signed
        trend_done = (
            wave.ticks_in_phase >= wave.phase_length
            or abs(wave.progress_units) >= wave.target_units
        )
        if trend_done:
            if wave.in_fake_out:
                wave.in_fake_out = False
                wave.fake_out_remaining = 0
                wave.direction = wave.fake_out_original_direction.reversed()
            wave.is_pullback = True
            wave.ticks_in_phase = 0
            wave.phase_length = self._rng.integers(
                int(PULLBACK_PARAMS["length_min"]), int(PULLBACK_PARAMS["length_max"])
            )

    # --- bookkeeping ---

    def _update_state(
        self,
        config: SymbolConfig,
        state: SymbolState,
        new_price: float,
        direction: Direction,
        move_units: float,
        variance: float,
        now: int,
    ) -> None:
        prev_price = state.current_price
        state.last_return = (new_price - prev_price) / prev_price if prev_price > 0 else 0.0

        scale = config.base_volatility * config.volatility_multiplier
        if scale > 0:
            sq_return = (state.last_return / scale) ** 2
        else:
            sq_return = 0.0
        if not math.isfinite(sq_return):
            sq_return = 0.0
        state.last_squared_return = min(sq_return, MAX_STANDARDIZED_SQ_RETURN)
        state.conditional_variance = variance

        state.anti_pattern.last_direction = direction
        self._advance_wave(state, direction, move_units)
        self._record_price(state, new_price, now)

    def _record_price(self, state: SymbolState, price: float, now: int) -> None:
        state.current_price = price
        state.last_update_timestamp = now
        state.tick_count += 1
        state.candle.update(price)
        state.record_price(price)
        state.next_tick_delay_ms = BASE_TICK_INTERVAL_MS + self._rng.integers(
            -TICK_INTERVAL_VARIANCE_MS, TICK_INTERVAL_VARIANCE_MS
        )

    def _apply_manual_override(
        self,
        config: SymbolConfig,
        state: SymbolState,
        override: float,
        now: int,
    ) -> PriceTick:
        # Admin may pin the price anywhere inside the deviation band, not beyond
        price = self._bound_price(config, state.reference_price, override)
        prev_price = state.current_price
        state.last_return = (price - prev_price) / prev_price if prev_price > 0 else 0.0
        self._record_price(state, price, now)
        return self._create_tick(config, state, price, PriceMode.OTC, now)

    def _create_tick(
        self,
        config: SymbolConfig,
        state: SymbolState,
        price: float,
        mode: PriceMode,
        now: int,
    ) -> PriceTick:
        decimals = config.price_decimals
        half_spread = DEFAULT_SPREAD_PIPS * config.pip_size / 2.0
        first_price = state.price_history[0] if state.price_history else price
        change = price - first_price
        change_percent = (change / first_price) * 100.0 if first_price > 0 else 0.0
        return PriceTick(
            symbol=config.symbol,
            price=price,
            bid=round(price - half_spread, decimals),
            ask=round(price + half_spread, decimals),
            timestamp=now,
            price_mode=mode,
            volatility_state=state.conditional_variance,
            change=round(change, decimals),
            change_percent=round(change_percent, 2),
        )


# =============================================================================
# Factory Functions
# =============================================================================

def create_price_generator(
    seed: Optional[int] = None,
    manual_controls: Optional[ManualControlService] = None,
    enforce_tick_interval: bool = False,
    clock_ms: Optional[Callable[[], int]] = None,
) -> OTCPriceGenerator:
    """
    Create a generator with a numpy-backed random source.

    Args:
        seed: Random seed (None = non-deterministic)
        manual_controls: Optional admin controls
        enforce_tick_interval: Enable tick pacing
        clock_ms: Time source in epoch milliseconds

    Returns:
        Configured OTCPriceGenerator
    """
    return OTCPriceGenerator(
        random_source=create_random_source(seed),
        manual_controls=manual_controls,
        clock_ms=clock_ms,
        enforce_tick_interval=enforce_tick_interval,
    )


__all__ = [
    "OTCPriceGenerator",
    "create_price_generator",
    "quantize_price",
    "quantize_within_band",
    "WAVE_PARAMS",
    "PULLBACK_PARAMS",
    "MARKET_PARAMS",
    "market_params",
    "UNPREDICTABILITY_PARAMS",
    "CANDLE_SIZE_BUCKETS",
    "MAX_STANDARDIZED_SQ_RETURN",
]
