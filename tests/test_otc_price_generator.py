# -*- coding: utf-8 -*-
"""
tests/test_otc_price_generator.py
Tests for the OTC price path generator

Tests cover:
1. Pip grid quantization helpers
2. Tick generation (fields, spread, change tracking)
3. Deviation band, pip grid and variance guarantees over long runs
4. Determinism with seeded random sources
5. Wave state machine (trend / pullback alternation, admin wave controls)
6. Reference price updates and REAL mode
7. Candles, volume, pacing, manual controls
8. Concurrent generation
"""

import math
import threading
from typing import List

import pytest

from core_errors import (
    AlreadyInitializedError,
    InvalidConfigError,
    InvalidPriceError,
    QuantizeError,
    UnknownSymbolError,
)
from otc.manual_control import ManualControlService
from otc.models import Direction, MarketType, PriceMode, PriceTick, SymbolConfig, WavePhase
from otc.price_generator import (
    MARKET_PARAMS,
    MAX_STANDARDIZED_SQ_RETURN,
    PULLBACK_PARAMS,
    WAVE_PARAMS,
    OTCPriceGenerator,
    create_price_generator,
    market_params,
    quantize_price,
    quantize_within_band,
)
from otc.random_source import NumpyRandomSource
from otc.state_store import SymbolStateStore

EURUSD = "EUR/USD-OTC"
EURUSD_START = 1.19080


# =============================================================================
# Helpers / Fixtures
# =============================================================================

def _within_band(price: float, reference: float, max_deviation_percent: float) -> bool:
    return abs(price - reference) <= reference * max_deviation_percent / 100.0 + 1e-9


def _on_grid(price: float, pip_size: float) -> bool:
    steps = price / pip_size
    return abs(steps - round(steps)) < 1e-6


def _run(generator: OTCPriceGenerator, symbol: str, n: int) -> List[PriceTick]:
    return [generator.generate_next_price(symbol) for _ in range(n)]


class _ConstantSource:
    """Random source with fixed draws: random() is constant, ranges yield their low end."""

    def __init__(self, value: float) -> None:
        self.value = value

    def random(self) -> float:
        return self.value

    def uniform(self, low: float, high: float) -> float:
        return low

    def integers(self, low: int, high: int) -> int:
        return low

    def normal(self) -> float:
        return 0.0


@pytest.fixture
def generator(clock) -> OTCPriceGenerator:
    return OTCPriceGenerator(random_source=NumpyRandomSource(seed=42), clock_ms=clock)


@pytest.fixture
def eurusd_generator(generator: OTCPriceGenerator, eurusd_config: SymbolConfig) -> OTCPriceGenerator:
    generator.initialize_symbol(eurusd_config, EURUSD_START)
    generator.update_real_price(EURUSD, EURUSD_START)
    return generator


# =============================================================================
# Quantization Tests
# =============================================================================

class TestQuantization:
    """Tests for pip grid helpers."""

    def test_quantize_price(self) -> None:
        assert quantize_price(1.234567, 0.0001) == pytest.approx(1.2346)
        assert quantize_price(94500.126, 0.01) == pytest.approx(94500.13)
        assert quantize_price(150.5, 1.0) == 150.0  # half to even
        assert quantize_price(151.5, 1.0) == 152.0

    @pytest.mark.parametrize("pip_size", [0.0, -0.01, float("nan"), float("inf")])
    def test_invalid_pip_size(self, pip_size: float) -> None:
        with pytest.raises(QuantizeError):
            quantize_price(1.0, pip_size)

    def test_within_band_clamps_to_inner_grid_point(self) -> None:
        price = quantize_within_band(1.2, 0.01, lower=1.0, upper=1.105, anchor=1.05)
        assert price == pytest.approx(1.10)
        assert price <= 1.105

        price = quantize_within_band(0.9, 0.01, lower=0.995, upper=1.105, anchor=1.05)
        assert price == pytest.approx(1.00)
        assert price >= 0.995

    def test_within_band_rounds_inside(self) -> None:
        assert quantize_within_band(1.0312, 0.01, 1.0, 1.1, 1.05) == pytest.approx(1.03)

    def test_band_narrower_than_pip_uses_anchor(self) -> None:
        price = quantize_within_band(1.00004, 0.001, lower=1.00001, upper=1.00009, anchor=1.00005)
        assert price == pytest.approx(1.000)


# =============================================================================
# Initialization / Lookup Tests
# =============================================================================

class TestLifecycle:
    """Tests for symbol lifecycle through the generator."""

    def test_initialize_returns_snapshot(self, generator: OTCPriceGenerator, eurusd_config) -> None:
        snapshot = generator.initialize_symbol(eurusd_config, EURUSD_START)
        assert snapshot.current_price == EURUSD_START
        assert snapshot.phase == WavePhase.TREND
        assert WAVE_PARAMS["length_min"] <= snapshot.wave.phase_length <= WAVE_PARAMS["length_max"]
        assert WAVE_PARAMS["target_min"] <= snapshot.wave.target_units <= WAVE_PARAMS["target_max"]

    def test_initialize_invalid_config(self, generator: OTCPriceGenerator) -> None:
        with pytest.raises(InvalidConfigError):
            generator.initialize_symbol(SymbolConfig(symbol="X-OTC", garch_alpha=0.5, garch_beta=0.5), 1.0)

    def test_initialize_twice(self, eurusd_generator: OTCPriceGenerator, eurusd_config) -> None:
        with pytest.raises(AlreadyInitializedError):
            eurusd_generator.initialize_symbol(eurusd_config, 1.2)
        eurusd_generator.initialize_symbol(eurusd_config, 1.2, replace=True)
        assert eurusd_generator.get_current_price(EURUSD) == 1.2

    def test_unknown_symbol(self, generator: OTCPriceGenerator) -> None:
        with pytest.raises(UnknownSymbolError) as excinfo:
            generator.generate_next_price("GHOST-OTC")
        assert excinfo.value.symbol == "GHOST-OTC"
        assert generator.get_extended_state("GHOST-OTC") is None
        assert generator.get_current_price("GHOST-OTC") is None
        assert generator.get_candle_ohlc("GHOST-OTC") is None
        assert generator.has_symbol("GHOST-OTC") is False

    def test_unknown_symbol_recoverable(self, generator: OTCPriceGenerator, eurusd_config) -> None:
        try:
            generator.generate_next_price(EURUSD)
        except UnknownSymbolError:
            generator.initialize_symbol(eurusd_config, EURUSD_START)
        assert generator.generate_next_price(EURUSD) is not None

    def test_symbol_management(self, eurusd_generator: OTCPriceGenerator, btcusd_config) -> None:
        eurusd_generator.initialize_symbol(btcusd_config, 94500.0)
        assert sorted(eurusd_generator.active_symbols()) == ["BTC/USD-OTC", EURUSD]
        assert eurusd_generator.remove_symbol("BTC/USD-OTC") is True
        assert eurusd_generator.active_symbols() == [EURUSD]
        with pytest.raises(UnknownSymbolError):
            eurusd_generator.generate_next_price("BTC/USD-OTC")

    def test_update_config(self, eurusd_generator: OTCPriceGenerator) -> None:
        updated = eurusd_generator.update_config(EURUSD, volatility_multiplier=2.0)
        assert updated.volatility_multiplier == 2.0
        assert eurusd_generator.store.get_config(EURUSD).volatility_multiplier == 2.0
        with pytest.raises(InvalidConfigError):
            eurusd_generator.update_config(EURUSD, momentum_factor=3.0)

    def test_rejected_initialize_keeps_sequence(self, clock, eurusd_config) -> None:
        plain = OTCPriceGenerator(random_source=NumpyRandomSource(7), clock_ms=clock)
        retried = OTCPriceGenerator(random_source=NumpyRandomSource(7), clock_ms=clock)
        plain.initialize_symbol(eurusd_config, EURUSD_START)
        retried.initialize_symbol(eurusd_config, EURUSD_START)
        with pytest.raises(AlreadyInitializedError):
            retried.initialize_symbol(eurusd_config, EURUSD_START)

        assert [t.price for t in _run(plain, EURUSD, 50)] == [t.price for t in _run(retried, EURUSD, 50)]

    def test_shared_store_keeps_its_wave_factory(self, clock, eurusd_config, btcusd_config) -> None:
        store = SymbolStateStore(clock_ms=clock)
        own_factory = store.wave_factory
        first = OTCPriceGenerator(random_source=NumpyRandomSource(1), store=store, clock_ms=clock)
        second = OTCPriceGenerator(random_source=NumpyRandomSource(2), store=store, clock_ms=clock)
        assert store.wave_factory is own_factory

        first.initialize_symbol(eurusd_config, EURUSD_START)
        second.initialize_symbol(btcusd_config, 94500.0)
        assert sorted(store.active_symbols()) == ["BTC/USD-OTC", EURUSD]
        assert first.generate_next_price("BTC/USD-OTC") is not None

    def test_factory(self, eurusd_config) -> None:
        generator = create_price_generator(seed=1)
        generator.initialize_symbol(eurusd_config, EURUSD_START)
        assert isinstance(generator.generate_next_price(EURUSD), PriceTick)


# =============================================================================
# Tick Tests
# =============================================================================

class TestTick:
    """Tests for generated tick contents."""

    def test_tick_fields(self, eurusd_generator: OTCPriceGenerator, clock) -> None:
        tick = eurusd_generator.generate_next_price(EURUSD)
        assert tick.symbol == EURUSD
        assert tick.price_mode == PriceMode.OTC
        assert tick.timestamp == clock()
        assert tick.bid < tick.price < tick.ask
        assert tick.spread == pytest.approx(2 * 0.00001, abs=1e-12)
        assert tick.volatility_state >= 0.0

    def test_change_against_oldest_price(self, eurusd_generator: OTCPriceGenerator) -> None:
        ticks = _run(eurusd_generator, EURUSD, 10)
        last = ticks[-1]
        assert last.change == pytest.approx(last.price - EURUSD_START, abs=1e-9)
        assert last.change_percent == pytest.approx(
            (last.price - EURUSD_START) / EURUSD_START * 100.0, abs=0.01
        )

    def test_state_bookkeeping(self, eurusd_generator: OTCPriceGenerator) -> None:
        ticks = _run(eurusd_generator, EURUSD, 25)
        snapshot = eurusd_generator.get_extended_state(EURUSD)
        assert snapshot.tick_count == 25
        assert snapshot.current_price == ticks[-1].price
        assert snapshot.price_history[-1] == ticks[-1].price
        assert len(snapshot.price_history) == 26
        assert snapshot.conditional_variance == ticks[-1].volatility_state
        assert 0.0 <= snapshot.last_squared_return <= MAX_STANDARDIZED_SQ_RETURN
        expected_return = (ticks[-1].price - ticks[-2].price) / ticks[-2].price
        assert snapshot.last_return == pytest.approx(expected_return)

    def test_generate_all(self, eurusd_generator: OTCPriceGenerator, btcusd_config) -> None:
        eurusd_generator.initialize_symbol(btcusd_config, 94500.0)
        ticks = eurusd_generator.generate_all()
        assert sorted(t.symbol for t in ticks) == ["BTC/USD-OTC", EURUSD]


# =============================================================================
# Invariant Tests
# =============================================================================

class TestInvariants:
    """Band, grid and variance guarantees over long runs."""

    def test_eurusd_scenario_20_ticks(self, eurusd_generator: OTCPriceGenerator) -> None:
        ticks = _run(eurusd_generator, EURUSD, 20)
        assert len(ticks) == 20
        for tick in ticks:
            assert _within_band(tick.price, EURUSD_START, 0.5)
            assert _on_grid(tick.price, 0.00001)

    @pytest.mark.parametrize("seed", [1, 7, 2024])
    def test_bounded_deviation_and_grid_long_run(self, clock, eurusd_config, btcusd_config, seed) -> None:
        generator = OTCPriceGenerator(random_source=NumpyRandomSource(seed), clock_ms=clock)
        generator.initialize_symbol(eurusd_config, EURUSD_START)
        generator.initialize_symbol(btcusd_config, 94500.0)
        for config in (eurusd_config, btcusd_config):
            for tick in _run(generator, config.symbol, 3000):
                snapshot = generator.get_extended_state(config.symbol)
                assert _within_band(tick.price, snapshot.reference_price, config.max_deviation_percent)
                assert _on_grid(tick.price, config.pip_size)

    def test_bounded_deviation_under_stress(self, clock) -> None:
        config = SymbolConfig(
            symbol="WILD-OTC",
            pip_size=0.0001,
            base_volatility=0.02,
            volatility_multiplier=3.0,
            mean_reversion_strength=0.0,
            max_deviation_percent=0.3,
            momentum_factor=1.0,
            garch_alpha=0.3,
            garch_beta=0.69,
            garch_omega=0.5,
        )
        generator = OTCPriceGenerator(random_source=NumpyRandomSource(3), clock_ms=clock)
        generator.initialize_symbol(config, 2.5)
        for tick in _run(generator, "WILD-OTC", 2000):
            assert _within_band(tick.price, 2.5, 0.3)
            assert _on_grid(tick.price, 0.0001)
            assert math.isfinite(tick.volatility_state)

    def test_reference_updates_bound_each_tick(self, eurusd_generator: OTCPriceGenerator) -> None:
        references = [1.19080, 1.20500, 1.17000, 1.19000]
        for reference in references:
            assert eurusd_generator.update_real_price(EURUSD, reference) is True
            for tick in _run(eurusd_generator, EURUSD, 50):
                assert _within_band(tick.price, reference, 0.5)

    def test_variance_non_negative_and_bounded(self, eurusd_generator: OTCPriceGenerator, eurusd_config) -> None:
        bound = (
            eurusd_config.garch_omega + eurusd_config.garch_alpha * MAX_STANDARDIZED_SQ_RETURN
        ) / (1.0 - eurusd_config.garch_beta)
        for tick in _run(eurusd_generator, EURUSD, 5000):
            assert 0.0 <= tick.volatility_state <= bound + 1e-9

    def test_zero_prior_variance(self, eurusd_generator: OTCPriceGenerator) -> None:
        with eurusd_generator.store.locked(EURUSD) as (_config, state):
            state.conditional_variance = 0.0
            state.last_squared_return = 0.0
        for tick in _run(eurusd_generator, EURUSD, 500):
            assert tick.volatility_state >= 0.0
            assert math.isfinite(tick.volatility_state)

    def test_zero_omega(self, generator: OTCPriceGenerator) -> None:
        config = SymbolConfig(symbol="CALM-OTC", garch_omega=0.0)
        snapshot = generator.initialize_symbol(config, 1.1)
        assert snapshot.conditional_variance == 0.0
        for tick in _run(generator, "CALM-OTC", 1000):
            assert tick.volatility_state >= 0.0
            assert _within_band(tick.price, 1.1, config.max_deviation_percent)

    def test_corrupted_variance_is_repaired(self, eurusd_generator: OTCPriceGenerator, eurusd_config) -> None:
        with eurusd_generator.store.locked(EURUSD) as (_config, state):
            state.conditional_variance = float("nan")
        tick = eurusd_generator.generate_next_price(EURUSD)
        assert tick.volatility_state == pytest.approx(eurusd_config.unconditional_variance)

        with eurusd_generator.store.locked(EURUSD) as (_config, state):
            state.conditional_variance = -100.0
        tick = eurusd_generator.generate_next_price(EURUSD)
        assert tick.volatility_state == 0.0

    def test_monotonic_reference_pushes(self, eurusd_generator: OTCPriceGenerator) -> None:
        reference = EURUSD_START
        for i in range(1000):
            reference = EURUSD_START + (i + 1) * 0.00001
            assert eurusd_generator.update_real_price(EURUSD, reference)
            tick = eurusd_generator.generate_next_price(EURUSD)
            assert _within_band(tick.price, reference, 0.5)
        final_price = eurusd_generator.get_current_price(EURUSD)
        assert final_price >= reference * (1 - 0.005) - 1e-9
        assert final_price > EURUSD_START


# =============================================================================
# Determinism Tests
# =============================================================================

class TestDeterminism:
    """Seeded runs reproduce tick sequences."""

    @staticmethod
    def _sequence(seed: int, config: SymbolConfig, clock) -> List[dict]:
        generator = OTCPriceGenerator(random_source=NumpyRandomSource(seed), clock_ms=clock)
        generator.initialize_symbol(config, EURUSD_START)
        out = []
        for i in range(300):
            if i % 50 == 0:
                generator.update_real_price(EURUSD, EURUSD_START + i * 0.00002)
            out.append(generator.generate_next_price(EURUSD).to_dict())
        return out

    def test_same_seed_same_ticks(self, eurusd_config, clock) -> None:
        assert self._sequence(99, eurusd_config, clock) == self._sequence(99, eurusd_config, clock)

    def test_different_seed_different_ticks(self, eurusd_config, clock) -> None:
        first = [t["price"] for t in self._sequence(1, eurusd_config, clock)]
        second = [t["price"] for t in self._sequence(2, eurusd_config, clock)]
        assert first != second


# =============================================================================
# Wave Tests
# =============================================================================

class TestWaveStateMachine:
    """Trend / pullback alternation."""

    def test_phases_alternate_within_bounds(self, eurusd_generator: OTCPriceGenerator) -> None:
        phases = []
        for _ in range(4000):
            eurusd_generator.generate_next_price(EURUSD)
            snapshot = eurusd_generator.get_extended_state(EURUSD)
            wave = snapshot.wave
            assert wave.ticks_in_phase < wave.phase_length
            if wave.is_pullback:
                assert PULLBACK_PARAMS["length_min"] <= wave.phase_length <= PULLBACK_PARAMS["length_max"]
            else:
                assert WAVE_PARAMS["length_min"] <= wave.phase_length <= WAVE_PARAMS["length_max"]
                assert WAVE_PARAMS["target_min"] <= wave.target_units <= WAVE_PARAMS["target_max"]
            phases.append(snapshot.phase)

        runs = []
        current, length = phases[0], 0
        for phase in phases:
            if phase == current:
                length += 1
            else:
                runs.append((current, length))
                current, length = phase, 1

        pullback_runs = [n for phase, n in runs if phase == WavePhase.PULLBACK]
        trend_runs = [n for phase, n in runs if phase == WavePhase.TREND]
        assert len(pullback_runs) >= 5
        assert len(trend_runs) >= 5
        # every completed pullback lasted its sampled duration and handed back to TREND
        for n in pullback_runs:
            assert PULLBACK_PARAMS["length_min"] <= n <= PULLBACK_PARAMS["length_max"]
        for (phase, _), (next_phase, _) in zip(runs, runs[1:]):
            assert phase != next_phase

    def test_force_impulse(self, eurusd_generator: OTCPriceGenerator) -> None:
        eurusd_generator.force_impulse(EURUSD, "down")
        wave = eurusd_generator.get_extended_state(EURUSD).wave
        assert wave.direction == Direction.DOWN
        assert wave.phase == WavePhase.TREND
        assert wave.phase_length == 20
        assert wave.ticks_in_phase == 0

        eurusd_generator.force_impulse(EURUSD, "UP", duration=5)
        wave = eurusd_generator.get_extended_state(EURUSD).wave
        assert wave.direction == Direction.UP
        assert wave.phase_length == 5

    def test_force_impulse_invalid(self, eurusd_generator: OTCPriceGenerator) -> None:
        with pytest.raises(ValueError):
            eurusd_generator.force_impulse(EURUSD, "sideways")
        with pytest.raises(ValueError):
            eurusd_generator.force_impulse(EURUSD, "up", duration=0)
        with pytest.raises(UnknownSymbolError):
            eurusd_generator.force_impulse("GHOST-OTC", "up")

    def test_force_consolidation(self, eurusd_generator: OTCPriceGenerator) -> None:
        eurusd_generator.force_consolidation(EURUSD)
        wave = eurusd_generator.get_extended_state(EURUSD).wave
        assert wave.phase == WavePhase.TREND
        assert wave.target_units == 3.0
        assert wave.progress_units == 0.0
        assert wave.phase_length == 15

    def test_forced_trend_ends_in_pullback(self, eurusd_generator: OTCPriceGenerator) -> None:
        eurusd_generator.force_impulse(EURUSD, "up", duration=3)
        _run(eurusd_generator, EURUSD, 3)
        assert eurusd_generator.get_extended_state(EURUSD).phase == WavePhase.PULLBACK


# =============================================================================
# Market Parameter Tests
# =============================================================================

class TestMarketParams:
    """Per-market wave bias and momentum step."""

    def test_lookup(self) -> None:
        assert market_params(MarketType.CRYPTO) is MARKET_PARAMS[MarketType.CRYPTO]
        assert market_params("crypto") is MARKET_PARAMS[MarketType.CRYPTO]
        assert market_params("metals") is MARKET_PARAMS[MarketType.FOREX]

    @pytest.mark.parametrize(
        "market_type, expected",
        [(MarketType.FOREX, Direction.UP), (MarketType.CRYPTO, Direction.DOWN), ("metals", Direction.UP)],
    )
    def test_wave_bias_decides_trend_tick(self, clock, eurusd_config, market_type, expected) -> None:
        # 0.52 lies between the CRYPTO (0.51) and FOREX (0.54) wave bias
        generator = OTCPriceGenerator(random_source=_ConstantSource(0.52), clock_ms=clock)
        generator.initialize_symbol(eurusd_config.replace(market_type=market_type), EURUSD_START)
        assert generator.get_extended_state(EURUSD).wave.direction == Direction.UP

        generator.generate_next_price(EURUSD)
        assert generator.get_extended_state(EURUSD).last_direction == expected

    def test_move_multiplier_sizes_momentum(self, clock, eurusd_config) -> None:
        prices = {}
        for market_type in (MarketType.FOREX, MarketType.CRYPTO):
            generator = OTCPriceGenerator(random_source=_ConstantSource(0.52), clock_ms=clock)
            generator.initialize_symbol(eurusd_config.replace(market_type=market_type), EURUSD_START)
            prices[market_type] = generator.generate_next_price(EURUSD).price

        # no shock; momentum is 0.15 * 0.55 units * (0.85 or 15) pips
        assert prices[MarketType.FOREX] == pytest.approx(EURUSD_START)
        assert prices[MarketType.CRYPTO] == pytest.approx(EURUSD_START - 0.00001)

    def test_markets_produce_different_paths(self, clock, eurusd_config) -> None:
        paths = []
        for market_type in (MarketType.FOREX, MarketType.CRYPTO):
            generator = OTCPriceGenerator(random_source=NumpyRandomSource(5), clock_ms=clock)
            generator.initialize_symbol(eurusd_config.replace(market_type=market_type), EURUSD_START)
            paths.append([t.price for t in _run(generator, EURUSD, 200)])
        assert paths[0] != paths[1]


# =============================================================================
# Real Price Tests
# =============================================================================

class TestRealPrice:
    """Reference updates and REAL mode."""

    def test_update_real_price_unknown_symbol(self, generator: OTCPriceGenerator, caplog) -> None:
        with caplog.at_level("DEBUG", logger="otc.price_generator"):
            assert generator.update_real_price("GHOST-OTC", 1.0) is False
        assert "GHOST-OTC" in caplog.text

    @pytest.mark.parametrize("price", [0.0, -1.0, float("nan")])
    def test_update_real_price_invalid(self, eurusd_generator: OTCPriceGenerator, price) -> None:
        assert eurusd_generator.update_real_price(EURUSD, price) is False
        assert eurusd_generator.get_extended_state(EURUSD).reference_price == EURUSD_START

    def test_real_based_price(self, eurusd_generator: OTCPriceGenerator) -> None:
        tick = eurusd_generator.get_real_based_price(EURUSD, 1.19500)
        assert tick.price_mode == PriceMode.REAL
        assert abs(tick.price - 1.19500) <= 0.00001 + 1e-12
        assert _on_grid(tick.price, 0.00001)
        snapshot = eurusd_generator.get_extended_state(EURUSD)
        assert snapshot.reference_price == 1.19500
        assert snapshot.current_price == tick.price

    def test_real_based_price_only_touches_price_and_candle(self, eurusd_generator: OTCPriceGenerator) -> None:
        _run(eurusd_generator, EURUSD, 3)
        before = eurusd_generator.get_extended_state(EURUSD)
        tick = eurusd_generator.get_real_based_price(EURUSD, 1.19500)
        after = eurusd_generator.get_extended_state(EURUSD)

        assert after.tick_count == before.tick_count
        assert after.price_history == before.price_history
        assert after.next_tick_delay_ms == before.next_tick_delay_ms
        assert after.candle.tick_count == before.candle.tick_count + 1
        assert after.candle.low <= tick.price <= after.candle.high

        # the next OTC tick still measures change from the oldest OTC price
        next_tick = eurusd_generator.generate_next_price(EURUSD)
        assert next_tick.change == pytest.approx(next_tick.price - EURUSD_START, abs=1e-9)

    def test_real_based_price_errors(self, eurusd_generator: OTCPriceGenerator) -> None:
        with pytest.raises(InvalidPriceError):
            eurusd_generator.get_real_based_price(EURUSD, -1.0)
        with pytest.raises(UnknownSymbolError):
            eurusd_generator.get_real_based_price("GHOST-OTC", 1.0)


# =============================================================================
# Candle / Volume / Pacing Tests
# =============================================================================

class TestCandleAndVolume:
    """Tests for running candle and volume."""

    def test_candle_ohlc(self, eurusd_generator: OTCPriceGenerator) -> None:
        ticks = _run(eurusd_generator, EURUSD, 30)
        candle = eurusd_generator.get_candle_ohlc(EURUSD)
        prices = [t.price for t in ticks]
        assert candle.open == EURUSD_START
        assert candle.close == prices[-1]
        assert candle.high == max(prices + [EURUSD_START])
        assert candle.low == min(prices + [EURUSD_START])
        assert candle.tick_count == 30

    def test_reset_candle(self, eurusd_generator: OTCPriceGenerator) -> None:
        _run(eurusd_generator, EURUSD, 10)
        eurusd_generator.reset_candle(EURUSD)
        current = eurusd_generator.get_current_price(EURUSD)
        candle = eurusd_generator.get_candle_ohlc(EURUSD)
        assert candle.open == candle.high == candle.low == candle.close == current
        assert candle.tick_count == 0
        eurusd_generator.reset_candle("GHOST-OTC")

    def test_volume(self, eurusd_generator: OTCPriceGenerator) -> None:
        assert 35 <= eurusd_generator.generate_volume(EURUSD) <= 65
        assert eurusd_generator.generate_volume("GHOST-OTC") == 10

        _run(eurusd_generator, EURUSD, 50)
        candle = eurusd_generator.get_candle_ohlc(EURUSD)
        range_pips = (candle.high - candle.low) / 0.00001
        volume = eurusd_generator.generate_volume(EURUSD)
        base = 50 + range_pips * 10
        assert base * 0.7 - 1 <= volume <= base * 1.3 + 1


class TestPacing:
    """Tests for enforced tick intervals."""

    def test_ticks_wait_for_delay(self, clock, eurusd_config) -> None:
        generator = OTCPriceGenerator(
            random_source=NumpyRandomSource(5), clock_ms=clock, enforce_tick_interval=True,
        )
        generator.initialize_symbol(eurusd_config, EURUSD_START)
        assert generator.generate_next_price(EURUSD) is None
        assert generator.generate_all() == []

        clock.advance(1000)
        assert generator.generate_next_price(EURUSD) is not None
        assert generator.generate_next_price(EURUSD) is None

        delay = generator.get_extended_state(EURUSD).next_tick_delay_ms
        assert 380 <= delay <= 620
        clock.advance(delay)
        assert generator.generate_next_price(EURUSD) is not None


# =============================================================================
# Manual Control Tests
# =============================================================================

class TestManualControls:
    """Admin controls applied during generation."""

    @pytest.fixture
    def controls(self) -> ManualControlService:
        return ManualControlService(clock=lambda: 1_000.0)

    def _generator(self, clock, controls, seed: int = 11) -> OTCPriceGenerator:
        return OTCPriceGenerator(
            random_source=NumpyRandomSource(seed), manual_controls=controls, clock_ms=clock,
        )

    def test_price_override(self, clock, controls, eurusd_config) -> None:
        generator = self._generator(clock, controls)
        generator.initialize_symbol(eurusd_config, EURUSD_START)
        controls.set_price_override(EURUSD, 1.1912345)
        tick = generator.generate_next_price(EURUSD)
        assert tick.price == pytest.approx(1.19123)
        assert generator.get_current_price(EURUSD) == tick.price

        controls.clear_price_override(EURUSD)
        assert controls.get_price_override(EURUSD) is None
        tick = generator.generate_next_price(EURUSD)
        assert _within_band(tick.price, EURUSD_START, 0.5)
        assert generator.get_extended_state(EURUSD).tick_count == 2

    def test_price_override_outside_band_is_clamped(self, clock, controls, eurusd_config) -> None:
        generator = self._generator(clock, controls)
        generator.initialize_symbol(eurusd_config, EURUSD_START)

        controls.set_price_override(EURUSD, 1.30000)
        tick = generator.generate_next_price(EURUSD)
        assert _within_band(tick.price, EURUSD_START, 0.5)
        assert _on_grid(tick.price, 0.00001)
        # 1.19080 * 1.005 = 1.196754, last grid point inside is 1.19675
        assert tick.price == pytest.approx(1.19675)

        controls.set_price_override(EURUSD, 1.00000)
        tick = generator.generate_next_price(EURUSD)
        assert _within_band(tick.price, EURUSD_START, 0.5)
        assert tick.price == pytest.approx(1.18485)

    def test_direction_bias(self, clock, controls, eurusd_config) -> None:
        generator = self._generator(clock, controls)
        generator.initialize_symbol(eurusd_config, EURUSD_START)
        controls.set_direction_bias(EURUSD, 100, 1.0)
        ups = 0
        for _ in range(1000):
            generator.generate_next_price(EURUSD)
            if generator.get_extended_state(EURUSD).last_direction == Direction.UP:
                ups += 1
        # bias forces UP with probability 0.85
        assert ups > 800

    def test_volatility_multiplier_scales_first_move(self, clock, eurusd_config) -> None:
        config = eurusd_config.replace(pip_size=1e-8, price_offset_pips=0.0)
        neutral = ManualControlService(clock=lambda: 1_000.0)
        boosted = ManualControlService(clock=lambda: 1_000.0)
        boosted.set_volatility_multiplier(EURUSD, 2.0)

        moves = []
        for controls in (neutral, boosted):
            generator = self._generator(clock, controls, seed=21)
            generator.initialize_symbol(config, EURUSD_START)
            moves.append(generator.generate_next_price(EURUSD).price - EURUSD_START)

        assert moves[0] != 0.0
        assert moves[1] == pytest.approx(2.0 * moves[0], abs=2e-8)


# =============================================================================
# Concurrency Tests
# =============================================================================

class TestConcurrency:
    """Generation from multiple threads."""

    def test_symbols_in_parallel_with_reference_pushes(self, clock, eurusd_config, btcusd_config) -> None:
        generator = OTCPriceGenerator(random_source=NumpyRandomSource(8), clock_ms=clock)
        generator.initialize_symbol(eurusd_config, EURUSD_START)
        generator.initialize_symbol(btcusd_config, 94500.0)
        errors = []

        def ticker(symbol: str) -> None:
            try:
                for _ in range(1000):
                    tick = generator.generate_next_price(symbol)
                    assert tick is not None
            except Exception as exc:  # pragma: no cover - surfaced via errors
                errors.append(exc)

        def pusher() -> None:
            try:
                for i in range(1000):
                    generator.update_real_price(EURUSD, EURUSD_START + i * 0.00001)
            except Exception as exc:  # pragma: no cover - surfaced via errors
                errors.append(exc)

        threads = [
            threading.Thread(target=ticker, args=(EURUSD,)),
            threading.Thread(target=ticker, args=(EURUSD,)),
            threading.Thread(target=ticker, args=("BTC/USD-OTC",)),
            threading.Thread(target=pusher),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        generator.generate_next_price(EURUSD)
        eur = generator.get_extended_state(EURUSD)
        btc = generator.get_extended_state("BTC/USD-OTC")
        assert eur.tick_count == 2001
        assert btc.tick_count == 1000
        assert _within_band(eur.current_price, eur.reference_price, 0.5)
        assert _within_band(btc.current_price, btc.reference_price, 2.0)
