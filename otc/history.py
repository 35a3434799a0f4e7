# -*- coding: utf-8 -*-
"""
otc/history.py
Synthetic candle history for OTC symbols.

Backfills OHLCV candles for a symbol that has no stored history so charts
have something to show. The candles are produced by the same tick model as
the live generator, which keeps the texture of history and live ticks
consistent:

1. Run a private generator forward from the anchor price
2. Reverse the tick path so it ends exactly at the anchor
3. Aggregate ticks into candles (each candle opens at the previous close)
4. Assign timestamps backwards from the anchor timestamp

Usage:
    history = SyntheticHistoryGenerator(seed=7)
    result = history.generate(config, anchor_price=1.0850, anchor_timestamp=now_ms)
    for candle in result.candles:
        ...
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from core_errors import OTCError
from otc.models import SymbolConfig
from otc.price_generator import (
    VOLUME_BASE,
    VOLUME_PER_PIP,
    OTCPriceGenerator,
    quantize_price,
)
from otc.random_source import NumpyRandomSource, RandomSource

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_CANDLE_COUNT = 500
DEFAULT_RESOLUTION_SECONDS = 60
DEFAULT_TICKS_PER_CANDLE = 12

# Fallback anchors when no real or stored price is available
DEFAULT_PRICES: Dict[str, float] = {
    "EUR/USD": 1.0850,
    "GBP/USD": 1.2650,
    "USD/JPY": 150.50,
    "AUD/USD": 0.6550,
    "USD/CAD": 1.3550,
    "BTC/USD": 95000.0,
    "ETH/USD": 3400.0,
    "SOL/USD": 180.0,
    "XRP/USD": 2.20,
    "BNB/USD": 680.0,
}


def default_anchor_price(base_symbol: str) -> Optional[float]:
    """Fallback anchor for a real-market symbol, or None if unknown."""
    return DEFAULT_PRICES.get(base_symbol.strip().upper())


# =============================================================================
# Results
# =============================================================================

@dataclass(frozen=True)
class HistoryCandle:
    """One OHLCV candle; timestamp is the candle open time in epoch ms."""
    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: int


@dataclass
class HistoryResult:
    """Backfilled candles for one symbol, oldest first."""
    symbol: str
    anchor_price: float
    anchor_timestamp: int
    resolution_seconds: int
    candles: List[HistoryCandle] = field(default_factory=list)
    elapsed_ms: float = 0.0

    @property
    def price_range(self) -> Tuple[float, float]:
        if not self.candles:
            return self.anchor_price, self.anchor_price
        return (
            min(c.low for c in self.candles),
            max(c.high for c in self.candles),
        )

    @property
    def oldest_timestamp(self) -> Optional[int]:
        return self.candles[0].timestamp if self.candles else None

    @property
    def newest_timestamp(self) -> Optional[int]:
        return self.candles[-1].timestamp if self.candles else None


# =============================================================================
# Generator
# =============================================================================

class SyntheticHistoryGenerator:
    """
    Builds candle history from the live tick model.

    Args:
        random_source: Random source for paths and volumes
        seed: Used to create a NumpyRandomSource when random_source is None
    """

    def __init__(
        self,
        random_source: Optional[RandomSource] = None,
        seed: Optional[int] = None,
    ) -> None:
        self._rng = random_source or NumpyRandomSource(seed)

    def generate(
        self,
        config: SymbolConfig,
        anchor_price: float,
        anchor_timestamp: Optional[int] = None,
        candle_count: int = DEFAULT_CANDLE_COUNT,
        resolution_seconds: int = DEFAULT_RESOLUTION_SECONDS,
        ticks_per_candle: int = DEFAULT_TICKS_PER_CANDLE,
    ) -> HistoryResult:
        """
        Generate candles ending at the anchor.

        Args:
            config: Symbol configuration
            anchor_price: Close of the newest candle (rounded to the pip grid)
            anchor_timestamp: Epoch ms the history ends at (default: now)
            candle_count: Number of candles
            resolution_seconds: Candle duration
            ticks_per_candle: Ticks aggregated into each candle

        Returns:
            HistoryResult with candles oldest first

        Raises:
            ValueError: On non-positive counts or resolution
            InvalidConfigError: On invalid config or anchor price
        """
        if candle_count <= 0:
            raise ValueError(f"candle_count must be > 0, got {candle_count}")
        if resolution_seconds <= 0:
            raise ValueError(f"resolution_seconds must be > 0, got {resolution_seconds}")
        if ticks_per_candle <= 0:
            raise ValueError(f"ticks_per_candle must be > 0, got {ticks_per_candle}")
        if anchor_timestamp is None:
            anchor_timestamp = int(time.time() * 1000)

        started = time.perf_counter()
        path = self._simulate_path(config, anchor_price, candle_count * ticks_per_candle)
        # Newest price must be the anchor
        path.reverse()

        candles: List[HistoryCandle] = []
        resolution_ms = resolution_seconds * 1000
        start_time = anchor_timestamp - candle_count * resolution_ms
        for i in range(candle_count):
            segment = path[i * ticks_per_candle:(i + 1) * ticks_per_candle + 1]
            high = max(segment)
            low = min(segment)
            candles.append(HistoryCandle(
                timestamp=start_time + i * resolution_ms,
                open=segment[0],
                high=high,
                low=low,
                close=segment[-1],
                volume=self._volume(high - low, config.pip_size),
            ))

        result = HistoryResult(
            symbol=config.symbol,
            anchor_price=anchor_price,
            anchor_timestamp=anchor_timestamp,
            resolution_seconds=resolution_seconds,
            candles=candles,
            elapsed_ms=(time.perf_counter() - started) * 1000.0,
        )
        low, high = result.price_range
        logger.info(
            "Synthetic history for %s: %d candles, range %s - %s, %.1f ms",
            config.symbol, len(candles), low, high, result.elapsed_ms,
        )
        return result

    def generate_many(
        self,
        configs: Iterable[SymbolConfig],
        anchors: Dict[str, float],
        anchor_timestamp: Optional[int] = None,
        candle_count: int = DEFAULT_CANDLE_COUNT,
        resolution_seconds: int = DEFAULT_RESOLUTION_SECONDS,
    ) -> Tuple[Dict[str, HistoryResult], Dict[str, str]]:
        """
        Generate history for several symbols; one failure does not stop the rest.

        Symbols missing from anchors fall back to default_anchor_price(base_symbol).

        Returns:
            (results by symbol, error messages by symbol)
        """
        results: Dict[str, HistoryResult] = {}
        errors: Dict[str, str] = {}
        for config in configs:
            anchor = anchors.get(config.symbol)
            if anchor is None:
                anchor = default_anchor_price(config.base_symbol)
            if anchor is None:
                errors[config.symbol] = "no anchor price available"
                logger.warning("Skipping history for %s: no anchor price", config.symbol)
                continue
            try:
                results[config.symbol] = self.generate(
                    config,
                    anchor,
                    anchor_timestamp=anchor_timestamp,
                    candle_count=candle_count,
                    resolution_seconds=resolution_seconds,
                )
            except (OTCError, ValueError) as exc:
                errors[config.symbol] = str(exc)
                logger.error("History generation failed for %s: %s", config.symbol, exc)
        return results, errors

    def _simulate_path(self, config: SymbolConfig, anchor_price: float, ticks: int) -> List[float]:
        source = self._rng.spawn() if isinstance(self._rng, NumpyRandomSource) else self._rng
        generator = OTCPriceGenerator(random_source=source, clock_ms=lambda: 0)
        snapshot = generator.initialize_symbol(config, anchor_price)

        path = [quantize_price(snapshot.current_price, config.pip_size)]
        for _ in range(ticks):
            path.append(generator.generate_next_price(config.symbol).price)
        return path

    def _volume(self, price_range: float, pip_size: float) -> int:
        range_pips = price_range / pip_size
        base_volume = VOLUME_BASE + range_pips * VOLUME_PER_PIP
        return int(round(base_volume * self._rng.uniform(0.7, 1.3)))


__all__ = [
    "DEFAULT_PRICES",
    "default_anchor_price",
    "HistoryCandle",
    "HistoryResult",
    "SyntheticHistoryGenerator",
]
