"""
OTC (synthetic) price engine.

Generates realistic tick data for synthetic instruments that have no real
market feed, anchored to a reference price pushed by a real feed:
- GARCH(1,1) volatility clustering on standardized returns
- Wave/momentum overlay (trend, pullback, fake-outs, streak breaking)
- Mean reversion toward the reference price and a hard deviation band
- Pip-quantized output with bid/ask spread
- Per-symbol state with per-symbol locking
- Admin controls (price override, direction bias, volatility multiplier)
- Synthetic candle history backfill
- Calibration harness (pip movement and direction bias)

Usage:
    from otc import OTCPriceGenerator, SymbolConfig, NumpyRandomSource

    generator = OTCPriceGenerator(random_source=NumpyRandomSource(seed=42))
    generator.initialize_symbol(SymbolConfig(symbol="EUR/USD-OTC"), 1.19080)
    tick = generator.generate_next_price("EUR/USD-OTC")
"""

from otc.models import (
    PRICE_HISTORY_SIZE,
    DEFAULT_SPREAD_PIPS,
    BASE_TICK_INTERVAL_MS,
    TICK_INTERVAL_VARIANCE_MS,
    MarketType,
    PriceMode,
    WavePhase,
    Direction,
    SymbolConfig,
    WaveState,
    CandleState,
    AntiPatternState,
    SymbolState,
    SymbolSnapshot,
    PriceTick,
    CandleOHLC,
)
from otc.random_source import RandomSource, NumpyRandomSource, create_random_source
from otc.state_store import SymbolStateStore
from otc.manual_control import ManualControlService, SymbolControl
from otc.price_generator import (
    OTCPriceGenerator,
    create_price_generator,
    quantize_price,
    quantize_within_band,
)
from otc.history import (
    HistoryCandle,
    HistoryResult,
    SyntheticHistoryGenerator,
    default_anchor_price,
)
from otc.config import (
    OTCSymbolSettings,
    OTCGeneratorSettings,
    OTCConfigLoader,
    load_otc_config,
    create_generator_from_config,
)

__version__ = "1.0.0"

__all__ = [
    # Constants
    "PRICE_HISTORY_SIZE",
    "DEFAULT_SPREAD_PIPS",
    "BASE_TICK_INTERVAL_MS",
    "TICK_INTERVAL_VARIANCE_MS",
    # Enums
    "MarketType",
    "PriceMode",
    "WavePhase",
    "Direction",
    # Data classes
    "SymbolConfig",
    "WaveState",
    "CandleState",
    "AntiPatternState",
    "SymbolState",
    "SymbolSnapshot",
    "PriceTick",
    "CandleOHLC",
    # Randomness
    "RandomSource",
    "NumpyRandomSource",
    "create_random_source",
    # Engine
    "SymbolStateStore",
    "ManualControlService",
    "SymbolControl",
    "OTCPriceGenerator",
    "create_price_generator",
    "quantize_price",
    "quantize_within_band",
    # History
    "HistoryCandle",
    "HistoryResult",
    "SyntheticHistoryGenerator",
    "default_anchor_price",
    # Config
    "OTCSymbolSettings",
    "OTCGeneratorSettings",
    "OTCConfigLoader",
    "load_otc_config",
    "create_generator_from_config",
]
