# -*- coding: utf-8 -*-
"""
tests/conftest.py
Shared fixtures for the OTC price engine tests.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from otc.models import MarketType, SymbolConfig  # noqa: E402


class FakeClock:
    """Manually advanced clock returning epoch milliseconds."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def eurusd_config() -> SymbolConfig:
    """EUR/USD-OTC parameters used by the calibration harness."""
    return SymbolConfig(
        symbol="EUR/USD-OTC",
        base_symbol="EUR/USD",
        market_type=MarketType.FOREX,
        pip_size=0.00001,
        base_volatility=0.00001,
        volatility_multiplier=1.0,
        mean_reversion_strength=0.001,
        max_deviation_percent=0.5,
        price_offset_pips=2.0,
        momentum_factor=0.15,
        garch_alpha=0.1,
        garch_beta=0.85,
        garch_omega=0.05,
    )


@pytest.fixture
def btcusd_config() -> SymbolConfig:
    """BTC/USD-OTC parameters used by the calibration harness."""
    return SymbolConfig(
        symbol="BTC/USD-OTC",
        base_symbol="BTC/USD",
        market_type=MarketType.CRYPTO,
        pip_size=0.01,
        base_volatility=0.0000015,
        volatility_multiplier=1.0,
        mean_reversion_strength=0.001,
        max_deviation_percent=2.0,
        price_offset_pips=3.0,
        momentum_factor=0.2,
        garch_alpha=0.1,
        garch_beta=0.85,
        garch_omega=0.05,
    )
