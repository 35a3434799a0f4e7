# -*- coding: utf-8 -*-
"""
otc/state_store.py
Per-symbol state registry for the OTC price generator.

Holds exactly one SymbolState per registered symbol together with its
config and a dedicated lock. Ticks for one symbol are serialized on that
lock; different symbols never share mutable state, so they can be
advanced from different threads.

Usage:
    store = SymbolStateStore()
    store.initialize_symbol(config, 1.19080)
    store.update_reference_price("EUR/USD-OTC", 1.19100)

    with store.locked("EUR/USD-OTC") as (config, state):
        ...  # exclusive mutable access
"""

from __future__ import annotations

import logging
import math
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from core_errors import (
    AlreadyInitializedError,
    InvalidConfigError,
    InvalidPriceError,
    UnknownSymbolError,
)
from otc.models import (
    AntiPatternState,
    CandleState,
    Direction,
    SymbolConfig,
    SymbolSnapshot,
    SymbolState,
    WaveState,
)

logger = logging.getLogger(__name__)

# Builds the initial wave for a new symbol: (config, start_price) -> WaveState
WaveFactory = Callable[[SymbolConfig, float], WaveState]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _default_wave(config: SymbolConfig, start_price: float) -> WaveState:
    return WaveState(direction=Direction.UP, start_price=start_price)


@dataclass
class _Entry:
    config: SymbolConfig
    state: SymbolState
    lock: threading.RLock = field(default_factory=threading.RLock)


class SymbolStateStore:
    """
    Registry of symbol states with per-symbol locking.

    Args:
        clock_ms: Time source in epoch milliseconds
        wave_factory: Builds the initial WaveState of a new symbol
    """

    def __init__(
        self,
        clock_ms: Optional[Callable[[], int]] = None,
        wave_factory: Optional[WaveFactory] = None,
    ) -> None:
        self._clock_ms = clock_ms or _now_ms
        self.wave_factory: WaveFactory = wave_factory or _default_wave
        self._entries: Dict[str, _Entry] = {}
        self._registry_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize_symbol(
        self,
        config: SymbolConfig,
        start_price: float,
        *,
        replace: bool = False,
        wave_factory: Optional[WaveFactory] = None,
    ) -> SymbolSnapshot:
        """
        Create state for a symbol.

        Args:
            config: Symbol configuration (validated here)
            start_price: Initial price, also the initial reference price
            replace: Reset an already initialized symbol instead of failing
            wave_factory: Builds the initial wave for this call instead of
                the store's own factory

        Returns:
            Snapshot of the new state

        Raises:
            InvalidConfigError: If config or start price are invalid
            AlreadyInitializedError: If the symbol exists and replace is False
        """
        if config is None:
            raise InvalidConfigError("config is required")
        config.validate()
        if not isinstance(start_price, (int, float)) or not math.isfinite(start_price) or start_price <= 0:
            raise InvalidConfigError(
                f"{config.symbol}: start price must be a finite number > 0, got {start_price!r}"
            )

        start_price = float(start_price)
        if not replace and self.has_symbol(config.symbol):
            raise AlreadyInitializedError(config.symbol)

        state = self._create_state(config, start_price, wave_factory or self.wave_factory)
        entry = _Entry(config=config, state=state)

        # Entry locks are never acquired while the registry lock is held;
        # another thread may have registered the symbol since the check above
        with self._registry_lock:
            existing = self._entries.get(config.symbol)
            if existing is not None and not replace:
                raise AlreadyInitializedError(config.symbol)
            self._entries[config.symbol] = entry

        logger.info(
            "OTC symbol %s initialized at %s%s",
            config.symbol, start_price, " (replaced)" if existing is not None else "",
        )
        return state.snapshot()

    def _create_state(self, config: SymbolConfig, start_price: float, wave_factory: WaveFactory) -> SymbolState:
        now = self._clock_ms()
        wave = wave_factory(config, start_price)
        state = SymbolState(
            symbol=config.symbol,
            current_price=start_price,
            reference_price=start_price,
            conditional_variance=config.unconditional_variance,
            wave=wave,
            candle=CandleState(open=start_price, high=start_price, low=start_price),
            anti_pattern=AntiPatternState(last_direction=wave.direction),
            last_update_timestamp=now,
        )
        state.record_price(start_price)
        return state

    def remove_symbol(self, symbol: str) -> bool:
        """Drop a symbol. Returns False if it was not registered."""
        with self._registry_lock:
            entry = self._entries.pop(symbol, None)
        if entry is not None:
            logger.info("OTC symbol %s removed", symbol)
        return entry is not None

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def _entry(self, symbol: str) -> _Entry:
        with self._registry_lock:
            entry = self._entries.get(symbol)
        if entry is None:
            raise UnknownSymbolError(symbol)
        return entry

    @contextmanager
    def _locked_entry(self, symbol: str) -> Iterator[_Entry]:
        while True:
            entry = self._entry(symbol)
            with entry.lock:
                with self._registry_lock:
                    current = self._entries.get(symbol)
                if current is entry:
                    yield entry
                    return
            # replaced or removed while waiting for the lock; retry

    @contextmanager
    def locked(self, symbol: str) -> Iterator[Tuple[SymbolConfig, SymbolState]]:
        """
        Exclusive access to a symbol's config and mutable state.

        Raises:
            UnknownSymbolError: If the symbol is not registered
        """
        with self._locked_entry(symbol) as entry:
            yield entry.config, entry.state

    def update_reference_price(self, symbol: str, price: float) -> None:
        """
        Set the real-market anchor used for mean reversion and bounds.

        Raises:
            UnknownSymbolError: If the symbol is not registered
            InvalidPriceError: If price is not finite or not positive
        """
        if not isinstance(price, (int, float)) or not math.isfinite(price) or price <= 0:
            raise InvalidPriceError(f"{symbol}: invalid reference price {price!r}")
        with self.locked(symbol) as (_config, state):
            state.reference_price = float(price)

    def get_state(self, symbol: str) -> SymbolSnapshot:
        """
        Snapshot of a symbol's state.

        Raises:
            UnknownSymbolError: If the symbol is not registered
        """
        with self.locked(symbol) as (_config, state):
            return state.snapshot()

    def get_config(self, symbol: str) -> SymbolConfig:
        return self._entry(symbol).config

    def update_config(self, symbol: str, **updates) -> SymbolConfig:
        """
        Replace some config fields of a live symbol (state is kept).

        Raises:
            UnknownSymbolError: If the symbol is not registered
            InvalidConfigError: If the updated config is invalid
        """
        with self._locked_entry(symbol) as entry:
            entry.config = entry.config.replace(**updates)
            config = entry.config
        logger.info("OTC symbol %s config updated: %s", symbol, sorted(updates))
        return config

    def has_symbol(self, symbol: str) -> bool:
        with self._registry_lock:
            return symbol in self._entries

    def active_symbols(self) -> List[str]:
        with self._registry_lock:
            return list(self._entries)

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and self.has_symbol(symbol)

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._entries)


__all__ = ["SymbolStateStore", "WaveFactory"]
