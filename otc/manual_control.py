# -*- coding: utf-8 -*-
"""
otc/manual_control.py
Admin controls for OTC symbols.

Admins can temporarily steer a synthetic symbol:
1. Price override - pin the quoted price
2. Direction bias - skew the tick direction (bias in [-100, 100])
3. Volatility multiplier - scale move sizes

Every control can expire. Expired controls are cleared lazily on read and
read back as neutral values (None, (0, 0.0), 1.0).
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

MAX_BIAS = 100.0


@dataclass
class SymbolControl:
    """Active controls for one symbol. Expiry fields are epoch seconds."""
    symbol: str
    price_override: Optional[float] = None
    price_override_expiry: Optional[float] = None
    direction_bias: float = 0.0
    direction_strength: float = 0.0
    direction_bias_expiry: Optional[float] = None
    volatility_multiplier: float = 1.0
    volatility_expiry: Optional[float] = None

    @property
    def is_neutral(self) -> bool:
        return (
            self.price_override is None
            and self.direction_bias == 0.0
            and self.volatility_multiplier == 1.0
        )


class ManualControlService:
    """
    In-memory store of admin controls.

    Args:
        clock: Time source in epoch seconds (for expiry checks)
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        self._clock = clock or time.time
        self._controls: Dict[str, SymbolControl] = {}
        self._lock = threading.Lock()

    def _expiry(self, duration_sec: Optional[float]) -> Optional[float]:
        if duration_sec is None:
            return None
        if duration_sec <= 0:
            raise ValueError(f"duration must be > 0, got {duration_sec}")
        return self._clock() + duration_sec

    def _expired(self, expiry: Optional[float]) -> bool:
        return expiry is not None and expiry <= self._clock()

    def _control(self, symbol: str) -> SymbolControl:
        control = self._controls.get(symbol)
        if control is None:
            control = SymbolControl(symbol=symbol)
            self._controls[symbol] = control
        return control

    def _prune(self, symbol: str) -> None:
        control = self._controls.get(symbol)
        if control is not None and control.is_neutral:
            del self._controls[symbol]

    # --- price override ---

    def set_price_override(
        self,
        symbol: str,
        price: float,
        duration_sec: Optional[float] = None,
        admin_id: str = "system",
    ) -> None:
        if not math.isfinite(price) or price <= 0:
            raise ValueError(f"override price must be finite and > 0, got {price}")
        expiry = self._expiry(duration_sec)
        with self._lock:
            control = self._control(symbol)
            control.price_override = float(price)
            control.price_override_expiry = expiry
        logger.info("Price override set: symbol=%s price=%s duration=%s admin=%s",
                    symbol, price, duration_sec, admin_id)

    def get_price_override(self, symbol: str) -> Optional[float]:
        with self._lock:
            control = self._controls.get(symbol)
            if control is None or control.price_override is None:
                return None
            if self._expired(control.price_override_expiry):
                self._clear_price_override(symbol)
                return None
            return control.price_override

    def _clear_price_override(self, symbol: str) -> None:
        control = self._controls.get(symbol)
        if control is not None:
            control.price_override = None
            control.price_override_expiry = None
            self._prune(symbol)

    def clear_price_override(self, symbol: str, admin_id: str = "system") -> None:
        with self._lock:
            self._clear_price_override(symbol)
        logger.info("Price override cleared: symbol=%s admin=%s", symbol, admin_id)

    # --- direction bias ---

    def set_direction_bias(
        self,
        symbol: str,
        bias: float,
        strength: float,
        duration_sec: Optional[float] = None,
        admin_id: str = "system",
    ) -> None:
        """
        Skew tick direction.

        Args:
            bias: -100 (always down) .. 100 (always up)
            strength: 0 .. 1, how strongly the bias is applied
        """
        if not -MAX_BIAS <= bias <= MAX_BIAS:
            raise ValueError(f"bias must be in [-100, 100], got {bias}")
        if not 0.0 <= strength <= 1.0:
            raise ValueError(f"strength must be in [0, 1], got {strength}")
        expiry = self._expiry(duration_sec)
        with self._lock:
            control = self._control(symbol)
            control.direction_bias = float(bias)
            control.direction_strength = float(strength)
            control.direction_bias_expiry = expiry
            self._prune(symbol)
        logger.info("Direction bias set: symbol=%s bias=%s strength=%s duration=%s admin=%s",
                    symbol, bias, strength, duration_sec, admin_id)

    def get_direction_bias(self, symbol: str) -> Tuple[float, float]:
        """Returns (bias, strength); (0, 0.0) when inactive."""
        with self._lock:
            control = self._controls.get(symbol)
            if control is None:
                return 0.0, 0.0
            if self._expired(control.direction_bias_expiry):
                self._clear_direction_bias(symbol)
                return 0.0, 0.0
            return control.direction_bias, control.direction_strength

    def _clear_direction_bias(self, symbol: str) -> None:
        control = self._controls.get(symbol)
        if control is not None:
            control.direction_bias = 0.0
            control.direction_strength = 0.0
            control.direction_bias_expiry = None
            self._prune(symbol)

    def clear_direction_bias(self, symbol: str, admin_id: str = "system") -> None:
        with self._lock:
            self._clear_direction_bias(symbol)
        logger.info("Direction bias cleared: symbol=%s admin=%s", symbol, admin_id)

    # --- volatility ---

    def set_volatility_multiplier(
        self,
        symbol: str,
        multiplier: float,
        duration_sec: Optional[float] = None,
        admin_id: str = "system",
    ) -> None:
        if not math.isfinite(multiplier) or multiplier <= 0:
            raise ValueError(f"volatility multiplier must be > 0, got {multiplier}")
        expiry = self._expiry(duration_sec)
        with self._lock:
            control = self._control(symbol)
            control.volatility_multiplier = float(multiplier)
            control.volatility_expiry = expiry
            self._prune(symbol)
        logger.info("Volatility multiplier set: symbol=%s multiplier=%s duration=%s admin=%s",
                    symbol, multiplier, duration_sec, admin_id)

    def get_volatility_multiplier(self, symbol: str) -> float:
        with self._lock:
            control = self._controls.get(symbol)
            if control is None:
                return 1.0
            if self._expired(control.volatility_expiry):
                self._clear_volatility(symbol)
                return 1.0
            return control.volatility_multiplier

    def _clear_volatility(self, symbol: str) -> None:
        control = self._controls.get(symbol)
        if control is not None:
            control.volatility_multiplier = 1.0
            control.volatility_expiry = None
            self._prune(symbol)

    def clear_volatility_multiplier(self, symbol: str, admin_id: str = "system") -> None:
        with self._lock:
            self._clear_volatility(symbol)
        logger.info("Volatility multiplier cleared: symbol=%s admin=%s", symbol, admin_id)

    # --- bulk ---

    def clear_all(self, symbol: str, admin_id: str = "system") -> None:
        with self._lock:
            self._controls.pop(symbol, None)
        logger.info("All controls cleared: symbol=%s admin=%s", symbol, admin_id)

    def active_controls(self) -> Dict[str, Dict[str, Any]]:
        """Non-expired controls keyed by symbol."""
        out: Dict[str, Dict[str, Any]] = {}
        with self._lock:
            symbols = list(self._controls)
        for symbol in symbols:
            # getters clear expired entries
            self.get_price_override(symbol)
            self.get_direction_bias(symbol)
            self.get_volatility_multiplier(symbol)
        with self._lock:
            for symbol, control in self._controls.items():
                out[symbol] = asdict(control)
        return out


__all__ = ["SymbolControl", "ManualControlService"]
