# -*- coding: utf-8 -*-
"""
core_errors.py
Common exceptions for the OTC price engine.
"""


class OTCError(Exception):
    """ Base error of the OTC engine. """


class ConfigError(OTCError):
    """ Configuration / validation error. """


class InvalidConfigError(ConfigError, ValueError):
    """
    Structurally invalid symbol configuration.

    Raised at initialization time (negative pip size, non-stationary
    GARCH parameters, ...) instead of producing unstable ticks later.
    """


class InvalidPriceError(OTCError, ValueError):
    """ Non-finite or non-positive price supplied to the engine. """


class UnknownSymbolError(OTCError, KeyError):
    """
    Operation referenced a symbol with no initialized state.

    Callers recover from it (lazy initialization, skipping the tick);
    it never indicates a corrupted engine.
    """

    def __init__(self, symbol: str):
        super().__init__(symbol)
        self.symbol = symbol

    def __str__(self) -> str:
        return f"Unknown OTC symbol: {self.symbol}"


class AlreadyInitializedError(OTCError):
    """ Symbol already has state; pass replace=True to reset it. """

    def __init__(self, symbol: str):
        super().__init__(f"Symbol {symbol} is already initialized")
        self.symbol = symbol


class QuantizeError(OTCError):
    """ Price quantization error. """
