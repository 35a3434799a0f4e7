# -*- coding: utf-8 -*-
"""
otc/analysis.py
OTC Price Movement Analysis

Offline calibration harness: drives the generator for a number of ticks
and reports per-tick pip movement and direction plus summary statistics
(average / min / max pip move, up / down counts, up bias).

Used when tuning generator parameters; compare the reported average pip
move and up bias before and after a change.

Usage:
    otc-analyze-movement --ticks 30 --seed 42 --no-sleep
    python scripts/analyze_movement.py --symbol EUR/USD-OTC --ticks 100
"""

from __future__ import annotations

import argparse
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from core_errors import OTCError
from otc.config import load_otc_config
from otc.history import default_anchor_price
from otc.models import SymbolConfig
from otc.price_generator import OTCPriceGenerator, create_price_generator

logger = logging.getLogger(__name__)

DEFAULT_SYMBOLS = ("EUR/USD-OTC", "BTC/USD-OTC")
DEFAULT_TICKS = 30
DEFAULT_INTERVAL_MS = 550


# =============================================================================
# Report
# =============================================================================

@dataclass(frozen=True)
class TickRow:
    """One analysed tick."""
    index: int
    price: float
    change_pips: float
    direction: str  # "UP" or "DOWN"


@dataclass
class MovementReport:
    """Per-tick rows and summary statistics for one symbol."""
    symbol: str
    market_type: str
    pip_size: float
    start_price: float
    rows: List[TickRow] = field(default_factory=list)

    @property
    def moves(self) -> List[float]:
        return [row.change_pips for row in self.rows]

    @property
    def average_pips(self) -> float:
        moves = self.moves
        return sum(moves) / len(moves) if moves else 0.0

    @property
    def min_pips(self) -> float:
        return min(self.moves, default=0.0)

    @property
    def max_pips(self) -> float:
        return max(self.moves, default=0.0)

    @property
    def up_count(self) -> int:
        return sum(1 for row in self.rows if row.direction == "UP")

    @property
    def down_count(self) -> int:
        return len(self.rows) - self.up_count

    @property
    def up_bias_percent(self) -> float:
        if not self.rows:
            return 0.0
        return self.up_count / len(self.rows) * 100.0

    def to_dict(self) -> Dict[str, Any]:
        """Summary as a dictionary (rows excluded)."""
        return {
            "symbol": self.symbol,
            "market_type": self.market_type,
            "ticks": len(self.rows),
            "average_pips": self.average_pips,
            "min_pips": self.min_pips,
            "max_pips": self.max_pips,
            "up_count": self.up_count,
            "down_count": self.down_count,
            "up_bias_percent": self.up_bias_percent,
        }


def analyze_movement(
    generator: OTCPriceGenerator,
    config: SymbolConfig,
    start_price: float,
    ticks: int = DEFAULT_TICKS,
    interval_ms: int = DEFAULT_INTERVAL_MS,
    sleep: Optional[Callable[[float], None]] = None,
) -> MovementReport:
    """
    Drive one symbol for a number of ticks and collect its movement.

    The symbol is (re)initialized at start_price, which is also pushed as
    the reference price. Ticks the generator declines to produce (pacing)
    are skipped.

    Args:
        generator: Generator to drive
        config: Symbol configuration
        start_price: Initial and reference price
        ticks: Number of ticks to request
        interval_ms: Pause between requests
        sleep: Sleep function (default time.sleep)

    Returns:
        MovementReport
    """
    if ticks < 0:
        raise ValueError(f"ticks must be >= 0, got {ticks}")
    sleep = sleep or time.sleep

    generator.initialize_symbol(config, start_price, replace=True)
    generator.update_real_price(config.symbol, start_price)

    report = MovementReport(
        symbol=config.symbol,
        market_type=config.market_type.value,
        pip_size=config.pip_size,
        start_price=start_price,
    )
    previous = start_price
    for i in range(ticks):
        if interval_ms > 0:
            sleep(interval_ms / 1000.0)
        tick = generator.generate_next_price(config.symbol)
        if tick is None:
            continue
        change = tick.price - previous
        report.rows.append(TickRow(
            index=i + 1,
            price=tick.price,
            change_pips=abs(change) / config.pip_size,
            direction="UP" if change >= 0 else "DOWN",
        ))
        previous = tick.price
    return report


def format_report(report: MovementReport, decimals: Optional[int] = None) -> str:
    """Render the per-tick table and summary."""
    if decimals is None:
        decimals = SymbolConfig(symbol=report.symbol, pip_size=report.pip_size).price_decimals

    lines = [
        f"--- {report.symbol} ({report.market_type}) ---",
        "Tick | Price        | Change (pips) | Direction",
        "-" * 55,
    ]
    for row in report.rows:
        lines.append(
            f"  {row.index:>2} | {row.price:>12.{decimals}f} |  {row.change_pips:>5.1f} pips   | {row.direction}"
        )
    lines.extend([
        "",
        f"{report.market_type} Summary:",
        f"  Avg: {report.average_pips:.1f} pips | Min: {report.min_pips:.1f} | Max: {report.max_pips:.1f}",
        f"  Direction: {report.up_count} UP, {report.down_count} DOWN "
        f"({report.up_bias_percent:.0f}% up bias)",
    ])
    return "\n".join(lines)


# =============================================================================
# CLI
# =============================================================================

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Analyze OTC price movement (pip moves and direction bias).",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML config merged over the packaged otc/configs/otc_symbols.yaml",
    )
    parser.add_argument(
        "--symbol",
        action="append",
        default=None,
        help="Symbol to analyze (repeatable, default: EUR/USD-OTC and BTC/USD-OTC)",
    )
    parser.add_argument(
        "--ticks",
        type=int,
        default=DEFAULT_TICKS,
        help=f"Ticks per symbol (default: {DEFAULT_TICKS})",
    )
    parser.add_argument(
        "--interval-ms",
        type=int,
        default=DEFAULT_INTERVAL_MS,
        help=f"Pause between ticks in ms (default: {DEFAULT_INTERVAL_MS})",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed (overrides the config)",
    )
    parser.add_argument(
        "--no-sleep",
        action="store_true",
        help="Do not pause between ticks",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        settings = load_otc_config(args.config)
    except (OTCError, FileNotFoundError) as e:
        logger.error(f"Failed to load config: {e}")
        return 1

    seed = args.seed if args.seed is not None else settings.seed
    generator = create_price_generator(seed=seed)
    interval_ms = 0 if args.no_sleep else args.interval_ms

    symbols = args.symbol or [s for s in DEFAULT_SYMBOLS if s in settings.symbols]
    if not symbols:
        logger.error("No symbols to analyze")
        return 1

    print("=" * 70)
    print("OTC PRICE MOVEMENT ANALYSIS")
    print("=" * 70)

    exit_code = 0
    for symbol in symbols:
        try:
            symbol_settings = settings.get(symbol)
        except OTCError as e:
            logger.error(str(e))
            exit_code = 1
            continue

        start_price = symbol_settings.start_price or default_anchor_price(symbol_settings.base_symbol)
        if start_price is None:
            logger.error(f"No start price for {symbol}")
            exit_code = 1
            continue

        logger.info(f"Analyzing {symbol}: {args.ticks} ticks from {start_price}")
        report = analyze_movement(
            generator,
            symbol_settings.to_symbol_config(),
            start_price,
            ticks=args.ticks,
            interval_ms=interval_ms,
        )
        print()
        print(format_report(report))

    print("=" * 70)
    return exit_code


__all__ = [
    "TickRow",
    "MovementReport",
    "analyze_movement",
    "format_report",
    "parse_args",
    "main",
]
