#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
OTC Price Movement Analysis CLI.

Drives the OTC generator for a number of ticks per symbol and prints the
pip movement table and direction bias.

Usage:
    # Default symbols (EUR/USD-OTC, BTC/USD-OTC), 30 ticks, 550 ms apart
    python scripts/analyze_movement.py

    # Reproducible run without pauses
    python scripts/analyze_movement.py --seed 42 --no-sleep --ticks 200

    # Custom config and symbol
    python scripts/analyze_movement.py --config my_otc.yaml --symbol ETH/USD-OTC
"""

from __future__ import annotations

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from otc.analysis import main


if __name__ == "__main__":
    sys.exit(main())
