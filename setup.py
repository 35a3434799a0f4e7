# setup.py
"""
OTC Price Engine - Build System

Synthetic (OTC) tick generator: GARCH volatility clustering, wave/momentum
overlay, mean reversion and pip-quantized output for instruments without a
real market feed.

Usage:
    pip install -e .            # Development install
    pip install -e .[test]      # With test dependencies
    otc-analyze-movement --help # Calibration harness

Requirements:
    - Python 3.10+
    - numpy (Generator.spawn needs 1.25+)
    - pydantic 2.x
    - PyYAML
"""
from __future__ import annotations

from setuptools import setup

# ============================================================================
# Dependencies
# ============================================================================

INSTALL_REQUIRES = [
    "numpy>=1.25",
    "pydantic>=2.0",
    "PyYAML>=6.0",
]

EXTRAS_REQUIRE = {
    "test": [
        "pytest>=7.0",
    ],
}


# ============================================================================
# Setup Configuration
# ============================================================================

setup(
    name="otc-price-engine",
    version="1.0.0",
    description="Synthetic OTC tick generator with GARCH volatility and wave structure",
    python_requires=">=3.10",
    packages=["otc"],
    py_modules=["core_errors"],
    package_data={"otc": ["configs/*.yaml"]},
    install_requires=INSTALL_REQUIRES,
    extras_require=EXTRAS_REQUIRE,
    entry_points={
        "console_scripts": ["otc-analyze-movement=otc.analysis:main"],
    },
)
