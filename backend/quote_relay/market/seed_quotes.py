"""Seed mids and per-symbol parameters for the offline upstream simulator."""

# Starting mid prices for the default watchlist
SEED_MIDS: dict[str, float] = {
    "EURUSD": 1.0850,
    "GBPUSD": 1.2650,
    "USDJPY": 151.20,
    "USDCHF": 0.9010,
    "AUDUSD": 0.6550,
    "USDCAD": 1.3580,
    "NZDUSD": 0.6050,
    "XAUUSD": 2350.00,
    "BTCUSD": 64000.00,
    "US30": 39000.00,
}

# sigma: annualized volatility; spread: quoted bid/ask spread in price units
SYMBOL_PARAMS: dict[str, dict[str, float]] = {
    "EURUSD": {"sigma": 0.07, "spread": 0.0001},
    "GBPUSD": {"sigma": 0.08, "spread": 0.00015},
    "USDJPY": {"sigma": 0.09, "spread": 0.015},
    "USDCHF": {"sigma": 0.07, "spread": 0.00015},
    "AUDUSD": {"sigma": 0.10, "spread": 0.00012},
    "USDCAD": {"sigma": 0.06, "spread": 0.00018},
    "NZDUSD": {"sigma": 0.10, "spread": 0.00018},
    "XAUUSD": {"sigma": 0.15, "spread": 0.30},
    "BTCUSD": {"sigma": 0.60, "spread": 15.0},  # High volatility
    "US30": {"sigma": 0.15, "spread": 2.0},
}

# Defaults for symbols not listed above
DEFAULT_PARAMS: dict[str, float] = {"sigma": 0.10, "spread": 0.0002}

# Correlation groups: USD-quoted majors move together, USD-base pairs mirror them
CORRELATION_GROUPS: dict[str, set[str]] = {
    "usd_quote": {"EURUSD", "GBPUSD", "AUDUSD", "NZDUSD"},
    "usd_base": {"USDJPY", "USDCHF", "USDCAD"},
}

INTRA_USD_QUOTE_CORR = 0.6
INTRA_USD_BASE_CORR = 0.5
CROSS_GROUP_CORR = -0.3  # EURUSD up tends to mean USDCHF down
DEFAULT_CORR = 0.1  # Metals, crypto, indices and unknown symbols
