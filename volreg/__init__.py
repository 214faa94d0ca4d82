"""
Volreg Backtester
-----------------
An event-driven backtesting engine for volatility-model regression algorithms.
Focuses on daily equity data, corporate-action aware price normalization, and
indicator-driven volatility estimates.
"""
