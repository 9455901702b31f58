"""
Scalper App - Mean-Reversion Scalping Engine

A single-instrument trading engine that synthesizes short-interval bars from a
polled trade-price feed, keeps band and momentum indicators current on every
sample, and drives a FLAT/LONG position machine with trailing-stop risk control.
Closed bars and trades are kept in a retention-bounded SQLite log.
"""

__version__ = "0.1.0"
__author__ = "Scalper Team"
