"""Compatibility scoring, Elo ratings and mutual-match lifecycle for partner matching."""

__version__ = "0.1.0"
