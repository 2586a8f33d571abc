"""Budgetboard: personal-finance dashboard backend and client logic."""

__version__ = "0.1.0"
