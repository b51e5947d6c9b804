"""Keyboard-driven terminal task manager backed by an append-only JSON Lines event log."""

__version__ = "0.1.0"