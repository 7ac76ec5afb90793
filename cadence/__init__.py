"""Habit cadence scheduler: reminder slots and 4-week challenge progression."""

__version__ = "0.1.0"
