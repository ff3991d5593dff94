"""Workout sessions, adherence streaks and weekly nutrition summaries."""

__version__ = "0.1.0"
