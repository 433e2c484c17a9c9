"""Rhythm Runner - music and metronome at your running cadence."""

__version__ = "0.1.0"
