"""Hall booking service: conflict-free one-off and recurring hall reservations."""

__version__ = "1.0.0"
