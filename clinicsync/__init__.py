"""clinicsync – clinic scheduling with Google Calendar reconciliation."""

__version__ = "0.1.0"
