"""Agent activity tracking from Slack operations-channel events."""

__version__ = "0.1.0"
