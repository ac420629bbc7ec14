"""Configuration: settings, logging and user-facing messages."""
