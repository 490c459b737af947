"""Logging setup and user-facing error formatting."""
