"""Roster ingestion, snapshot sync and derived views."""

__version__ = "0.1.0"
