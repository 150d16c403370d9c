"""Contribution Tracker - student open-source contribution sync."""

__version__ = "0.1.0"
