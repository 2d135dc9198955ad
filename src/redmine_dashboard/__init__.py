"""Redmine Dashboard: issue tracker and schedule reconciliation desktop app."""

__version__ = "0.3.0"
