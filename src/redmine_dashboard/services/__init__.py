"""Persistence, configuration and orchestration services."""
