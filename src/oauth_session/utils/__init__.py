"""Utility helpers (configuration loading, logging)."""
