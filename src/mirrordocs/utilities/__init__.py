"""Shared helpers for mirrordocs."""
