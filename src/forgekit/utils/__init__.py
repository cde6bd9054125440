"""Shared filesystem utilities."""
