"""Tick-driven services."""
