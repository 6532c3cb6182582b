"""Core shared logic for signal generation, deduplication and routing.

This package contains pure business logic with no I/O dependencies
(no database, Redis, or network access). The I/O side lives in relay_app/.
"""
