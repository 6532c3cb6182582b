"""I/O layer: settings, storage, clients, feeds and tick-driven services."""
