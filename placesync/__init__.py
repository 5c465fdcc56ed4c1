"""Saved-place list synchronization and social-proof aggregation."""
