"""Core records and normalization helpers."""
