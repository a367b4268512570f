"""Certainty-of-evidence assessment."""
