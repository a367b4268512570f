"""Record deduplication."""
