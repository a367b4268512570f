"""Runtime settings and review configuration."""
