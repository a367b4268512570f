"""Test suite for the review meta-analysis pipeline.

Unit tests live in ``tests/unit``; ``tests/integration`` runs the full
pipeline and the CLI on a synthetic RIS export.  Run ``pytest`` from
the project root, or ``pytest -m "not integration"`` for the unit tests
only.
"""
