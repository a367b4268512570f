"""Systematic review and meta-analysis pipeline.

The package turns a bibliographic RIS export into a table of per-study
performance metrics and runs random-effects, diagnostic-accuracy,
subgroup and publication-bias analyses over it.
"""

__version__ = "0.1.0"
