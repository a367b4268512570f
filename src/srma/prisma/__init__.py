"""PRISMA flow counts and diagrams.

PRISMA diagrams report how many records were identified, how many were
removed by the year filter and deduplication, how many were screened
and excluded, and how many studies entered the meta-analysis.
"""

from .diagram import PrismaCounts, compute_prisma_counts, generate_prisma_diagram

__all__ = ["PrismaCounts", "compute_prisma_counts", "generate_prisma_diagram"]
