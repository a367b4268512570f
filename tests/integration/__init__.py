"""Integration tests.

These tests run every stage on a small RIS export written to a
temporary directory, including the matplotlib PRISMA diagram.
"""
