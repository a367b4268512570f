"""Eligibility screening of deduplicated records."""
