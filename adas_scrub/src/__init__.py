"""Scrub engine core."""
