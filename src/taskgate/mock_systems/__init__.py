"""Deterministic stand-in for the analysis host, for tests and local dry-runs."""
