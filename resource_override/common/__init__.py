"""Helpers shared across the admission engine."""
