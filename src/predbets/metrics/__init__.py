"""Derived market metrics."""
