"""Checks, results, formatting and policy helpers for container and operator certification."""

__version__ = "0.1.0"