"""Shared utilities: data structures, rate estimation, logging and statistics."""
