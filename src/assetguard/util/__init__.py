"""Utility helpers: logging, time conversion and URL validation."""
