"""Repositories: static-method access to each table over an aiosqlite connection."""
