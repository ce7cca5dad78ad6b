"""Database package: aiosqlite connection manager and schema."""
