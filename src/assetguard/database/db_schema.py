"""
Database schema initialization.

Creates tables, indexes, triggers and the schema version row. Timestamps are
INTEGER unix seconds throughout. The audit log and the author of an asset are
protected by triggers so the storage layer itself refuses to rewrite them.
"""

import aiosqlite
from assetguard.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates the moderation store's tables, indexes and triggers."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create all database tables, indexes, and triggers if missing.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._create_triggers(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized")

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        """Create all required database tables."""
        await db.execute("""
            CREATE TABLE IF NOT EXISTS users (
                user_id TEXT PRIMARY KEY,
                display_name TEXT NOT NULL DEFAULT '',
                role TEXT NOT NULL DEFAULT 'member',
                is_banned INTEGER NOT NULL DEFAULT 0,
                ban_reason TEXT,
                ban_date INTEGER,
                ban_until_date INTEGER,
                auth_disabled INTEGER NOT NULL DEFAULT 0,
                created_at INTEGER NOT NULL
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS assets (
                asset_id TEXT PRIMARY KEY,
                author_id TEXT NOT NULL,
                name TEXT NOT NULL DEFAULT '',
                description TEXT NOT NULL DEFAULT '',
                tags TEXT NOT NULL DEFAULT '[]',
                image_url TEXT NOT NULL DEFAULT '',
                status TEXT NOT NULL,
                downloads INTEGER NOT NULL DEFAULT 0,
                moderation_confidence REAL,
                moderation_category TEXT,
                rejection_reason TEXT,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL,
                published_date INTEGER,
                rejection_date INTEGER
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS warnings (
                warning_id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                category TEXT NOT NULL,
                message TEXT NOT NULL,
                evidence TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at INTEGER NOT NULL,
                FOREIGN KEY (user_id) REFERENCES users(user_id)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS audit_logs (
                entry_id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp INTEGER NOT NULL,
                actor_id TEXT NOT NULL,
                action TEXT NOT NULL,
                target_id TEXT NOT NULL,
                details TEXT NOT NULL DEFAULT '{}',
                status TEXT NOT NULL DEFAULT 'success',
                ip_address TEXT,
                user_agent TEXT
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS notifications (
                notification_id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                notification_type TEXT NOT NULL,
                title TEXT NOT NULL,
                body TEXT NOT NULL,
                created_at INTEGER NOT NULL,
                is_read INTEGER NOT NULL DEFAULT 0
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        """Create indexes for the lookups the moderation core performs."""
        await db.execute("CREATE INDEX IF NOT EXISTS idx_assets_status ON assets(status, updated_at)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_assets_author ON assets(author_id)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_warnings_active ON warnings(user_id, category, is_active)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_users_ban_expiry ON users(is_banned, ban_until_date)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_logs(timestamp DESC)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_audit_actor ON audit_logs(actor_id, action, timestamp)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_audit_target ON audit_logs(target_id)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id, created_at)")

    @staticmethod
    async def _create_triggers(db: aiosqlite.Connection) -> None:
        """Create append-only and immutable-author guards."""
        await db.execute("""
            CREATE TRIGGER IF NOT EXISTS audit_logs_no_update
            BEFORE UPDATE ON audit_logs
            BEGIN
                SELECT RAISE(ABORT, 'audit log entries are immutable');
            END
        """)

        await db.execute("""
            CREATE TRIGGER IF NOT EXISTS audit_logs_no_delete
            BEFORE DELETE ON audit_logs
            BEGIN
                SELECT RAISE(ABORT, 'audit log entries are immutable');
            END
        """)

        await db.execute("""
            CREATE TRIGGER IF NOT EXISTS assets_author_immutable
            BEFORE UPDATE OF author_id ON assets
            FOR EACH ROW WHEN NEW.author_id IS NOT OLD.author_id
            BEGIN
                SELECT RAISE(ABORT, 'asset author cannot change');
            END
        """)

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        """Update schema version tracking."""
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
