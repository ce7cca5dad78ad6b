"""
AssetGuard
==========

Moderation service for a user-generated-content marketplace: classifies new
uploads, publishes or rejects them, escalates repeat offenders to timed
suspensions and keeps an append-only audit trail.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. ASSETGUARD_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("ASSETGUARD_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()

import asyncio
from dotenv import load_dotenv

from assetguard.configuration.app_configuration import AppConfig
from assetguard.database.db_connection import ConnectionManager
from assetguard.database.db_schema import SchemaManager
from assetguard.datatypes.principal_datatypes import Principal, Role
from assetguard.runtime import Runtime, build_runtime
from assetguard.ui.console import ConsoleControl, console_session
from assetguard.util.logger import get_logger, handle_exception

logger = get_logger("main")


def load_environment() -> None:
    """Load classifier credentials from ``.env`` into the process environment."""
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    for name in ("OPENROUTER_API_KEY", "TEXT_CLASSIFIER_API_KEY"):
        if not os.getenv(name):
            logger.warning("'%s' is not set; the matching classifier will fail its checks.", name)


async def open_database(config: AppConfig) -> ConnectionManager:
    db = ConnectionManager()
    await db.open(config.database_path)
    await SchemaManager.initialize_schema(db.connection)
    return db


def operator_principal(config: AppConfig) -> Principal:
    try:
        role = Role(config.console_operator_role.lower())
    except ValueError:
        logger.warning("Unknown console operator role %r; falling back to member", config.console_operator_role)
        role = Role.MEMBER
    return Principal(user_id=config.console_operator_id, role=role)


async def run_session(runtime: Runtime, control: ConsoleControl) -> int:
    """Run schedulers and console until shutdown is requested."""
    runtime.start_schedulers()
    try:
        async with console_session(control):
            await control.shutdown_event.wait()
    except asyncio.CancelledError:
        logger.info("Session cancelled; proceeding to shutdown")
    finally:
        await runtime.shutdown()
    return 0


async def async_main() -> int:
    """Bootstrap configuration, database and services, returning an exit code."""
    os.chdir(BASE_DIR)
    load_environment()
    config = AppConfig()

    try:
        logger.info("Opening database at %s", config.database_path)
        db = await open_database(config)
    except Exception as exc:
        logger.critical("Failed to initialize database: %s", exc)
        return 1

    try:
        runtime = build_runtime(config, db)
        control = ConsoleControl(runtime, operator_principal(config))
        return await run_session(runtime, control)
    finally:
        await db.close()
        logger.info("Shutdown complete.")


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process code."""
    sys.excepthook = handle_exception
    logger.info("Starting AssetGuard…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except Exception as exc:
        logger.critical("An unexpected error occurred: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
