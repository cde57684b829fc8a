import asyncio
import logging

from app.core.config import ENVIRONMENT
from app.core.database import DatabaseManager, engine, Base
from app.core.exceptions import DatabaseError, ConfigurationError

# Imported for their side effect of registering tables on Base.metadata
from app.accounts import models as accounts_models  # noqa: F401
from app.scheduling import models as scheduling_models  # noqa: F401
from app.bookings import models as bookings_models  # noqa: F401
from app.notifications import models as notifications_models  # noqa: F401

logger = logging.getLogger(__name__)
db_manager = DatabaseManager()


async def init_database():
    """Verify connectivity and create missing tables"""
    try:
        logger.info("Starting database initialization...")

        await db_manager.check_connection()
        logger.info("Database connection verified")

        await db_manager.create_tables()
        logger.info("Database tables created/verified")

    except DatabaseError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during database initialization: {e}")
        raise DatabaseError(f"Database initialization failed: {str(e)}")


async def reset_database():
    """Drop and recreate every table (development and test only)"""
    if ENVIRONMENT not in ["development", "dev", "test"]:
        raise ConfigurationError(
            "ENVIRONMENT",
            "Database reset is only allowed in development or test environments",
        )

    logger.warning("Resetting database, all data will be lost")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("All tables dropped")

    await init_database()


if __name__ == "__main__":
    import sys

    async def main():
        command = sys.argv[1] if len(sys.argv) > 1 else "init"

        if command == "init":
            await init_database()
        elif command == "reset":
            await reset_database()
        else:
            print(f"Unknown command: {command}")
            print("Available commands: init, reset")
            sys.exit(1)

        await db_manager.close_connections()

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Database initialization cancelled by user")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        sys.exit(1)
