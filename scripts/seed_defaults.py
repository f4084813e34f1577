"""
Seed script creating the groups, administrator and lookup values a fresh
database needs.

Usage:
    python -m scripts.seed_defaults [--reset]

Environment:
    ADMIN_NAME           name of the administrator (default: admin)
    ADMIN_PASSWORD_HASH  uppercase SHA256 of its password (default: the
                         configured default password hash)
"""
import asyncio
import os
import sys

from app.core.config import MODULE
from app.core.database.engine import AsyncSessionLocal, drop_db, init_db
from app.core.database.seed import ROOT_GROUP, seed_admin, seed_groups, seed_lookups
from app.core.validators import is_password_hash
from app.utils import get_logger


log = get_logger(__name__)


async def main(reset: bool = False):
    """Create tables and default rows in one transaction."""
    password_hash = os.environ.get("ADMIN_PASSWORD_HASH", MODULE.default_password_hash)
    if not is_password_hash(password_hash):
        raise SystemExit("ADMIN_PASSWORD_HASH must be 64 uppercase hexadecimal characters")

    if reset:
        log.warning("Dropping all tables")
        await drop_db()
    log.info("Initializing database tables...")
    await init_db()

    async with AsyncSessionLocal() as db:
        async with db.begin():
            groups = await seed_groups(db, MODULE)
            await seed_admin(db, groups[ROOT_GROUP], os.environ.get("ADMIN_NAME", "admin"), password_hash)
            await seed_lookups(db)
    log.info("Seeding completed successfully!")


if __name__ == "__main__":
    asyncio.run(main(reset="--reset" in sys.argv[1:]))
