#!/usr/bin/env python3
"""
Database management commands: create or drop tables, reset and seed.

    grihome-db create
    grihome-db seed
    grihome-db reset --confirm
    grihome-db expire-ads
    grihome-db remind-promotions
"""

import argparse
import asyncio
import logging
import sys
from typing import Callable, Dict, Optional, Sequence

from sqlalchemy.ext.asyncio import async_sessionmaker

from grihome.config import settings
from grihome.database import AsyncSessionLocal, create_tables, drop_tables, close_db_connection
from grihome.services.ad import AdService
from grihome.services.forum import ForumService
from grihome.services.reminders import PromotionReminderService

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class DatabaseManager:
    """Schema and seed data management for a single database."""

    def __init__(self, session_factory: async_sessionmaker = AsyncSessionLocal):
        self.session_factory = session_factory

    async def seed_database(self) -> Dict[str, int]:
        """
        Create the ad slots and the forum city categories. Safe to run repeatedly.

        Returns:
            How many slots and cities were added
        """
        async with self.session_factory() as session:
            slots = await AdService(session).init_slots()
            cities = await ForumService(session).init_cities()

        logger.info(f"Seed complete: {slots} ad slots, {len(cities)} forum cities added")
        return {"ad_slots": slots, "forum_cities": len(cities)}

    async def expire_ads(self) -> int:
        async with self.session_factory() as session:
            expired = await AdService(session).expire_ads()
        return len(expired)

    async def remind_promotions(self) -> int:
        async with self.session_factory() as session:
            tallies = await PromotionReminderService(session).send_expiry_reminders()
        return sum(t["found"] for t in tallies)

    async def reset_database(self) -> Dict[str, int]:
        """Drop and recreate every table, then seed."""
        logger.warning("Resetting database - all data will be lost!")
        if not (settings.is_development or settings.is_testing):
            raise RuntimeError("Database reset is only allowed in development or test mode")

        await drop_tables()
        await create_tables()
        return await self.seed_database()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="grihome-db", description="Grihome database management")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("create", help="Create all tables")
    drop_parser = subparsers.add_parser("drop", help="Drop all tables (not in production)")
    drop_parser.add_argument("--confirm", action="store_true", help="Confirm dropping tables")
    subparsers.add_parser("seed", help="Create ad slots and forum city categories")
    reset_parser = subparsers.add_parser("reset", help="Drop, recreate and seed (development only)")
    reset_parser.add_argument("--confirm", action="store_true", help="Confirm database reset")
    subparsers.add_parser("expire-ads", help="Expire ads past their end date")
    subparsers.add_parser("remind-promotions", help="Send reminders for promotions about to end")

    return parser


async def _run(command: str, manager: DatabaseManager) -> None:
    commands: Dict[str, Callable] = {
        "create": create_tables,
        "drop": drop_tables,
        "seed": manager.seed_database,
        "reset": manager.reset_database,
        "expire-ads": manager.expire_ads,
        "remind-promotions": manager.remind_promotions,
    }
    try:
        await commands[command]()
    finally:
        await close_db_connection()


def main(argv: Optional[Sequence[str]] = None, manager: Optional[DatabaseManager] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command in ("drop", "reset") and not args.confirm:
        logger.error(f"{args.command} requires the --confirm flag")
        return 1

    try:
        asyncio.run(_run(args.command, manager or DatabaseManager()))
    except Exception as e:
        logger.error(f"Command failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
