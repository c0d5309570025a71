"""
Operator commands.

Usage examples:
    python -m vivaform_api.cli promote user@example.com ADMIN
    python -m vivaform_api.cli set-tier user@example.com PREMIUM
    python -m vivaform_api.cli migrate upgrade
    python -m vivaform_api.cli migrate downgrade -1
    python -m vivaform_api.cli seed
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from vivaform_api.core.logging import configure_logging
from vivaform_api.core.settings import get_app_settings
from vivaform_api.db.models.users import ROLES, TIERS
from vivaform_api.db.run_migrations import COMMANDS, run_alembic
from vivaform_api.db.seed import seed_all
from vivaform_api.db.session import dispose_engine, session_scope
from vivaform_api.repositories.users import UserRepository

logger = logging.getLogger(__name__)


class UserNotFound(Exception):
    pass


async def set_user_field(email: str, field: str, value: str) -> None:
    """Set `role` or `tier` on the user with `email`."""
    try:
        async with session_scope() as session:
            repo = UserRepository(session)
            user = await repo.get_by_email(email)
            if user is None:
                raise UserNotFound(email)
            previous = getattr(user, field)
            setattr(user, field, value)
            await repo.save(user)
            logger.info("%s: %s %s -> %s", user.email, field, previous, value)
    finally:
        await dispose_engine()


async def seed() -> None:
    try:
        await seed_all()
    finally:
        await dispose_engine()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vivaform_api.cli", description="VivaForm operations")
    sub = parser.add_subparsers(dest="command", required=True)

    promote = sub.add_parser("promote", help="Change a user's role")
    promote.add_argument("email")
    promote.add_argument("role", type=str.upper, choices=ROLES)

    tier = sub.add_parser("set-tier", help="Change a user's subscription tier")
    tier.add_argument("email")
    tier.add_argument("tier", type=str.upper, choices=TIERS)

    migrate = sub.add_parser("migrate", help="Run an Alembic command against DATABASE_URL")
    migrate.add_argument("action", choices=sorted(COMMANDS))
    migrate.add_argument("revision", nargs="?", help="Target revision for upgrade/downgrade")

    sub.add_parser("seed", help="Insert reference foods, meal templates, toggles and the admin account")
    return parser


# PUBLIC_INTERFACE
def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments and run the selected command; returns the process exit code."""
    args = build_parser().parse_args(argv)
    configure_logging(get_app_settings().LOG_LEVEL)

    if args.command == "migrate":
        run_alembic(args.action, args.revision)
        return 0
    if args.command == "seed":
        asyncio.run(seed())
        return 0

    field, value = ("role", args.role) if args.command == "promote" else ("tier", args.tier)
    try:
        asyncio.run(set_user_field(args.email, field, value))
    except UserNotFound:
        logger.error("User not found: %s", args.email)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
