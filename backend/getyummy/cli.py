"""
Get Yummy Backend - Maintenance CLI
===================================

Operator commands that run against the configured database without the
HTTP server:

    getyummy set-admin USER_ID [--revoke]
    getyummy cleanup-tokens
    getyummy token-stats

`cleanup-tokens` is meant for cron; the process itself schedules nothing.
"""

import argparse
import asyncio
import logging
import sys
from typing import Awaitable, Callable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from getyummy.config import settings
from getyummy.database import async_session_factory, dispose_engine
from getyummy.exceptions import GetYummyError
from getyummy.main import setup_logging
from getyummy.services.auth_service import AuthService
from getyummy.services.mail_service import MailService
from getyummy.services.token_codec import TokenCodec
from getyummy.services.user_service import user_service

logger = logging.getLogger("getyummy.cli")


def _auth_service() -> AuthService:
    codec = TokenCodec(settings)
    return AuthService(settings, codec, MailService(settings))


async def _set_admin(db: AsyncSession, args: argparse.Namespace) -> str:
    user = await user_service.set_admin(db, args.user_id, is_admin=not args.revoke)
    state = "is now" if user.is_admin else "is no longer"
    return f"User {user.id} ({user.email}) {state} an administrator"


async def _cleanup_tokens(db: AsyncSession, args: argparse.Namespace) -> str:
    deleted = await _auth_service().cleanup_tokens(db)
    return f"Deleted {deleted} expired or revoked refresh tokens"


async def _token_stats(db: AsyncSession, args: argparse.Namespace) -> str:
    stats = await _auth_service().get_token_stats(db)
    return (
        f"total={stats.total} active={stats.active} "
        f"expired={stats.expired} revoked={stats.revoked}"
    )


async def _run(command: Callable[[AsyncSession, argparse.Namespace], Awaitable[str]],
               args: argparse.Namespace) -> str:
    try:
        async with async_session_factory() as session:
            try:
                output = await command(session, args)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
        return output
    finally:
        await dispose_engine()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="getyummy", description="Get Yummy maintenance commands")
    subcommands = parser.add_subparsers(dest="command", required=True)

    set_admin = subcommands.add_parser("set-admin", help="Grant (or revoke) administrator rights")
    set_admin.add_argument("user_id", type=int)
    set_admin.add_argument("--revoke", action="store_true", help="Remove administrator rights instead")
    set_admin.set_defaults(handler=_set_admin)

    cleanup = subcommands.add_parser("cleanup-tokens", help="Delete expired and revoked refresh tokens")
    cleanup.set_defaults(handler=_cleanup_tokens)

    stats = subcommands.add_parser("token-stats", help="Print refresh-token counts")
    stats.set_defaults(handler=_token_stats)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(settings.log_level)
    try:
        print(asyncio.run(_run(args.handler, args)))
    except GetYummyError as e:
        logger.error("%s", e.message)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
