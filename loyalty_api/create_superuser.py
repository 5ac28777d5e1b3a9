"""
Superuser Bootstrap
-------------------
Create a verified superuser account from the command line.

    python -m loyalty_api.create_superuser <utorid> <email> <password>

Used once per deployment to create the first account that can promote others.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from loguru import logger

from loyalty_api.auth.roles import Role
from loyalty_api.core.database_connection import db_manager
from loyalty_api.core.logger_setup import configure_logger
from loyalty_api.psql_db_services.users_service import UsersService
from loyalty_api.utils.password_hashing import PasswordHasher
from loyalty_api.validation.validators import is_valid_uoft_email, is_valid_utorid


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m loyalty_api.create_superuser",
        description="Create a verified superuser account.",
    )
    parser.add_argument("utorid", help="UTORid of the new superuser")
    parser.add_argument("email", help="University of Toronto email address")
    parser.add_argument("password", help="Initial password")
    return parser


async def create_superuser(
    utorid: str, email: str, password: str, users_service: Optional[UsersService] = None
) -> dict:
    """
    Insert a verified superuser.

    Raises:
        ValueError: If the UTORid or email is already registered
    """
    users_service = users_service or UsersService(db_manager)
    user = await users_service.create_user(
        utorid=utorid,
        email=email,
        name=utorid,
        password_hash=PasswordHasher.hash_password(password),
        user_role=Role.SUPERUSER.value,
        is_verified=True,
    )
    logger.info(f"Superuser {utorid} created with id {user['user_id']}")
    return user


async def _run(args: argparse.Namespace) -> int:
    await db_manager.initialize()
    try:
        await create_superuser(args.utorid, args.email, args.password)
    except ValueError as e:
        logger.error(f"Could not create superuser: {e}")
        return 1
    finally:
        await db_manager.close()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logger()

    if not is_valid_utorid(args.utorid):
        logger.error("UTORid must be 7-8 alphanumeric characters")
        return 2
    if not is_valid_uoft_email(args.email):
        logger.error("Email must be a valid University of Toronto address")
        return 2

    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
