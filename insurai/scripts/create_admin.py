"""
create_admin.py — Create or promote the admin account.

Registration always creates role "user"; this script is the only way to get
an admin. Re-running it for an existing email resets the password and
promotes the account.

Usage:
    python -m insurai.scripts.create_admin --email admin@insurai.com \
        --password 'Admin@123' --full-name "InsurAI Admin" --state-code DU
"""
import argparse
import asyncio
import logging
import sys
from typing import Optional

from sqlalchemy import select

from insurai.auth.schemas import EMAIL_PATTERN, PASSWORD_PATTERN, PASSWORD_RULE
from insurai.auth.security import hash_password
from insurai.config import settings
from insurai.database import Database
from insurai.models.state import StateORM
from insurai.store import create_user, get_user_by_email

logger = logging.getLogger(__name__)


async def create_admin(
    database: Database,
    email: str,
    password: str,
    full_name: str,
    state_code: Optional[str] = None,
) -> int:
    """Insert or promote the admin user. Returns the user id."""
    async with database.session() as session:
        state_id = None
        if state_code:
            state = (
                await session.execute(
                    select(StateORM).where(StateORM.state_code == state_code.upper())
                )
            ).scalar_one_or_none()
            if state is None:
                raise ValueError(f"Unknown state code: {state_code}")
            state_id = state.id

        user = await get_user_by_email(session, email)
        if user is None:
            user = await create_user(
                session,
                email=email,
                password_hash=hash_password(password),
                full_name=full_name,
                state_id=state_id,
                role="admin",
            )
        else:
            user.password_hash = hash_password(password)
            user.role = "admin"
            user.full_name = full_name
            if state_id is not None:
                user.state_id = state_id
            logger.info("Promoted existing user user_id=%s to admin", user.id)
        await session.commit()
        return user.id


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Create or promote the InsurAI admin account")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--full-name", default="InsurAI Admin")
    parser.add_argument("--state-code", default=None, help="AD, DU, SH, AJ, UAQ, RAK or FU")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s — %(message)s")

    if not EMAIL_PATTERN.match(args.email):
        parser.error("Invalid email format")
    if not PASSWORD_PATTERN.match(args.password):
        parser.error(PASSWORD_RULE)

    async def _run() -> int:
        database = Database(settings.database_url)
        try:
            return await create_admin(
                database, args.email, args.password, args.full_name, args.state_code
            )
        finally:
            await database.close()

    try:
        user_id = asyncio.run(_run())
    except ValueError as exc:
        logger.error("%s", exc)
        return 1
    logger.info("Admin account ready user_id=%s", user_id)
    return 0


if __name__ == "__main__":
    sys.exit(main())
