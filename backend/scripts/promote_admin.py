#!/usr/bin/env python3
"""
Set the role of an existing user, e.g. to bootstrap the first admin.

Registration always creates members, so the first admin has to be promoted
from the command line.

Usage:
    python -m scripts.promote_admin <user_id> [--role admin|member]
"""

import argparse
import asyncio

from taskhive.database import get_session_context, init_db
from taskhive.exceptions import NotFoundError
from taskhive.models import UserRole
from taskhive.services.users import promote_user


async def promote(user_id: str, role: UserRole) -> bool:
    await init_db()
    try:
        async with get_session_context() as session:
            user = await promote_user(session, user_id, role)
    except NotFoundError as exc:
        print(f"✗ {exc.message}")
        return False
    print(f"✓ {user.name} <{user.email}> is now {role.value}")
    return True


def main() -> None:
    parser = argparse.ArgumentParser(description="Change a user's role")
    parser.add_argument("user_id", help="Firebase uid of a registered user")
    parser.add_argument("--role", choices=[r.value for r in UserRole], default=UserRole.ADMIN.value)
    args = parser.parse_args()

    ok = asyncio.run(promote(args.user_id, UserRole(args.role)))
    raise SystemExit(0 if ok else 1)


if __name__ == "__main__":
    main()
