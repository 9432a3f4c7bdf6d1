#!/usr/bin/env python3
"""
Create the first admin account together with its staff profile.

Usage:
  python -m scripts.create_admin --email admin@example.org --first-name Ada --last-name Admin
  python -m scripts.create_admin --email admin@example.org --password 'S3cret!pass'
"""

import argparse
import asyncio
import os
import sys
from typing import Optional

# Ensure the project root is on sys.path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from casehub.database import AsyncSessionLocal, engine
import casehub.models  # noqa: F401
from casehub.models.staff import Staff
from casehub.models.user import User
from casehub.services.auth_service import generate_temporary_password, hash_password


async def create_admin(
    email: str,
    first_name: str,
    last_name: str,
    password: Optional[str] = None,
) -> int:
    email = email.strip().lower()
    password = password or generate_temporary_password(16)

    async with AsyncSessionLocal() as db:
        existing = (
            await db.execute(select(User).where(User.email == email))
        ).scalar_one_or_none()
        if existing:
            print(f"User {email} already exists (role={existing.role}); nothing to do")
            return 1

        user = User(
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role="admin",
        )
        db.add(user)
        await db.flush()

        db.add(Staff(
            user_id=user.id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            role="admin",
        ))
        await db.commit()

    await engine.dispose()
    print("Admin user created")
    print(f"  email:    {email}")
    print(f"  password: {password}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the first admin user")
    parser.add_argument("--email", required=True, help="Login email")
    parser.add_argument("--first-name", default="System", help="First name")
    parser.add_argument("--last-name", default="Admin", help="Last name")
    parser.add_argument("--password", default=None, help="Password (generated when omitted)")
    args = parser.parse_args()

    sys.exit(asyncio.run(create_admin(
        email=args.email,
        first_name=args.first_name,
        last_name=args.last_name,
        password=args.password,
    )))
