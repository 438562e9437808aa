#!/usr/bin/env python
"""
User Management CLI

Command-line tool for staff accounts. The first administrator has to be
created here, since the staff endpoint itself requires an administrator.

Usage:
    python manage_users.py create-admin <full_name> <phone> <password> [email]
    python manage_users.py create-health-worker <full_name> <phone> <password> [email]
    python manage_users.py list-users [role]        # role: mother, health_worker, admin
    python manage_users.py deactivate <phone>       # Block a user from logging in
"""
import asyncio
import sys
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import select

from app.config.config import settings
from app.db.session import DatabaseManager
from app.models.user_model import User
from app.repositories.user_repo import UserRepository
from app.schemas.user_schemas import StaffCreateSchema, UserRole
from app.services.user_service import UserService
from fastapi import HTTPException


db_manager = DatabaseManager(settings.DATABASE_URL, echo=settings.DB_ECHO)


async def create_staff_user(
    role: UserRole,
    full_name: str,
    phone: str,
    password: str,
    email: Optional[str] = None,
):
    """Create a health worker or administrator."""
    try:
        data = StaffCreateSchema(
            full_name=full_name,
            phone=phone,
            password=password,
            email=email,
            role=role,
        )
    except ValidationError as e:
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"])
            print(f"Invalid {field}: {error['msg']}")
        return

    async with db_manager.session() as db:
        try:
            user = await UserService(db).create_staff(data)
            print(f"{role.value} '{user.full_name}' created with id {user.id}")
        except HTTPException as e:
            print(f"Error creating user: {e.detail}")


async def list_users(role: Optional[str] = None):
    """List users, optionally filtered by role."""
    async with db_manager.session() as db:
        query = select(User).order_by(User.created_at.desc())
        if role:
            query = query.where(User.role == role)
        result = await db.execute(query)
        users = result.scalars().all()

        if not users:
            print("No users found.")
            return

        print(f"\n{'Name':<30} {'Phone':<18} {'Role':<15} {'Active':<6}")
        print("-" * 72)

        for user in users:
            print(
                f"{user.full_name:<30} {user.phone:<18} {user.role:<15} "
                f"{'yes' if user.is_active else 'no':<6}"
            )


async def deactivate_user(phone: str):
    async with db_manager.session() as db:
        repo = UserRepository(db)
        user = await repo.get_user_by_phone(phone)
        if user is None:
            print(f"User with phone '{phone}' not found.")
            return

        user.is_active = False
        await repo.update_user(user)
        print(f"User '{user.full_name}' deactivated.")


def print_usage():
    """Print usage information."""
    print(__doc__)


async def main():
    """Main CLI entry point."""
    if len(sys.argv) < 2:
        print_usage()
        return

    command = sys.argv[1].lower()

    try:
        if command in ("create-admin", "create-health-worker"):
            if len(sys.argv) < 5:
                print("Error: Full name, phone and password required")
                print(f"Usage: python manage_users.py {command} <full_name> <phone> <password> [email]")
                return
            role = UserRole.ADMIN if command == "create-admin" else UserRole.HEALTH_WORKER
            email = sys.argv[5] if len(sys.argv) > 5 else None
            await create_staff_user(role, sys.argv[2], sys.argv[3], sys.argv[4], email)

        elif command == "list-users":
            role = sys.argv[2] if len(sys.argv) > 2 else None
            if role is not None and role not in {r.value for r in UserRole}:
                print(f"Unknown role: {role}")
                return
            await list_users(role)

        elif command == "deactivate":
            if len(sys.argv) < 3:
                print("Error: Phone number required")
                print("Usage: python manage_users.py deactivate <phone>")
                return
            await deactivate_user(sys.argv[2])

        else:
            print(f"Unknown command: {command}")
            print_usage()

    finally:
        await db_manager.dispose()


if __name__ == "__main__":
    asyncio.run(main())
