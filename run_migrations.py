#!/usr/bin/env python
"""
Migration management script.

Usage:
    python run_migrations.py create "migration message"  # Autogenerate a migration
    python run_migrations.py upgrade [revision]           # Apply migrations (default: head)
    python run_migrations.py downgrade [revision]         # Roll back (default: -1)
    python run_migrations.py stamp [revision]             # Mark a revision as applied
    python run_migrations.py current                      # Show current revision
    python run_migrations.py history                      # Show revision history
"""
from alembic.config import Config
from alembic import command
import os
import sys


# DATABASE_URL is injected by migrations/env.py
alembic_cfg = Config(os.path.join(os.path.dirname(__file__), "alembic.ini"))


def _run(label: str, fn, *args, **kwargs):
    try:
        fn(alembic_cfg, *args, **kwargs)
    except Exception as e:
        print(f"Error during {label}: {e}")
        sys.exit(1)


def create_migration(message: str):
    _run("revision", command.revision, message=message, autogenerate=True)
    print(f"Migration '{message}' created. Run 'python run_migrations.py upgrade' to apply it")


def upgrade_migrations(revision: str = "head"):
    print(f"Upgrading database to: {revision}")
    _run("upgrade", command.upgrade, revision)
    print("Database upgraded successfully")


def downgrade_migrations(revision: str = "-1"):
    print(f"Downgrading database to: {revision}")
    _run("downgrade", command.downgrade, revision)
    print("Database downgraded successfully")


def stamp_revision(revision: str = "head"):
    _run("stamp", command.stamp, revision)
    print(f"Database stamped at: {revision}")


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    action = sys.argv[1].lower()
    arg = sys.argv[2] if len(sys.argv) > 2 else None

    if action == "create":
        if arg is None:
            print("Error: Migration message required")
            sys.exit(1)
        create_migration(arg)
    elif action == "upgrade":
        upgrade_migrations(arg or "head")
    elif action == "downgrade":
        downgrade_migrations(arg or "-1")
    elif action == "stamp":
        stamp_revision(arg or "head")
    elif action == "current":
        _run("current", command.current)
    elif action == "history":
        _run("history", command.history)
    else:
        print(f"Unknown action: {action}")
        print(__doc__)
        sys.exit(1)


if __name__ == "__main__":
    main()
