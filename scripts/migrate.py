"""Script to run database migrations."""

import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

ALEMBIC_DIR = Path(__file__).resolve().parent.parent / "alembic"


def get_config() -> Config:
    """Build the Alembic configuration; the database URL comes from app settings."""
    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(ALEMBIC_DIR))
    return alembic_cfg


def run_migrations(revision: str = "head") -> None:
    """Upgrade the database to a revision."""
    try:
        print(f"Upgrading database to {revision}...")
        command.upgrade(get_config(), revision)
        print("✓ Migrations completed successfully!")
    except Exception as e:
        print(f"✗ Migration failed: {e}", file=sys.stderr)
        sys.exit(1)


def rollback(revision: str) -> None:
    """Downgrade the database to a revision."""
    try:
        print(f"Downgrading database to {revision}...")
        command.downgrade(get_config(), revision)
        print("✓ Rollback completed successfully!")
    except Exception as e:
        print(f"✗ Rollback failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    if len(sys.argv) > 2 and sys.argv[1] == "downgrade":
        rollback(sys.argv[2])
    elif len(sys.argv) > 1:
        print("Usage: python scripts/migrate.py [downgrade <revision>]")
    else:
        run_migrations()
