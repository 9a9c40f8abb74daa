"""
Apply the Alembic migrations to DATABASE_URL.

    python backend/migrate.py                  # upgrade to latest
    python backend/migrate.py downgrade -1     # step back one revision
    python backend/migrate.py current          # show the applied revision
"""
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def build_config() -> Config:
    config = Config(str(PROJECT_ROOT / "alembic.ini"))
    # Absolute so the runner works from any working directory
    config.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    return config


def run_migrations(args=None):
    args = list(args or ["upgrade", "head"])
    action, target = args[0], (args[1] if len(args) > 1 else None)
    config = build_config()

    if action == "upgrade":
        command.upgrade(config, target or "head")
    elif action == "downgrade":
        command.downgrade(config, target or "-1")
    elif action == "current":
        command.current(config)
    elif action == "history":
        command.history(config)
    else:
        raise SystemExit(f"Unknown migration command: {action}")


if __name__ == "__main__":
    run_migrations(sys.argv[1:])
