#!/usr/bin/env python3
"""Run Alembic migrations for the HomeLink API."""

from __future__ import annotations

import argparse
import subprocess
from pathlib import Path


def run_migration(revision: str = "head") -> None:
    """Upgrade the database to `revision` (default: head)."""
    api_dir = Path(__file__).resolve().parents[1] / "apps" / "api"
    print(f"Running Alembic migrations in {api_dir} (target: {revision}) ...")

    subprocess.run(
        ["alembic", "-c", "alembic.ini", "upgrade", revision],
        cwd=api_dir,
        check=True,
    )

    print("Database migrations applied successfully.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Apply HomeLink database migrations.")
    parser.add_argument("revision", nargs="?", default="head", help="Target revision (default: head).")
    run_migration(parser.parse_args().revision)
