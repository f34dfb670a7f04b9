"""
Schema migrations for the stock-aid database.

Each ``NNNN_description.sql`` file in this directory is one migration,
applied once in version order and recorded in ``schema_migrations``.
"""

import re
import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

MIGRATIONS_DIR = Path(__file__).parent
MIGRATION_FILENAME = re.compile(r"^(\d+)_\w+\.sql$")


@dataclass(frozen=True)
class Migration:
    version: int
    path: Path

    @property
    def name(self) -> str:
        return self.path.name


def discover_migrations() -> list[Migration]:
    """Migration files in this package, lowest version first."""
    found = []
    for path in MIGRATIONS_DIR.iterdir():
        match = MIGRATION_FILENAME.match(path.name)
        if match:
            found.append(Migration(version=int(match.group(1)), path=path))
    return sorted(found, key=lambda m: m.version)


def _applied_versions(conn: sqlite3.Connection) -> set[int]:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version INTEGER PRIMARY KEY,
            applied_ts TEXT NOT NULL
        )
        """
    )
    conn.commit()
    return {row[0] for row in conn.execute("SELECT version FROM schema_migrations")}


def run_migrations(db_path: Path, verbose: bool = True) -> list[int]:
    """
    Apply every pending migration to ``db_path``. Safe to call repeatedly.

    Returns the versions applied by this call.
    """
    conn = sqlite3.connect(db_path)
    try:
        done = _applied_versions(conn)
        pending = [m for m in discover_migrations() if m.version not in done]

        for migration in pending:
            if verbose:
                print(f"  Applying migration {migration.version}: {migration.name}")
            # executescript commits first and runs the script outside a
            # transaction, which PRAGMA journal_mode requires.
            conn.executescript(migration.path.read_text())
            with conn:
                conn.execute(
                    "INSERT INTO schema_migrations (version, applied_ts) VALUES (?, ?)",
                    (migration.version, datetime.now(UTC).isoformat()),
                )

        if verbose and not pending:
            print("  Schema is up to date.")
    finally:
        conn.close()

    return [m.version for m in pending]


def get_current_version(db_path: Path) -> int:
    """Highest applied schema version, 0 for a missing or empty database."""
    if not db_path.exists():
        return 0

    conn = sqlite3.connect(db_path)
    try:
        row = conn.execute("SELECT MAX(version) FROM schema_migrations").fetchone()
    except sqlite3.OperationalError:
        return 0
    finally:
        conn.close()
    return row[0] or 0
