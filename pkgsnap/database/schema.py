"""
Database schema for pkgsnap.

This module defines the SQLite schema and handles migrations.
The schema is designed to:
- Store each package record once, shared by every snapshot referencing it
- Keep snapshots immutable: rows are only ever inserted
- Preserve the order of parent snapshots for provenance
"""

import logging
import sqlite3
from typing import List, Tuple

logger = logging.getLogger(__name__)

# Current schema version - increment when schema changes
# v1: Initial schema
CURRENT_VERSION = 1

# Schema definition as SQL statements
SCHEMA_V1 = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS _schema_info (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    description TEXT
);

-- Package repository (one row per concrete build)
CREATE TABLE IF NOT EXISTS packages (
    key TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    version TEXT NOT NULL,
    architecture TEXT NOT NULL,
    source TEXT,
    files_hash TEXT,
    relations TEXT,  -- JSON object: depends, pre_depends, recommends, ...
    imported_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Snapshots (immutable once inserted)
CREATE TABLE IF NOT EXISTS snapshots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT UNIQUE NOT NULL,
    description TEXT,
    source_kind TEXT NOT NULL DEFAULT 'snapshot',  -- 'snapshot', 'packages'
    created_at TIMESTAMP NOT NULL
);

-- Package references of each snapshot
CREATE TABLE IF NOT EXISTS snapshot_packages (
    snapshot_id INTEGER NOT NULL,
    package_key TEXT NOT NULL,
    PRIMARY KEY (snapshot_id, package_key),
    FOREIGN KEY (snapshot_id) REFERENCES snapshots(id) ON DELETE CASCADE,
    FOREIGN KEY (package_key) REFERENCES packages(key)
);

-- Ordered provenance
CREATE TABLE IF NOT EXISTS snapshot_parents (
    snapshot_id INTEGER NOT NULL,
    position INTEGER NOT NULL,
    parent_name TEXT NOT NULL,
    PRIMARY KEY (snapshot_id, position),
    FOREIGN KEY (snapshot_id) REFERENCES snapshots(id) ON DELETE CASCADE
);

-- Indexes for fast lookups
CREATE INDEX IF NOT EXISTS idx_packages_name ON packages(name);
CREATE INDEX IF NOT EXISTS idx_packages_name_arch ON packages(name, architecture);
CREATE INDEX IF NOT EXISTS idx_snapshot_packages_key ON snapshot_packages(package_key);
"""


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Get current schema version from database."""
    try:
        cursor = conn.execute(
            "SELECT MAX(version) FROM _schema_info"
        )
        result = cursor.fetchone()
        return result[0] if result[0] is not None else 0
    except sqlite3.OperationalError:
        # Table doesn't exist yet
        return 0


def apply_schema(conn: sqlite3.Connection, version: int = CURRENT_VERSION) -> None:
    """
    Apply schema to database.

    Snapshots are the ground truth, so tables are never dropped: migrations
    run in order on top of whatever version is present.
    """
    current = get_schema_version(conn)

    for migration_version, description, sql in get_migrations():
        if current < migration_version <= version:
            logger.info(f"Applying schema v{migration_version}: {description}")
            conn.executescript(sql)
            conn.execute(
                "INSERT OR REPLACE INTO _schema_info (version, description) VALUES (?, ?)",
                (migration_version, description)
            )

    conn.commit()


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Ensure database has current schema, migrating if necessary."""
    current = get_schema_version(conn)

    if current < CURRENT_VERSION:
        apply_schema(conn, CURRENT_VERSION)


def get_migrations() -> List[Tuple[int, str, str]]:
    """
    Get list of migrations.

    Returns:
        List of (version, description, sql) tuples
    """
    return [
        (1, "Initial schema", SCHEMA_V1),
    ]
