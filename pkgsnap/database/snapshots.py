"""
Snapshot registry operations for pkgsnap.

Snapshots are inserted once and never updated. Lookups come in two steps,
mirroring how they are used: get_snapshot_by_name() returns the snapshot
header (name, provenance), load_complete() attaches its package references.
"""

import logging
import sqlite3
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from ..domain import Snapshot
from ..exit_codes import DuplicateName, NotFound
from .connection import Database, transaction

logger = logging.getLogger(__name__)


def snapshot_exists(db: Database, name: str) -> bool:
    db.execute("SELECT 1 FROM snapshots WHERE name = ?", (name,))
    return db.fetchone() is not None


def _get_snapshot_id(db: Database, name: str) -> Optional[int]:
    db.execute("SELECT id FROM snapshots WHERE name = ?", (name,))
    row = db.fetchone()
    return row['id'] if row else None


def add_snapshot(db: Database, snapshot: Snapshot) -> int:
    """
    Register a new snapshot with its package references and parents.

    Every referenced package must already be stored in the package table.

    Raises:
        DuplicateName: a snapshot with this name exists

    Returns:
        Row ID of the snapshot
    """
    if snapshot_exists(db, snapshot.name):
        raise DuplicateName(snapshot.name)

    try:
        with transaction(db):
            db.execute(
                """INSERT INTO snapshots (name, description, source_kind, created_at)
                   VALUES (?, ?, ?, ?)""",
                (snapshot.name, snapshot.description, snapshot.source_kind,
                 snapshot.created_at.isoformat())
            )
            snapshot_id = db.lastrowid or 0

            db.executemany(
                "INSERT INTO snapshot_packages (snapshot_id, package_key) VALUES (?, ?)",
                [(snapshot_id, key) for key in snapshot.package_refs]
            )
            db.executemany(
                "INSERT INTO snapshot_parents (snapshot_id, position, parent_name) VALUES (?, ?, ?)",
                [(snapshot_id, i, parent) for i, parent in enumerate(snapshot.parents)]
            )
    except sqlite3.IntegrityError as e:
        # Lost a race against another writer using the same name
        if 'snapshots.name' in str(e):
            raise DuplicateName(snapshot.name) from e
        raise

    logger.debug(f"Stored snapshot {snapshot.name} ({len(snapshot.package_refs)} packages)")
    return snapshot_id


def get_snapshot_by_name(db: Database, name: str) -> Snapshot:
    """
    Get a snapshot header by name (package references not loaded).

    Raises:
        NotFound: no snapshot with this name
    """
    db.execute("SELECT * FROM snapshots WHERE name = ?", (name,))
    row = db.fetchone()
    if row is None:
        raise NotFound(f"snapshot with name {name} not found")

    snapshot_id = row['id']
    db.execute(
        "SELECT parent_name FROM snapshot_parents WHERE snapshot_id = ? ORDER BY position",
        (snapshot_id,)
    )
    parents = tuple(r['parent_name'] for r in db.fetchall())

    return Snapshot(
        name=row['name'],
        description=row['description'] or '',
        source_kind=row['source_kind'],
        created_at=datetime.fromisoformat(row['created_at']),
        parents=parents,
    )


def get_snapshot_refs(db: Database, name: str) -> List[str]:
    """
    Get the sorted package keys of a snapshot.

    Raises:
        NotFound: no snapshot with this name
    """
    snapshot_id = _get_snapshot_id(db, name)
    if snapshot_id is None:
        raise NotFound(f"snapshot with name {name} not found")

    db.execute(
        "SELECT package_key FROM snapshot_packages WHERE snapshot_id = ? ORDER BY package_key",
        (snapshot_id,)
    )
    return [row['package_key'] for row in db.fetchall()]


def load_complete(db: Database, snapshot: Snapshot) -> Snapshot:
    """Return ``snapshot`` with its package references attached."""
    return replace(snapshot, package_refs=tuple(get_snapshot_refs(db, snapshot.name)))


def get_snapshot_count(db: Database) -> int:
    db.execute("SELECT COUNT(*) as count FROM snapshots")
    row = db.fetchone()
    return row['count'] if row else 0
