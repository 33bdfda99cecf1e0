"""
Package repository operations for pkgsnap.

Maps Package domain objects to rows of the ``packages`` table. Package rows
are immutable: a key identifies one build, so storing a package twice is a
no-op.
"""

import json
from typing import Dict, Any, Iterable, List, Optional

from ..domain import Package
from .connection import Database

_RELATION_ATTRS = ('depends', 'pre_depends', 'recommends', 'suggests', 'provides', 'conflicts')

# SQLite limits the number of bound parameters per statement
_BATCH_SIZE = 500


def _package_to_record(package: Package) -> Dict[str, Any]:
    relations = {
        attr: list(getattr(package, attr))
        for attr in _RELATION_ATTRS
        if getattr(package, attr)
    }
    return {
        'key': package.key,
        'name': package.name,
        'version': package.version,
        'architecture': package.architecture,
        'source': package.source,
        'files_hash': package.files_hash or None,
        'relations': json.dumps(relations) if relations else None,
    }


def record_to_domain(row) -> Package:
    """Convert a ``packages`` row to a Package."""
    data = dict(row)
    relations = json.loads(data['relations']) if data.get('relations') else {}
    return Package.from_dict({
        'name': data['name'],
        'version': data['version'],
        'architecture': data['architecture'],
        'source': data.get('source'),
        'files_hash': data.get('files_hash') or '',
        **relations,
    })


def upsert_package(db: Database, package: Package) -> str:
    """
    Store a package if its key is new.

    Returns:
        The package key
    """
    upsert_packages(db, [package])
    return package.key


def upsert_packages(db: Database, packages: Iterable[Package]) -> int:
    """
    Store many packages, skipping keys already present.

    Returns:
        Number of packages handed in
    """
    records = [_package_to_record(p) for p in packages]
    if not records:
        return 0

    db.executemany(
        """INSERT OR IGNORE INTO packages
           (key, name, version, architecture, source, files_hash, relations)
           VALUES (:key, :name, :version, :architecture, :source, :files_hash, :relations)""",
        records
    )
    return len(records)


def get_package_by_key(db: Database, key: str) -> Optional[Package]:
    """Get a single package by key, or None."""
    db.execute("SELECT * FROM packages WHERE key = ?", (key,))
    row = db.fetchone()
    return record_to_domain(row) if row else None


def get_packages_by_keys(db: Database, keys: Iterable[str]) -> List[Package]:
    """
    Resolve package keys into Package records.

    Order follows ``keys``; unknown keys are skipped.
    """
    keys = list(keys)
    found: Dict[str, Package] = {}

    for start in range(0, len(keys), _BATCH_SIZE):
        batch = keys[start:start + _BATCH_SIZE]
        placeholders = ', '.join('?' for _ in batch)
        db.execute(f"SELECT * FROM packages WHERE key IN ({placeholders})", tuple(batch))
        for row in db.fetchall():
            found[row['key']] = record_to_domain(row)

    return [found[key] for key in keys if key in found]


def get_package_count(db: Database) -> int:
    """Get total number of stored packages."""
    db.execute("SELECT COUNT(*) as count FROM packages")
    row = db.fetchone()
    return row['count'] if row else 0
