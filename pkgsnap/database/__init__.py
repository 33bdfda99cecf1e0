"""
Database module for pkgsnap.

Provides SQLite-based persistence for snapshots and the packages they
reference.

Key components:
- connection: Database connection management
- schema: Table definitions and schema versioning
- packages: Package repository (package records by key)
- snapshots: Snapshot registry (immutable named snapshots)
"""

from .connection import (
    get_connection,
    get_db_path,
    Database,
    transaction,
)
from .schema import CURRENT_VERSION, ensure_schema
from .packages import (
    upsert_package,
    upsert_packages,
    get_package_by_key,
    get_packages_by_keys,
    get_package_count,
    record_to_domain,
)
from .snapshots import (
    add_snapshot,
    get_snapshot_by_name,
    get_snapshot_refs,
    get_snapshot_count,
    load_complete,
    snapshot_exists,
)

__all__ = [
    # Connection
    'get_connection',
    'get_db_path',
    'Database',
    'transaction',
    # Schema
    'ensure_schema',
    'CURRENT_VERSION',
    # Packages
    'upsert_package',
    'upsert_packages',
    'get_package_by_key',
    'get_packages_by_keys',
    'get_package_count',
    'record_to_domain',
    # Snapshots
    'add_snapshot',
    'get_snapshot_by_name',
    'get_snapshot_refs',
    'get_snapshot_count',
    'load_complete',
    'snapshot_exists',
]
