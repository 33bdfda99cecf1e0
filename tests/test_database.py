"""
Tests for the database layer.

Uses temporary SQLite files for isolation.
"""

import sqlite3
from pathlib import Path
from unittest.mock import patch

import pytest

from pkgsnap.database import (
    Database,
    CURRENT_VERSION,
    add_snapshot,
    get_db_path,
    get_package_by_key,
    get_package_count,
    get_packages_by_keys,
    get_snapshot_by_name,
    get_snapshot_count,
    get_snapshot_refs,
    load_complete,
    snapshot_exists,
    transaction,
    upsert_package,
    upsert_packages,
)
from pkgsnap.database.schema import get_schema_version
from pkgsnap.domain import Package, Snapshot
from pkgsnap.exit_codes import DuplicateName, NotFound


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / 'test.db'


@pytest.fixture
def db(db_path):
    with Database(db_path=db_path) as database:
        yield database


class TestConnection:
    """Tests for connection management and schema."""

    def test_schema_created(self, db):
        assert get_schema_version(db.conn) == CURRENT_VERSION

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / 'nested' / 'dir' / 'test.db'
        with Database(db_path=path):
            pass
        assert path.exists()

    def test_read_only_rejects_writes(self, db_path):
        with Database(db_path=db_path):
            pass
        with Database(db_path=db_path, read_only=True) as db:
            with pytest.raises(sqlite3.OperationalError):
                db.execute("INSERT INTO snapshots (name, created_at) VALUES ('x', '2026-01-01')")

    def test_rollback_on_exception(self, db_path):
        with pytest.raises(RuntimeError):
            with Database(db_path=db_path) as db:
                upsert_package(db, Package('a', '1', 'amd64'))
                raise RuntimeError("boom")

        with Database(db_path=db_path) as db:
            assert get_package_count(db) == 0

    def test_transaction_rolls_back(self, db):
        with pytest.raises(ValueError):
            with transaction(db):
                upsert_package(db, Package('a', '1', 'amd64'))
                raise ValueError("boom")
        assert get_package_count(db) == 0

    def test_not_connected(self):
        with pytest.raises(RuntimeError):
            Database().conn

    def test_db_path_precedence(self, tmp_path):
        config = {'database': {'path': str(tmp_path / 'from-config.db')}}
        with patch.dict('os.environ', {'PKGSNAP_DB': str(tmp_path / 'from-env.db')}):
            assert get_db_path(config) == tmp_path / 'from-env.db'
        with patch.dict('os.environ', {}, clear=True):
            assert get_db_path(config) == tmp_path / 'from-config.db'
            assert get_db_path({}).name == 'snapshots.db'


class TestPackages:
    """Tests for package repository functions."""

    def test_upsert_and_get(self, db):
        package = Package('nginx', '1.22', 'amd64', source='nginx-src', depends=('libc6',),
                          provides=('httpd',), files_hash='abc')
        key = upsert_package(db, package)

        loaded = get_package_by_key(db, key)
        assert loaded == package
        assert loaded.source == 'nginx-src'
        assert loaded.depends == ('libc6',)
        assert loaded.provides == ('httpd',)
        assert loaded.recommends == ()

    def test_upsert_is_idempotent(self, db):
        package = Package('a', '1', 'amd64')
        upsert_packages(db, [package, package])
        upsert_package(db, package)
        assert get_package_count(db) == 1

    def test_get_missing_key(self, db):
        assert get_package_by_key(db, 'Pamd64 nope 1') is None

    def test_get_by_keys_keeps_order_and_skips_unknown(self, db):
        packages = [Package(f'p{i}', '1', 'amd64') for i in range(3)]
        upsert_packages(db, packages)

        keys = [packages[2].key, 'Pamd64 unknown 1', packages[0].key]
        assert get_packages_by_keys(db, keys) == [packages[2], packages[0]]

    def test_get_by_keys_batches(self, db):
        packages = [Package(f'p{i:04d}', '1', 'amd64') for i in range(1234)]
        upsert_packages(db, packages)

        assert len(get_packages_by_keys(db, [p.key for p in packages])) == 1234


class TestSnapshots:
    """Tests for the snapshot registry."""

    def _store(self, db, name, packages=(), parents=()):
        upsert_packages(db, packages)
        snapshot = Snapshot(
            name=name,
            package_refs=tuple(sorted(p.key for p in packages)),
            parents=tuple(parents),
            description=f"{name} description",
        )
        add_snapshot(db, snapshot)
        return snapshot

    def test_add_and_get(self, db):
        stored = self._store(db, 'snap', [Package('a', '1', 'amd64')], parents=['p1', 'p2'])

        header = get_snapshot_by_name(db, 'snap')
        assert header.name == 'snap'
        assert header.description == 'snap description'
        assert header.parents == ('p1', 'p2')
        assert header.package_refs == ()
        assert header.created_at == stored.created_at

        complete = load_complete(db, header)
        assert complete.package_refs == stored.package_refs

    def test_duplicate_name(self, db):
        self._store(db, 'snap')
        with pytest.raises(DuplicateName) as exc_info:
            self._store(db, 'snap')
        assert 'snap' in str(exc_info.value)
        assert get_snapshot_count(db) == 1

    def test_not_found(self, db):
        with pytest.raises(NotFound, match="snapshot with name nope not found"):
            get_snapshot_by_name(db, 'nope')
        with pytest.raises(NotFound):
            get_snapshot_refs(db, 'nope')

    def test_snapshot_exists(self, db):
        assert not snapshot_exists(db, 'snap')
        self._store(db, 'snap')
        assert snapshot_exists(db, 'snap')

    def test_refs_sorted(self, db):
        packages = [Package('z', '1', 'amd64'), Package('a', '1', 'amd64'), Package('m', '1', 'i386')]
        self._store(db, 'snap', packages)
        assert get_snapshot_refs(db, 'snap') == sorted(p.key for p in packages)

    def test_snapshots_share_package_rows(self, db):
        shared = Package('a', '1', 'amd64')
        self._store(db, 'one', [shared])
        self._store(db, 'two', [shared, Package('b', '1', 'amd64')])

        assert get_package_count(db) == 2
        assert get_snapshot_refs(db, 'one') == [shared.key]
