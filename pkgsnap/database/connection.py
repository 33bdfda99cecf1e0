"""
Database connection management for pkgsnap.

Snapshots and the package records they reference live in a single SQLite
file. Uses WAL mode so read-only commands can run next to a writer.
"""

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Generator

from .schema import ensure_schema


def get_db_path(config: Optional[dict] = None) -> Path:
    """
    Get the database file path.

    Checks in order:
    1. PKGSNAP_DB environment variable
    2. config['database']['path'] if provided
    3. Default: ~/.pkgsnap/snapshots.db
    """
    if 'PKGSNAP_DB' in os.environ:
        return Path(os.environ['PKGSNAP_DB'])

    if config and 'database' in config and config['database'].get('path'):
        return Path(config['database']['path']).expanduser()

    return Path.home() / '.pkgsnap' / 'snapshots.db'


def get_connection(
    db_path: Optional[Path] = None,
    config: Optional[dict] = None,
    read_only: bool = False
) -> sqlite3.Connection:
    """
    Open a connection, creating the file and schema on first use.

    Args:
        db_path: Optional explicit path to database
        config: Optional configuration dictionary
        read_only: If True, open in read-only mode

    Returns:
        SQLite connection with dict-like rows
    """
    if db_path is None:
        db_path = get_db_path(config)

    if read_only:
        conn = sqlite3.connect(f"file:{db_path}?mode=ro", uri=True)
    else:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(db_path))

    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")

    if not read_only:
        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA synchronous = NORMAL")
        ensure_schema(conn)

    return conn


class Database:
    """
    Database context manager for pkgsnap.

    Commits when the block exits cleanly, discards pending writes otherwise.

    Usage:
        with Database(config=config) as db:
            snapshot = get_snapshot_by_name(db, "wheezy-main")

        # Read-only mode
        with Database(config=config, read_only=True) as db:
            ...
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        config: Optional[dict] = None,
        read_only: bool = False
    ):
        self.db_path = db_path
        self.config = config
        self.read_only = read_only
        self._conn: Optional[sqlite3.Connection] = None
        self._cursor: Optional[sqlite3.Cursor] = None

    def __enter__(self) -> 'Database':
        self._conn = get_connection(
            db_path=self.db_path,
            config=self.config,
            read_only=self.read_only
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._cursor:
            self._cursor.close()
        if self._conn:
            if exc_type is None and not self.read_only:
                self._conn.commit()
            else:
                self._conn.rollback()
            self._conn.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database not connected. Use 'with Database() as db:'")
        return self._conn

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        self._cursor = self.conn.execute(sql, params)
        return self._cursor

    def executemany(self, sql: str, params_seq) -> sqlite3.Cursor:
        self._cursor = self.conn.executemany(sql, params_seq)
        return self._cursor

    def fetchone(self) -> Optional[sqlite3.Row]:
        if self._cursor is None:
            return None
        return self._cursor.fetchone()

    def fetchall(self) -> list:
        if self._cursor is None:
            return []
        return self._cursor.fetchall()

    def commit(self) -> None:
        self.conn.commit()

    def rollback(self) -> None:
        self.conn.rollback()

    @property
    def lastrowid(self) -> Optional[int]:
        if self._cursor is None:
            return None
        return self._cursor.lastrowid


@contextmanager
def transaction(db: Database) -> Generator[None, None, None]:
    """
    Group writes so a snapshot is stored completely or not at all.

    Usage:
        with Database() as db:
            with transaction(db):
                db.execute("INSERT INTO snapshots ...")
                db.executemany("INSERT INTO snapshot_packages ...", rows)
    """
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise
