"""
Snapshot service for pkgsnap.

Loads snapshots into package sets, assembles new snapshots from package
sets, imports Debian ``Packages`` index files and verifies dependencies of
whole snapshots.
"""

import gzip
import logging
import lzma
from pathlib import Path
from typing import Dict, Any, Iterable, List, Optional, Sequence

from debian.deb822 import Packages

from ..config import load_config, get_architectures
from ..database import (
    Database,
    add_snapshot,
    get_packages_by_keys,
    get_snapshot_by_name,
    load_complete,
    snapshot_exists,
    upsert_packages,
)
from ..domain import DependencyOptions, Package, PackageSet, Snapshot
from ..domain.snapshot import SOURCE_KIND_PACKAGES
from ..exit_codes import DuplicateName, IndexReadError, NoArchitectures
from .dependency_verifier import DependencyVerifier, VerificationResult

logger = logging.getLogger(__name__)


def _open_index(path: Path):
    """
    Open a Packages index, transparently decompressing .gz/.xz.

    Bytes that are not UTF-8 (old Maintainer or Description fields) are
    replaced instead of aborting the import.
    """
    if path.suffix == '.gz':
        return gzip.open(path, 'rt', encoding='utf-8', errors='replace')
    if path.suffix == '.xz':
        return lzma.open(path, 'rt', encoding='utf-8', errors='replace')
    return open(path, 'r', encoding='utf-8', errors='replace')


def read_packages_file(path: Path) -> List[Package]:
    """
    Parse a Debian ``Packages`` index into Package objects.

    Stanzas without Package/Version/Architecture, or with a version that
    does not follow Debian syntax, are skipped with a warning.

    Raises:
        IndexReadError: the file cannot be opened or decompressed
    """
    packages = []
    try:
        with _open_index(Path(path)) as f:
            for paragraph in Packages.iter_paragraphs(f, use_apt_pkg=False):
                try:
                    packages.append(Package.from_paragraph(paragraph))
                except ValueError as e:
                    logger.warning(f"Skipping stanza in {path}: {e}")
    except (OSError, EOFError, lzma.LZMAError, UnicodeDecodeError) as e:
        # gzip.BadGzipFile is an OSError
        raise IndexReadError(str(path), str(e) or e.__class__.__name__) from e
    return packages


class SnapshotService:
    """
    Service for creating and materializing snapshots.

    Example:
        service = SnapshotService(config)
        with Database(config=config) as db:
            snapshot = service.load(db, "wheezy-main")
            packages = service.load_package_set(db, snapshot)
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize SnapshotService.

        Args:
            config: Configuration dict (loads default if None)
        """
        self.config = config or load_config()

    def load(self, db: Database, name: str) -> Snapshot:
        """Look a snapshot up by name with its package references (NotFound if absent)."""
        return load_complete(db, get_snapshot_by_name(db, name))

    def load_package_set(self, db: Database, snapshot: Snapshot) -> PackageSet:
        """Resolve the package references of a complete snapshot into a PackageSet."""
        packages = get_packages_by_keys(db, snapshot.package_refs)
        if len(packages) != len(snapshot.package_refs):
            logger.warning(
                f"Snapshot {snapshot.name} references "
                f"{len(snapshot.package_refs) - len(packages)} unknown package(s)"
            )
        return PackageSet.from_packages(packages)

    def assemble(
        self,
        db: Database,
        name: str,
        parents: Sequence[Snapshot],
        packages: PackageSet,
        description: str,
        source_kind: Optional[str] = None,
    ) -> Snapshot:
        """
        Freeze ``packages`` into a new registered snapshot.

        Raises:
            DuplicateName: ``name`` is already taken
        """
        if snapshot_exists(db, name):
            raise DuplicateName(name)

        snapshot = Snapshot.from_package_set(name, parents, packages, description, source_kind)
        upsert_packages(db, packages)
        add_snapshot(db, snapshot)
        logger.info(f"Snapshot {name} created with {len(snapshot)} packages")
        return snapshot

    def create_empty(self, db: Database, name: str) -> Snapshot:
        return self.assemble(db, name, [], PackageSet(), "Created as empty")

    def create_from_packages_files(
        self,
        db: Database,
        name: str,
        paths: Iterable[Path],
    ) -> Snapshot:
        """Import ``Packages`` index files and snapshot their contents."""
        paths = [Path(p) for p in paths]
        if snapshot_exists(db, name):
            raise DuplicateName(name)

        packages = PackageSet()
        for path in paths:
            for package in read_packages_file(path):
                packages.add(package)

        description = "Imported from packages file(s) " + ", ".join(f"'{p.name}'" for p in paths)
        return self.assemble(db, name, [], packages, description, source_kind=SOURCE_KIND_PACKAGES)

    def verify(
        self,
        db: Database,
        name: str,
        sources: Sequence[str] = (),
        options: Optional[DependencyOptions] = None,
        architectures: Optional[List[str]] = None,
    ) -> VerificationResult:
        """
        Find dependencies of a snapshot that are not satisfied.

        The snapshot itself plus every snapshot in ``sources`` form the
        context the dependencies are searched in.

        Raises:
            NotFound: a named snapshot does not exist
            NoArchitectures: no architecture given, configured or present
        """
        snapshot = self.load(db, name)
        packages = self.load_package_set(db, snapshot)

        context = PackageSet(packages)
        for source_name in sources:
            for package in self.load_package_set(db, self.load(db, source_name)):
                context.add(package)

        architectures = architectures or get_architectures(self.config) or packages.architectures(True)
        if not architectures:
            raise NoArchitectures()

        verifier = DependencyVerifier(options or DependencyOptions.from_config(self.config))
        return verifier.verify(packages, sorted(architectures), context)
