"""
Snapshot domain object for pkgsnap.

A Snapshot is an immutable, named set of package references plus provenance
(parent snapshots, description, creation time). Snapshots are never changed
in place: operations such as pull produce a new Snapshot.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, Optional, Sequence, Tuple

from .package_set import PackageSet

SOURCE_KIND_SNAPSHOT = "snapshot"
SOURCE_KIND_PACKAGES = "packages"


@dataclass(frozen=True)
class Snapshot:
    """
    Immutable snapshot of package references.

    Attributes:
        name: Globally unique snapshot name
        package_refs: Sorted package keys
        parents: Names of the snapshots this one was derived from
        description: Human-readable provenance
        created_at: Creation time (naive, local time)
        source_kind: ``snapshot`` when derived, ``packages`` when imported
    """

    name: str
    package_refs: Tuple[str, ...] = ()
    parents: Tuple[str, ...] = ()
    description: str = ""
    created_at: datetime = field(default_factory=datetime.now)
    source_kind: str = SOURCE_KIND_SNAPSHOT

    @classmethod
    def from_package_set(
        cls,
        name: str,
        parents: Sequence['Snapshot'],
        packages: PackageSet,
        description: str,
        source_kind: Optional[str] = None,
    ) -> 'Snapshot':
        """Freeze the current membership of ``packages`` into a new Snapshot."""
        return cls(
            name=name,
            package_refs=tuple(sorted(packages.keys())),
            parents=tuple(parent.name for parent in parents),
            description=description,
            source_kind=source_kind or SOURCE_KIND_SNAPSHOT,
        )

    def __len__(self) -> int:
        return len(self.package_refs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'name': self.name,
            'description': self.description,
            'created_at': self.created_at.isoformat(),
            'source_kind': self.source_kind,
            'parents': list(self.parents),
            'package_count': len(self.package_refs),
        }

    def __str__(self) -> str:
        return f"[{self.name}]: {self.description}"
