"""
Package domain object for pkgsnap.

A Package describes one concrete build: name, version, architecture and the
relations it declares in its control stanza. Packages are immutable and are
shared by reference between package sets; identity is the package key.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Any, List, Mapping, Optional, Tuple

from .dependency import (
    ARCHITECTURE_ALL,
    ARCHITECTURE_SOURCE,
    ANY_ARCHITECTURE,
    Dependency,
    parse_version,
    split_relations,
)

_SOURCE_FIELD_RE = re.compile(r'^(?P<name>\S+)(?:\s*\((?P<version>[^)]+)\))?$')

# Control fields that carry relations, mapped to attribute names
RELATION_FIELDS = {
    'Depends': 'depends',
    'Pre-Depends': 'pre_depends',
    'Recommends': 'recommends',
    'Suggests': 'suggests',
    'Provides': 'provides',
    'Conflicts': 'conflicts',
}

# Checksum fields tried in order to fingerprint the package files
_HASH_FIELDS = ('SHA256', 'SHA1', 'MD5sum')


@dataclass(frozen=True)
class DependencyOptions:
    """Which relations are followed when verifying dependencies."""
    follow_recommends: bool = False
    follow_suggests: bool = False
    follow_source: bool = False
    follow_all_variants: bool = False

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> 'DependencyOptions':
        """Build options from the ``dependencies`` config section."""
        section = (config or {}).get('dependencies', {}) or {}
        return cls(
            follow_recommends=bool(section.get('follow_recommends', False)),
            follow_suggests=bool(section.get('follow_suggests', False)),
            follow_source=bool(section.get('follow_source', False)),
            follow_all_variants=bool(section.get('follow_all_variants', False)),
        )


@dataclass(frozen=True, eq=False)
class Package:
    """
    Immutable description of a single package build.

    Relation fields hold the raw comma-separated entries of the matching
    control field, e.g. ``depends=("libc6 (>= 2.36)", "zlib1g | libz")``.
    They are only interpreted by dependency verification.

    Attributes:
        name: Package name
        version: Debian version string
        architecture: Architecture, ``all`` or ``source``
        source: Source package, ``name`` or ``name (version)``
        files_hash: Checksum distinguishing rebuilds with equal versions
    """

    name: str
    version: str
    architecture: str
    source: Optional[str] = None
    depends: Tuple[str, ...] = ()
    pre_depends: Tuple[str, ...] = ()
    recommends: Tuple[str, ...] = ()
    suggests: Tuple[str, ...] = ()
    provides: Tuple[str, ...] = ()
    conflicts: Tuple[str, ...] = ()
    files_hash: str = ""

    @classmethod
    def from_paragraph(cls, paragraph: Mapping[str, str]) -> 'Package':
        """
        Create a Package from a deb822 stanza (``Packages`` index entry).

        Raises:
            ValueError: mandatory Package/Version/Architecture field missing
        """
        missing = [f for f in ('Package', 'Version', 'Architecture') if not paragraph.get(f)]
        if missing:
            raise ValueError(f"stanza is missing field(s): {', '.join(missing)}")

        # Raises ValueError for versions that break Debian ordering
        parse_version(paragraph['Version'].strip())

        relations = {
            attr: tuple(split_relations(paragraph.get(field_name)))
            for field_name, attr in RELATION_FIELDS.items()
        }

        files_hash = ""
        for hash_field in _HASH_FIELDS:
            if paragraph.get(hash_field):
                files_hash = paragraph[hash_field].strip()
                break

        return cls(
            name=paragraph['Package'].strip(),
            version=paragraph['Version'].strip(),
            architecture=paragraph['Architecture'].strip(),
            source=(paragraph.get('Source') or '').strip() or None,
            files_hash=files_hash,
            **relations,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Package':
        """Inverse of to_dict()."""
        return cls(
            name=data['name'],
            version=data['version'],
            architecture=data['architecture'],
            source=data.get('source'),
            depends=tuple(data.get('depends', ())),
            pre_depends=tuple(data.get('pre_depends', ())),
            recommends=tuple(data.get('recommends', ())),
            suggests=tuple(data.get('suggests', ())),
            provides=tuple(data.get('provides', ())),
            conflicts=tuple(data.get('conflicts', ())),
            files_hash=data.get('files_hash', ''),
        )

    @property
    def key(self) -> str:
        """Stable identity: architecture, name, version and files hash."""
        key = f"P{self.architecture} {self.name} {self.version}"
        if self.files_hash:
            key += f" {self.files_hash}"
        return key

    @property
    def is_source(self) -> bool:
        return self.architecture == ARCHITECTURE_SOURCE

    @property
    def provided_names(self) -> List[str]:
        """Names of virtual packages from the Provides field."""
        return [entry.split('(')[0].split(':')[0].strip() for entry in self.provides]

    def matches_architecture(self, architecture: str) -> bool:
        """
        Check whether this package can serve ``architecture``.

        ``all`` packages serve every binary architecture; source packages
        only serve the ``source`` pseudo-architecture.
        """
        if architecture == ANY_ARCHITECTURE:
            return True
        if self.architecture == ARCHITECTURE_ALL and architecture != ARCHITECTURE_SOURCE:
            return True
        return self.architecture == architecture

    def matches_dependency(self, dep: Dependency) -> bool:
        """Name, architecture and version constraint all match."""
        if dep.name != self.name:
            return False
        if not self.matches_architecture(dep.architecture):
            return False
        return dep.satisfied_by(self.version)

    def source_dependency(self) -> Dependency:
        """Expression naming the source package this binary was built from."""
        name, version = self.name, self.version
        if self.source:
            match = _SOURCE_FIELD_RE.match(self.source)
            if match:
                name = match.group('name')
                version = (match.group('version') or version).strip()
        return Dependency(name=name, architecture=ARCHITECTURE_SOURCE, operator='=', version=version)

    def get_dependencies(self, options: DependencyOptions) -> List[str]:
        """
        Relation entries followed under ``options``.

        Depends and Pre-Depends are always followed. The source package
        relation (``follow_source``) is not a control-field entry, see
        source_dependency().
        """
        entries = list(self.depends) + list(self.pre_depends)
        if options.follow_recommends:
            entries.extend(self.recommends)
        if options.follow_suggests:
            entries.extend(self.suggests)
        return entries

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'key': self.key,
            'name': self.name,
            'version': self.version,
            'architecture': self.architecture,
            'source': self.source,
            'depends': list(self.depends),
            'pre_depends': list(self.pre_depends),
            'recommends': list(self.recommends),
            'suggests': list(self.suggests),
            'provides': list(self.provides),
            'conflicts': list(self.conflicts),
            'files_hash': self.files_hash,
        }

    def __str__(self) -> str:
        return f"{self.name}_{self.version}_{self.architecture}"

    def __repr__(self) -> str:
        return f"Package({self.name!r}, {self.version!r}, {self.architecture!r})"

    def __hash__(self) -> int:
        """Hash based on package key for use in sets."""
        return hash(self.key)

    def __eq__(self, other) -> bool:
        """Equality based on package key."""
        if not isinstance(other, Package):
            return False
        return self.key == other.key
