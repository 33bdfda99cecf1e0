"""
Dependency expression domain object for pkgsnap.

A dependency expression names a package, optionally constrains its version
with a Debian relational operator and binds it to an architecture:

    Dependency.parse("libc6")                   -> any version, any architecture
    Dependency.parse("libc6 (>= 2.36)")         -> version constraint
    Dependency.parse("libc6 (>= 2.36) {amd64}") -> bound to amd64

Expressions are immutable value objects; structural equality makes them
usable as work-list keys during a pull.
"""

import re
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Dict, Any, List, Optional

from debian.debian_support import Version

from ..exit_codes import MalformedDependency

# Wildcard architecture: matches packages of every architecture
ANY_ARCHITECTURE = "any"

# Architecture-independent packages
ARCHITECTURE_ALL = "all"

# Source packages
ARCHITECTURE_SOURCE = "source"

OPERATORS = ('<<', '<=', '=', '>=', '>>')

# Deprecated single-character operators still found in old control files
_LEGACY_OPERATORS = {'<': '<=', '>': '>='}

_DEPENDENCY_RE = re.compile(
    r'^(?P<name>[^\s(){}\[\]<>|,:]+)'
    r'(?:\s*\(\s*(?P<op><<|<=|>=|>>|=)\s*(?P<version>[^\s()]+)\s*\))?'
    r'(?:\s*\{\s*(?P<arch>[^\s{}]+)\s*\})?$'
)

_RELATION_ATOM_RE = re.compile(
    r'^(?P<name>[A-Za-z0-9][A-Za-z0-9+.\-]*)'
    r'(?::(?P<archqual>[a-z0-9][a-z0-9\-]*))?'
    r'(?:\s*\(\s*(?P<op><<|<=|>=|>>|=|<|>)\s*(?P<version>[^\s()]+)\s*\))?'
    r'(?:\s*\[(?P<archs>[^\]]*)\])?'
    r'(?:\s*<[^<>]*>)*$'
)


@lru_cache(maxsize=16384)
def parse_version(version: str) -> Version:
    """Parse a Debian version string (cached, versions repeat a lot)."""
    return Version(version)


def compare_versions(left: str, right: str) -> int:
    """Compare two Debian versions, returning -1, 0 or 1."""
    a, b = parse_version(left), parse_version(right)
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


@dataclass(frozen=True)
class Dependency:
    """
    Parsed dependency expression.

    Attributes:
        name: Package name (exact match)
        architecture: Target architecture or ANY_ARCHITECTURE
        operator: One of OPERATORS, or None for "any version"
        version: Version operand of the operator
    """

    name: str
    architecture: str = ANY_ARCHITECTURE
    operator: Optional[str] = None
    version: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> 'Dependency':
        """
        Parse a textual expression: ``name[ (op version)][ {arch}]``.

        Raises:
            MalformedDependency: text does not match the grammar
        """
        if text is None or not text.strip():
            raise MalformedDependency(text or '', "empty dependency")

        stripped = text.strip()
        match = _DEPENDENCY_RE.match(stripped)
        if not match:
            if '(' in stripped:
                raise MalformedDependency(text, "bad version relation")
            raise MalformedDependency(text)

        operator = match.group('op')
        version = match.group('version')
        if version is not None:
            _check_version(text, version)

        return cls(
            name=match.group('name'),
            architecture=match.group('arch') or ANY_ARCHITECTURE,
            operator=operator,
            version=version,
        )

    @property
    def has_version_constraint(self) -> bool:
        return self.operator is not None

    def with_architecture(self, architecture: str) -> 'Dependency':
        """Return a copy bound to ``architecture``."""
        return replace(self, architecture=architecture)

    def satisfied_by(self, version: str) -> bool:
        """Check a package version against this expression's constraint."""
        if self.operator is None or self.version is None:
            return True

        cmp = compare_versions(version, self.version)
        if self.operator == '=':
            return cmp == 0
        if self.operator == '>=':
            return cmp >= 0
        if self.operator == '<=':
            return cmp <= 0
        if self.operator == '>>':
            return cmp > 0
        if self.operator == '<<':
            return cmp < 0
        raise ValueError(f"unknown version operator {self.operator!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'name': self.name,
            'architecture': self.architecture,
            'operator': self.operator,
            'version': self.version,
        }

    def __str__(self) -> str:
        result = self.name
        if self.operator is not None:
            result += f" ({self.operator} {self.version})"
        if self.architecture != ANY_ARCHITECTURE:
            result += f" {{{self.architecture}}}"
        return result


def _check_version(text: str, version: str) -> None:
    try:
        parse_version(version)
    except ValueError:
        raise MalformedDependency(text, f"invalid version {version!r}")


def parse_relation(text: str, architecture: str) -> List[Dependency]:
    """
    Parse one entry of a package relation field into its alternatives.

    Handles the control-file syntax ``a (>= 1) | b:any [amd64 !i386] <!nocheck>``:
    ``:any``/``:native`` qualifiers bind to ``architecture``, explicit
    qualifiers to themselves. Alternatives whose ``[...]`` restriction
    excludes ``architecture`` are dropped, build profiles are ignored.

    Args:
        text: Single relation entry (no top-level commas)
        architecture: Architecture the relation is evaluated for

    Returns:
        Applicable alternatives, possibly empty

    Raises:
        MalformedDependency: entry does not follow the relation syntax
    """
    alternatives = []

    for raw in text.split('|'):
        atom = raw.strip()
        match = _RELATION_ATOM_RE.match(atom)
        if not match:
            raise MalformedDependency(text, "bad relation")

        if not _restriction_applies(match.group('archs'), architecture):
            continue

        archqual = match.group('archqual')
        if archqual is None or archqual in ('any', 'native'):
            target = architecture
        else:
            target = archqual

        operator = match.group('op')
        version = match.group('version')
        if operator is not None:
            operator = _LEGACY_OPERATORS.get(operator, operator)
            _check_version(text, version)

        alternatives.append(Dependency(
            name=match.group('name'),
            architecture=target,
            operator=operator,
            version=version,
        ))

    return alternatives


def _restriction_applies(archs: Optional[str], architecture: str) -> bool:
    """Evaluate an ``[arch ...]`` restriction list for ``architecture``."""
    if archs is None:
        return True

    tokens = archs.split()
    if not tokens:
        return True

    negated = [t[1:] for t in tokens if t.startswith('!')]
    if negated:
        return architecture not in negated
    return architecture in tokens


def split_relations(field_value: Optional[str]) -> List[str]:
    """Split a comma-separated relation field into stripped entries."""
    if not field_value:
        return []
    return [entry.strip() for entry in field_value.split(',') if entry.strip()]
