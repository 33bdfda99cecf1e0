"""
Diagnostic events emitted while pulling packages.

Every change the pull engine makes, and every problem it skips over, is
reported as a Diagnostic so callers can render or collect them. Diagnostics
never abort a pull.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, Optional

from .dependency import Dependency
from .package import Package


class DiagnosticKind(Enum):
    """What happened."""
    ADDED = "added"
    REMOVED = "removed"
    UNSATISFIABLE = "unsatisfiable"
    VERIFICATION_ERROR = "verification_error"
    LIMIT_REACHED = "limit_reached"


@dataclass(frozen=True)
class Diagnostic:
    """
    A single event from a pull.

    Attributes:
        kind: Event kind
        architecture: Architecture being processed
        package: Package added/removed/failing verification, if any
        dependency: Expression that could not be satisfied, if any
        detail: Extra human-readable context (source name, error text)
    """

    kind: DiagnosticKind
    architecture: str
    package: Optional[Package] = None
    dependency: Optional[Dependency] = None
    detail: str = ""

    @property
    def is_problem(self) -> bool:
        return self.kind not in (DiagnosticKind.ADDED, DiagnosticKind.REMOVED)

    @property
    def message(self) -> str:
        if self.kind == DiagnosticKind.ADDED:
            return f"{self.package} added"
        if self.kind == DiagnosticKind.REMOVED:
            return f"{self.package} removed"
        if self.kind == DiagnosticKind.UNSATISFIABLE:
            text = f"Dependency {self.dependency} can't be satisfied"
            return f"{text} with source {self.detail}" if self.detail else text
        if self.kind == DiagnosticKind.VERIFICATION_ERROR:
            return f"Error while verifying dependencies for pkg {self.package}: {self.detail}"
        return f"Iteration limit reached on {self.architecture}: {self.detail}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: Dict[str, Any] = {
            'type': self.kind.value,
            'architecture': self.architecture,
            'message': self.message,
        }
        if self.package is not None:
            data['package'] = str(self.package)
        if self.dependency is not None:
            data['dependency'] = str(self.dependency)
        if self.detail:
            data['detail'] = self.detail
        return data

    def to_jsonl(self) -> str:
        """Convert to single-line JSON for streaming output."""
        return json.dumps(self.to_dict(), ensure_ascii=False)

    def __str__(self) -> str:
        return self.message
