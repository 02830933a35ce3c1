"""Core data models shared across repoatlas components."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class FileMeta:
    """Metadata for an individual workspace file."""

    path: str
    size: int
    extension: str
    language: str


@dataclass
class FolderMapNode:
    """Node of the recursive folder map."""

    path: str
    type: str
    children: Optional[List["FolderMapNode"]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"path": self.path, "type": self.type}
        if self.children is not None:
            payload["children"] = [child.to_dict() for child in self.children]
        return payload


@dataclass(frozen=True)
class RunCommand:
    """A runnable command declared by a manifest."""

    source: str
    command: str
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"source": self.source, "command": self.command}
        if self.description is not None:
            payload["description"] = self.description
        return payload


@dataclass(frozen=True)
class ContributeSignals:
    """Key documentation and CI configuration discovered by the indexer."""

    key_docs: Tuple[str, ...] = ()
    ci_configs: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"key_docs": list(self.key_docs), "ci_configs": list(self.ci_configs)}


@dataclass
class IndexResult:
    """Everything the Workspace Indexer learns from a single walk."""

    root: str
    folder_map: FolderMapNode
    file_metadata: Dict[str, FileMeta]
    key_docs: List[str] = field(default_factory=list)
    ci_configs: List[str] = field(default_factory=list)
    run_commands: List[RunCommand] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def contribute_signals(self) -> ContributeSignals:
        return ContributeSignals(key_docs=tuple(self.key_docs), ci_configs=tuple(self.ci_configs))


@dataclass(frozen=True)
class ComplexitySignal:
    """Cheap complexity proxy computed from raw text."""

    loc: int = 0
    branches: int = 0
    max_nesting: int = 0

    @property
    def score(self) -> int:
        return 3 * self.branches + 2 * self.max_nesting + self.loc // 40


@dataclass(frozen=True)
class ArchitectureNode:
    """Folder or package node of the reduced architecture graph."""

    id: str
    label: str
    type: str = "folder"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "type": self.type}


@dataclass(frozen=True)
class ArchitectureEdge:
    """Weighted import link between two architecture nodes."""

    source: str
    target: str
    weight: int = 1
    type: str = "import"

    def to_dict(self) -> Dict[str, Any]:
        return {"from": self.source, "to": self.target, "type": self.type, "weight": self.weight}


@dataclass(frozen=True)
class Architecture:
    """Reduced, capped architecture graph."""

    nodes: Tuple[ArchitectureNode, ...] = ()
    edges: Tuple[ArchitectureEdge, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }


@dataclass(frozen=True)
class Landmark:
    """Ecosystem-specific structural marker (page, route, router...)."""

    kind: str
    reason: str


@dataclass(frozen=True)
class PackResult:
    """Output of one Language Pack run.

    ``fan_in`` and ``fan_out`` are derived from ``imports`` on access so they
    can never drift from the import graph.
    """

    ecosystem: str
    files: Tuple[str, ...] = ()
    imports: Mapping[str, FrozenSet[str]] = field(default_factory=dict)
    entrypoints: FrozenSet[str] = frozenset()
    test_files: FrozenSet[str] = frozenset()
    complexity: Mapping[str, ComplexitySignal] = field(default_factory=dict)
    test_proximity: Mapping[str, int] = field(default_factory=dict)
    landmarks: Mapping[str, Landmark] = field(default_factory=dict)
    architecture: Architecture = field(default_factory=Architecture)
    warnings: Tuple[str, ...] = ()

    @classmethod
    def empty(cls, ecosystem: str) -> "PackResult":
        return cls(ecosystem=ecosystem)

    @property
    def fan_out(self) -> Dict[str, int]:
        return {path: len(self.imports.get(path, ())) for path in self.files}

    @property
    def fan_in(self) -> Dict[str, int]:
        counts = {path: 0 for path in self.files}
        for targets in self.imports.values():
            for target in targets:
                counts[target] = counts.get(target, 0) + 1
        return counts

    @property
    def edge_count(self) -> int:
        return sum(len(targets) for targets in self.imports.values())


@dataclass(frozen=True)
class StartHereItem:
    """Onboarding-priority entry."""

    path: str
    score: int
    explanation: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DangerMetrics:
    """Raw (non-percentile) risk inputs for a file."""

    size: int
    fan_in: int
    fan_out: int
    complexity: int
    test_proximity: int


@dataclass(frozen=True)
class DangerZoneItem:
    """Risk entry for a single file."""

    path: str
    score: int
    breakdown: str
    metrics: DangerMetrics

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Report:
    """Final analysis report handed to storage and rendering layers."""

    folder_map: FolderMapNode
    architecture: Architecture
    start_here: List[StartHereItem]
    danger_zones: List[DangerZoneItem]
    run_commands: List[RunCommand]
    contribute_signals: ContributeSignals
    warnings: List[str]
    architectures: Dict[str, Architecture] = field(default_factory=dict)
    ecosystems: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "folder_map": self.folder_map.to_dict(),
            "architecture": self.architecture.to_dict(),
            "architectures": {
                name: architecture.to_dict() for name, architecture in self.architectures.items()
            },
            "start_here": [item.to_dict() for item in self.start_here],
            "danger_zones": [item.to_dict() for item in self.danger_zones],
            "run_commands": [command.to_dict() for command in self.run_commands],
            "contribute_signals": self.contribute_signals.to_dict(),
            "warnings": list(self.warnings),
            "ecosystems": list(self.ecosystems),
        }


__all__ = [
    "Architecture",
    "ArchitectureEdge",
    "ArchitectureNode",
    "ComplexitySignal",
    "ContributeSignals",
    "DangerMetrics",
    "DangerZoneItem",
    "FileMeta",
    "FolderMapNode",
    "IndexResult",
    "Landmark",
    "PackResult",
    "Report",
    "RunCommand",
    "StartHereItem",
]
