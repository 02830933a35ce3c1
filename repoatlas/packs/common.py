"""Helpers shared by the language packs."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Pattern, Sequence, Set, Tuple

from ..budget import AnalysisBudget
from ..logging import BUDGET_EXHAUSTED_MARKER, get_logger
from ..models import ComplexitySignal

_LOGGER = get_logger("packs")

PROXIMITY_COLOCATED = 100
PROXIMITY_NESTED = 90
PROXIMITY_MIRRORED = 80
PROXIMITY_NONE = 0

TOP_LEVEL_TEST_ROOTS = ("tests/", "test/")

_BRACES = re.compile(r"[{}]")


def read_source(root: Path, rel_path: str) -> Optional[str]:
    """Return the file text, or None when it cannot be read as UTF-8."""
    try:
        return (root / rel_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def has_ignored_segment(rel_path: str, ignored: Iterable[str]) -> bool:
    ignored_set = set(ignored)
    return any(segment in ignored_set for segment in rel_path.split("/")[:-1])


def parent_dir(rel_path: str) -> str:
    directory = posixpath.dirname(rel_path)
    return directory or "."


def join_dir(directory: str, name: str) -> str:
    return name if directory in ("", ".") else f"{directory}/{name}"


def strip_top_level_test_root(rel_path: str) -> Optional[str]:
    for prefix in TOP_LEVEL_TEST_ROOTS:
        if rel_path.startswith(prefix):
            return rel_path[len(prefix):]
    return None


# Complexity proxies


def count_loc(lines: Sequence[str], comment_prefixes: Tuple[str, ...]) -> int:
    count = 0
    for line in lines:
        stripped = line.strip()
        if stripped and not stripped.startswith(comment_prefixes):
            count += 1
    return count


def brace_nesting(text: str) -> int:
    depth = 0
    deepest = 0
    for match in _BRACES.finditer(text):
        if match.group() == "{":
            depth += 1
            deepest = max(deepest, depth)
        else:
            depth = max(0, depth - 1)
    return deepest


def indentation_nesting(lines: Sequence[str], width: int = 4) -> int:
    deepest = 0
    for line in lines:
        if not line.strip():
            continue
        indent = 0
        for char in line:
            if char == " ":
                indent += 1
            elif char == "\t":
                indent += width
            else:
                break
        deepest = max(deepest, indent // width)
    return deepest


def brace_complexity(text: str, branch_pattern: Pattern[str], comment_prefixes: Tuple[str, ...]) -> ComplexitySignal:
    """Complexity proxy for curly-brace languages."""
    lines = text.splitlines()
    return ComplexitySignal(
        loc=count_loc(lines, comment_prefixes),
        branches=len(branch_pattern.findall(text)),
        max_nesting=brace_nesting(text),
    )


# Per-file scanning


@dataclass
class ScanOutcome:
    """Per-file partial results, merged once every file has been scanned."""

    processed: List[str] = field(default_factory=list)
    imports: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    complexity: Dict[str, ComplexitySignal] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


def scan_files(
    root: Path,
    files: Sequence[str],
    *,
    label: str,
    budget: AnalysisBudget,
    extract_targets: Callable[[str, str], Iterable[str]],
    measure: Callable[[str], ComplexitySignal],
) -> ScanOutcome:
    """Scan ``files`` one at a time, checking ``budget`` between files.

    Unreadable files keep zero-valued signals. When the budget runs out the
    outcome only covers the files processed so far, and edges into files that
    were never reached are dropped so fan-in stays consistent.
    """
    outcome = ScanOutcome()
    unreadable: List[str] = []
    for rel_path in files:
        if budget.exhausted():
            outcome.warnings.append(
                f"{label} analysis stopped early: {BUDGET_EXHAUSTED_MARKER} after "
                f"{len(outcome.processed)} of {len(files)} files."
            )
            break
        outcome.processed.append(rel_path)
        text = read_source(root, rel_path)
        if text is None:
            unreadable.append(rel_path)
            outcome.imports[rel_path] = frozenset()
            outcome.complexity[rel_path] = ComplexitySignal()
            continue
        targets = {target for target in extract_targets(rel_path, text) if target != rel_path}
        outcome.imports[rel_path] = frozenset(targets)
        outcome.complexity[rel_path] = measure(text)

    if unreadable:
        _LOGGER.debug("%s: unreadable files %s", label, ", ".join(unreadable))
        outcome.warnings.append(
            f"{label}: {len(unreadable)} file(s) could not be read; their signals default to zero."
        )

    if len(outcome.processed) < len(files):
        reached = set(outcome.processed)
        outcome.imports = {
            path: frozenset(target for target in targets if target in reached)
            for path, targets in outcome.imports.items()
        }
    return outcome


def restrict(paths: Iterable[str], allowed: Set[str]) -> FrozenSet[str]:
    return frozenset(path for path in paths if path in allowed)


# Test proximity


class ProximityIndex:
    """Answers the 100/90/80/0 proximity tiers for folder-organised ecosystems.

    ``mirror_key`` maps a path below a top-level test root to the production
    path stem it covers (or None); ``nested_dirs`` are the directory names
    that hold tests next to production code.
    """

    def __init__(
        self,
        test_files: Iterable[str],
        *,
        nested_dirs: Tuple[str, ...],
        mirror_key: Callable[[str], Optional[str]],
    ) -> None:
        self.test_files = frozenset(test_files)
        self.test_dirs = frozenset(parent_dir(path) for path in self.test_files)
        self.nested_dirs = nested_dirs
        mirrored: Set[str] = set()
        for path in self.test_files:
            below_root = strip_top_level_test_root(path)
            if below_root is None:
                continue
            key = mirror_key(below_root)
            if key:
                mirrored.add(key)
        self.mirrored = frozenset(mirrored)

    def score(self, rel_path: str, stems: Iterable[str]) -> int:
        if rel_path in self.test_files:
            return PROXIMITY_COLOCATED
        directory = parent_dir(rel_path)
        if directory in self.test_dirs:
            return PROXIMITY_COLOCATED
        for name in self.nested_dirs:
            nested = join_dir(directory, name)
            if any(test_dir == nested or test_dir.startswith(f"{nested}/") for test_dir in self.test_dirs):
                return PROXIMITY_NESTED
        if any(stem in self.mirrored for stem in stems):
            return PROXIMITY_MIRRORED
        return PROXIMITY_NONE


__all__ = [
    "PROXIMITY_COLOCATED",
    "PROXIMITY_MIRRORED",
    "PROXIMITY_NESTED",
    "PROXIMITY_NONE",
    "ProximityIndex",
    "ScanOutcome",
    "brace_complexity",
    "brace_nesting",
    "count_loc",
    "has_ignored_segment",
    "indentation_nesting",
    "join_dir",
    "parent_dir",
    "read_source",
    "restrict",
    "scan_files",
    "strip_top_level_test_root",
]
