"""Start Here and Danger Zones rankings over indexer and pack results."""

from __future__ import annotations

import math
import posixpath
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Sequence, Set

from .config import DangerZoneWeights, StartHereWeights
from .logging import get_logger
from .models import DangerMetrics, DangerZoneItem, IndexResult, PackResult, StartHereItem

_LOGGER = get_logger("scoring")

_DOCS_SEGMENTS = {"docs", "doc", "documentation"}


def round_half_up(value: float) -> int:
    return int(math.floor(round(value, 6) + 0.5))


def percentile_rank(values: Sequence[float], value: float) -> float:
    """Percentile of ``value`` within ``values``; ties count half."""
    if not values:
        return 0.0
    below = sum(1 for item in values if item < value)
    equal = sum(1 for item in values if item == value)
    return (below + 0.5 * equal) / len(values) * 100


def entrypoint_distances(
    imports: Mapping[str, Iterable[str]], entrypoints: Iterable[str]
) -> Dict[str, int]:
    """Breadth-first hop counts from the entry points along import edges."""
    distances: Dict[str, int] = {}
    queue: deque[str] = deque()
    for entry in sorted(set(entrypoints)):
        distances[entry] = 0
        queue.append(entry)
    while queue:
        current = queue.popleft()
        for target in sorted(imports.get(current, ())):
            if target not in distances:
                distances[target] = distances[current] + 1
                queue.append(target)
    return distances


# Start Here


@dataclass
class _Candidate:
    path: str
    raw: int = 0
    reasons: List[str] = field(default_factory=list)

    def add(self, points: int, reason: str | None = None) -> None:
        self.raw += points
        if reason and reason not in self.reasons:
            self.reasons.append(reason)


def _doc_bonus(path: str, weights: StartHereWeights) -> tuple[int, str]:
    name = posixpath.basename(path).lower()
    nested = "/" in path
    if name.startswith("readme"):
        if not nested:
            return weights.root_readme, "Project overview (root README)"
        return weights.readme, "README"
    if name.startswith("contributing"):
        return weights.contributing, "Contribution guide"
    return weights.key_doc, "Key documentation"


def _is_under_docs(path: str) -> bool:
    return any(segment.lower() in _DOCS_SEGMENTS for segment in path.split("/")[:-1])


def _distance_bonus(distance: int, weights: StartHereWeights) -> tuple[int, str | None]:
    if distance == 0:
        return weights.entrypoint, "Entry point"
    if distance == 1:
        return weights.one_hop, "Imported directly by an entry point"
    if distance <= weights.near_max_distance:
        return weights.near_base - weights.near_step * distance, f"{distance} hops from an entry point"
    return 0, None


def compute_start_here(
    index: IndexResult,
    packs: Sequence[PackResult],
    weights: StartHereWeights | None = None,
) -> List[StartHereItem]:
    """Rank documents and source files by onboarding value.

    Bonuses are additive. Candidates without a positive score or without any
    reason are dropped; survivors are min-max normalised to 0-100.
    """
    weights = weights or StartHereWeights()
    candidates: Dict[str, _Candidate] = {}

    def candidate(path: str) -> _Candidate:
        if path not in candidates:
            candidates[path] = _Candidate(path)
        return candidates[path]

    for doc in index.key_docs:
        points, reason = _doc_bonus(doc, weights)
        entry = candidate(doc)
        entry.add(points, reason)
        if _is_under_docs(doc):
            entry.add(weights.docs_path, "Under a docs folder")

    imports: Dict[str, Set[str]] = {}
    entrypoints: Set[str] = set()
    fan_in: Dict[str, int] = {}
    test_files: Set[str] = set()
    for pack in packs:
        for path, targets in pack.imports.items():
            imports.setdefault(path, set()).update(targets)
        entrypoints.update(pack.entrypoints)
        test_files.update(pack.test_files)
        for path, count in pack.fan_in.items():
            fan_in[path] = fan_in.get(path, 0) + count
        for path, landmark in pack.landmarks.items():
            candidate(path).add(weights.landmark_bonus(landmark.kind), landmark.reason)

    for path, count in fan_in.items():
        if count > 0:
            bonus = min(weights.fan_in_cap, weights.fan_in_per_import * count)
            candidate(path).add(bonus, f"Imported by {count} file{'s' if count != 1 else ''}")

    for path, distance in entrypoint_distances(imports, entrypoints).items():
        points, reason = _distance_bonus(distance, weights)
        if points > 0:
            candidate(path).add(points, reason)

    for path in test_files:
        if path in candidates:
            candidates[path].add(-weights.test_penalty)

    survivors = sorted(
        (entry for entry in candidates.values() if entry.raw > 0 and entry.reasons),
        key=lambda entry: (-entry.raw, entry.path),
    )[: weights.limit]
    if not survivors:
        return []

    highest = survivors[0].raw
    lowest = survivors[-1].raw
    span = highest - lowest
    items = [
        StartHereItem(
            path=entry.path,
            score=100 if span == 0 else round_half_up((entry.raw - lowest) / span * 100),
            explanation="; ".join(entry.reasons),
        )
        for entry in survivors
    ]
    _LOGGER.debug("Start Here kept %d of %d candidates", len(items), len(candidates))
    return items


# Danger Zones


def _proximity_note(proximity: int) -> str:
    if proximity == 0:
        return " (no nearby tests)"
    if proximity < 80:
        return " (low test proximity)"
    return ""


def compute_danger_zones(
    index: IndexResult,
    packs: Sequence[PackResult],
    weights: DangerZoneWeights | None = None,
) -> List[DangerZoneItem]:
    """Score every file analysed by a pack; higher means riskier to change."""
    weights = weights or DangerZoneWeights()

    metrics: Dict[str, DangerMetrics] = {}
    for pack in packs:
        fan_in = pack.fan_in
        fan_out = pack.fan_out
        for path in pack.files:
            meta = index.file_metadata.get(path)
            signal = pack.complexity.get(path)
            metrics[path] = DangerMetrics(
                size=meta.size if meta else 0,
                fan_in=fan_in.get(path, 0),
                fan_out=fan_out.get(path, 0),
                complexity=signal.score if signal else 0,
                test_proximity=pack.test_proximity.get(path, 0),
            )
    if not metrics:
        return []

    sizes = [item.size for item in metrics.values()]
    fan_ins = [item.fan_in for item in metrics.values()]
    fan_outs = [item.fan_out for item in metrics.values()]
    complexities = [item.complexity for item in metrics.values()]
    proximities = [item.test_proximity for item in metrics.values()]

    items: List[DangerZoneItem] = []
    for path, item in metrics.items():
        size_p = percentile_rank(sizes, item.size)
        fan_in_p = percentile_rank(fan_ins, item.fan_in)
        fan_out_p = percentile_rank(fan_outs, item.fan_out)
        complexity_p = percentile_rank(complexities, item.complexity)
        weak_tests_p = 100 - percentile_rank(proximities, item.test_proximity)
        composite = (
            weights.size * size_p
            + weights.fan_in * fan_in_p
            + weights.fan_out * fan_out_p
            + weights.complexity * complexity_p
            + weights.weak_tests * weak_tests_p
        )
        breakdown = (
            f"size P{round_half_up(size_p)} ({item.size} B); "
            f"fan-in P{round_half_up(fan_in_p)} ({item.fan_in}); "
            f"fan-out P{round_half_up(fan_out_p)} ({item.fan_out}); "
            f"complexity P{round_half_up(complexity_p)} ({item.complexity}); "
            f"test proximity {item.test_proximity}{_proximity_note(item.test_proximity)}"
        )
        items.append(
            DangerZoneItem(
                path=path,
                score=max(0, min(100, round_half_up(composite))),
                breakdown=breakdown,
                metrics=item,
            )
        )

    items.sort(key=lambda entry: (-entry.score, entry.path))
    return items


__all__ = [
    "compute_danger_zones",
    "compute_start_here",
    "entrypoint_distances",
    "percentile_rank",
    "round_half_up",
]
