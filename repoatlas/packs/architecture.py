"""Reduce a file-level import graph to a capped folder/package graph."""

from __future__ import annotations

from collections import Counter
from typing import Callable, Dict, Iterable, List, Mapping, Sequence, Tuple

from ..config import ArchitectureLimits
from ..models import Architecture, ArchitectureEdge, ArchitectureNode


def reduce_architecture(
    files: Sequence[str],
    imports: Mapping[str, Iterable[str]],
    *,
    group_of: Callable[[str], str],
    label_of: Callable[[str], str] = lambda group: group,
    unit: str = "folders",
    limits: ArchitectureLimits | None = None,
) -> Tuple[Architecture, List[str]]:
    """Aggregate file edges into weighted group edges.

    Groups are ranked by total edge weight, then member count, then name, and
    the top ``max_nodes`` are kept. Edges between kept groups are ranked by
    weight, then ``from``, then ``to``, and the top ``max_edges`` are kept.
    Every truncation is reported through the returned warnings.
    """
    limits = limits or ArchitectureLimits()
    warnings: List[str] = []

    member_counts: Counter[str] = Counter(group_of(path) for path in files)

    edge_weights: Counter[Tuple[str, str]] = Counter()
    for source in sorted(imports):
        source_group = group_of(source)
        for target in imports[source]:
            target_group = group_of(target)
            if source_group != target_group:
                edge_weights[(source_group, target_group)] += 1

    degree: Dict[str, int] = {group: 0 for group in member_counts}
    for (source_group, target_group), weight in edge_weights.items():
        degree[source_group] = degree.get(source_group, 0) + weight
        degree[target_group] = degree.get(target_group, 0) + weight

    ranked_groups = sorted(
        member_counts,
        key=lambda group: (-degree.get(group, 0), -member_counts[group], group),
    )
    selected = ranked_groups[: limits.max_nodes]
    if len(ranked_groups) > limits.max_nodes:
        warnings.append(
            f"Architecture nodes capped at {limits.max_nodes} {unit} (from {len(ranked_groups)})."
        )
    if len(files) > len(selected):
        warnings.append(
            f"Architecture reduced from file-level ({len(files)} files) to "
            f"{unit[:-1]}-level ({len(selected)} {unit})."
        )

    selected_set = set(selected)
    candidate_edges = sorted(
        (
            (source_group, target_group, weight)
            for (source_group, target_group), weight in edge_weights.items()
            if source_group in selected_set and target_group in selected_set
        ),
        key=lambda edge: (-edge[2], edge[0], edge[1]),
    )
    if len(candidate_edges) > limits.max_edges:
        warnings.append(
            f"Architecture edges capped at {limits.max_edges} links (from {len(candidate_edges)})."
        )

    nodes = tuple(ArchitectureNode(id=group, label=label_of(group)) for group in selected)
    edges = tuple(
        ArchitectureEdge(source=source_group, target=target_group, weight=weight)
        for source_group, target_group, weight in candidate_edges[: limits.max_edges]
    )
    return Architecture(nodes=nodes, edges=edges), warnings


__all__ = ["reduce_architecture"]
