"""Tests for repoatlas.scoring."""

from __future__ import annotations

from typing import Dict, Iterable, Mapping

import pytest

from repoatlas.config import StartHereWeights
from repoatlas.models import (
    ComplexitySignal,
    FileMeta,
    FolderMapNode,
    IndexResult,
    Landmark,
    PackResult,
)
from repoatlas.scoring import (
    compute_danger_zones,
    compute_start_here,
    entrypoint_distances,
    percentile_rank,
    round_half_up,
)


def _index(sizes: Mapping[str, int], key_docs: Iterable[str] = ()) -> IndexResult:
    metadata = {
        path: FileMeta(path=path, size=size, extension="." + path.rsplit(".", 1)[-1], language="typescript")
        for path, size in sizes.items()
    }
    return IndexResult(
        root="/repo",
        folder_map=FolderMapNode(path=".", type="dir", children=[]),
        file_metadata=metadata,
        key_docs=list(key_docs),
    )


def _pack(
    imports: Dict[str, Iterable[str]],
    *,
    entrypoints: Iterable[str] = (),
    test_files: Iterable[str] = (),
    complexity: Mapping[str, ComplexitySignal] | None = None,
    proximity: Mapping[str, int] | None = None,
    landmarks: Mapping[str, Landmark] | None = None,
) -> PackResult:
    files = tuple(sorted(imports))
    return PackResult(
        ecosystem="tsjs",
        files=files,
        imports={path: frozenset(targets) for path, targets in imports.items()},
        entrypoints=frozenset(entrypoints),
        test_files=frozenset(test_files),
        complexity=dict(complexity or {}),
        test_proximity={path: (proximity or {}).get(path, 0) for path in files},
        landmarks=dict(landmarks or {}),
    )


def test_percentile_rank_counts_ties_as_half() -> None:
    values = [1, 2, 2, 3]

    assert percentile_rank(values, 2) == pytest.approx(50.0)
    assert percentile_rank(values, 1) == pytest.approx(12.5)
    assert percentile_rank(values, 3) == pytest.approx(87.5)
    assert percentile_rank([], 3) == 0.0


def test_round_half_up() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.4999) == 2


def test_entrypoint_distances_follow_imports_forward() -> None:
    imports = {"a": {"b"}, "b": {"c"}, "c": set(), "d": {"a"}}

    assert entrypoint_distances(imports, ["a"]) == {"a": 0, "b": 1, "c": 2}


def test_start_here_root_readme_only() -> None:
    items = compute_start_here(_index({"README.md": 120}, key_docs=["README.md"]), [])

    assert [item.path for item in items] == ["README.md"]
    assert items[0].score == 100
    assert "root README" in items[0].explanation


def test_start_here_ranks_chain_by_entrypoint_distance() -> None:
    pack = _pack({"a.ts": ["b.ts"], "b.ts": ["c.ts"], "c.ts": []}, entrypoints=["a.ts"])

    items = compute_start_here(_index({"a.ts": 10, "b.ts": 10, "c.ts": 10}), [pack])
    scores = {item.path: item.score for item in items}

    assert pack.fan_in["b.ts"] == 1
    assert pack.fan_in["c.ts"] == 1
    assert [item.path for item in items] == ["a.ts", "b.ts", "c.ts"]
    assert scores["a.ts"] == 100
    assert scores["b.ts"] > scores["c.ts"]
    assert "Entry point" in items[0].explanation


def test_start_here_normalisation_and_limits() -> None:
    docs = ["README.md", "docs/README.md", "CONTRIBUTING.md", "LICENSE", "docs/CHANGELOG.md"]
    items = compute_start_here(_index({}, key_docs=docs), [])

    assert [item.path for item in items] == [
        "README.md",
        "docs/README.md",
        "CONTRIBUTING.md",
        "docs/CHANGELOG.md",
        "LICENSE",
    ]
    assert items[0].score == 100
    assert items[-1].score == 0
    assert all(0 <= item.score <= 100 for item in items)
    assert [item.score for item in items] == sorted((item.score for item in items), reverse=True)

    limited = compute_start_here(_index({}, key_docs=docs), [], StartHereWeights(limit=2))
    assert [item.path for item in limited] == ["README.md", "docs/README.md"]


def test_start_here_penalises_tests_and_uses_landmarks() -> None:
    pack = _pack(
        {"app/page.tsx": [], "app/page.test.tsx": ["app/page.tsx"]},
        test_files=["app/page.test.tsx"],
        landmarks={"app/page.tsx": Landmark("page", "Next.js root page")},
    )

    items = compute_start_here(_index({"app/page.tsx": 1, "app/page.test.tsx": 1}), [pack])

    assert [item.path for item in items] == ["app/page.tsx"]
    assert items[0].explanation == "Next.js root page; Imported by 1 file"


def test_danger_zones_scenario_risky_file_outranks_safe_one() -> None:
    pack = _pack(
        {"risky.ts": [], "safe.ts": ["risky.ts"]},
        complexity={
            "risky.ts": ComplexitySignal(loc=400, branches=7, max_nesting=3),
            "safe.ts": ComplexitySignal(loc=10, branches=1, max_nesting=1),
        },
        proximity={"risky.ts": 0, "safe.ts": 100},
    )

    items = compute_danger_zones(_index({"risky.ts": 2048, "safe.ts": 1024}), [pack])

    assert [item.path for item in items] == ["risky.ts", "safe.ts"]
    risky, safe = items
    assert risky.score > safe.score
    assert "no nearby tests" in risky.breakdown
    assert "no nearby tests" not in safe.breakdown
    assert risky.metrics.size == 2048
    assert risky.metrics.fan_in == 1
    assert risky.metrics.complexity == 3 * 7 + 2 * 3 + 400 // 40
    assert risky.breakdown == (
        "size P75 (2048 B); fan-in P75 (1); fan-out P25 (0); complexity P75 (37); "
        "test proximity 0 (no nearby tests)"
    )


def test_danger_zones_ties_sort_by_path_and_stay_in_range() -> None:
    pack = _pack({"b.ts": [], "a.ts": [], "c.ts": []})

    items = compute_danger_zones(_index({"a.ts": 5, "b.ts": 5, "c.ts": 5}), [pack])

    assert [item.path for item in items] == ["a.ts", "b.ts", "c.ts"]
    assert len({item.score for item in items}) == 1
    assert all(0 <= item.score <= 100 for item in items)


def test_danger_zones_empty_without_packs() -> None:
    assert compute_danger_zones(_index({"README.md": 10}), []) == []
