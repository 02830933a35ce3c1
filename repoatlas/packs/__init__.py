"""Language pack dispatch table and selection helpers."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Sequence

from ..budget import AnalysisBudget
from ..config import ArchitectureLimits
from ..models import PackResult
from . import java, python, tsjs


@dataclass(frozen=True)
class PackSpec:
    """One ecosystem: display label, file selector and analysis entry point."""

    ecosystem: str
    label: str
    select: Callable[[Iterable[str]], List[str]]
    analyze: Callable[..., PackResult]


PACKS: Dict[str, PackSpec] = {
    tsjs.ECOSYSTEM: PackSpec(tsjs.ECOSYSTEM, tsjs.LABEL, tsjs.select_files, tsjs.analyze),
    python.ECOSYSTEM: PackSpec(python.ECOSYSTEM, python.LABEL, python.select_files, python.analyze),
    java.ECOSYSTEM: PackSpec(java.ECOSYSTEM, java.LABEL, java.select_files, java.analyze),
}


def resolve_packs(enabled: Sequence[str] | None = None) -> List[PackSpec]:
    """Return pack specs in dispatch order, honoring optional enabled names."""
    if enabled is None:
        return list(PACKS.values())
    wanted = {name.lower() for name in enabled}
    missing = wanted - set(PACKS)
    if missing:
        raise ValueError(f"Unknown language packs requested: {', '.join(sorted(missing))}")
    return [spec for name, spec in PACKS.items() if name in wanted]


def run_pack(
    spec: PackSpec,
    root: str | Path,
    paths: Iterable[str],
    *,
    limits: ArchitectureLimits | None = None,
    budget: AnalysisBudget | None = None,
) -> PackResult:
    """Select ``spec``'s files from ``paths`` and analyze them."""
    files = spec.select(paths)
    if not files:
        return PackResult.empty(spec.ecosystem)
    return spec.analyze(root, files, limits=limits, budget=budget)


__all__ = ["PACKS", "PackSpec", "resolve_packs", "run_pack"]
