"""Runs the indexer, language packs and scoring to produce a report."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Sequence

from .budget import AnalysisBudget
from .config import AtlasConfig, load_config
from .indexer import WorkspaceIndexer
from .logging import get_logger, log_report_warnings
from .models import Architecture, IndexResult, PackResult, Report
from .packs import PackSpec, resolve_packs, run_pack
from .scoring import compute_danger_zones, compute_start_here

DEEP_ANALYSIS_UNAVAILABLE = (
    "Deep analysis unavailable: no TypeScript/JavaScript, Python, or Java source files were found."
)


class Orchestrator:
    """Coordinates one analysis run over a materialized workspace."""

    def __init__(self, config: AtlasConfig | None = None) -> None:
        self.config = config
        self.logger = get_logger("orchestrator")

    def analyze(self, path: str | Path) -> Report:
        """Analyze ``path`` and return the assembled report.

        Raises ``FileNotFoundError``/``NotADirectoryError`` for a bad root and
        ``ConfigError`` when the workspace configuration cannot be parsed.
        """
        root = Path(path).expanduser().resolve()
        config = self.config or load_config(root if root.is_dir() else None)
        self.logger.info("Analyzing %s", root)

        budget = AnalysisBudget(config.time_budget_seconds)
        if budget.limited:
            self.logger.debug("Time budget: %.1fs", budget.remaining())
        indexer = WorkspaceIndexer(config.limits, config.exclude_paths)
        index = indexer.index(root)
        results = self._run_packs(resolve_packs(config.packs), index, config, budget)
        active = [result for result in results if result.files]

        warnings: List[str] = list(index.warnings)
        for result in results:
            warnings.extend(result.warnings)
        if not active:
            warnings.append(DEEP_ANALYSIS_UNAVAILABLE)

        start_here = compute_start_here(index, active, config.start_here)
        danger_zones = compute_danger_zones(index, active, config.danger_zones)

        primary = max(active, key=lambda result: len(result.files), default=None)
        report = Report(
            folder_map=index.folder_map,
            architecture=primary.architecture if primary else Architecture(),
            start_here=start_here,
            danger_zones=danger_zones,
            run_commands=list(index.run_commands),
            contribute_signals=index.contribute_signals,
            warnings=warnings,
            architectures={result.ecosystem: result.architecture for result in active},
            ecosystems=[result.ecosystem for result in active],
        )
        log_report_warnings(self.logger, warnings)
        self.logger.info(
            "Analysis finished: %d files indexed, %d ecosystems, %d warnings",
            len(index.file_metadata),
            len(active),
            len(warnings),
        )
        return report

    def _run_packs(
        self,
        specs: Sequence[PackSpec],
        index: IndexResult,
        config: AtlasConfig,
        budget: AnalysisBudget,
    ) -> List[PackResult]:
        """Run every pack; results keep dispatch order whatever the completion order."""
        paths = list(index.file_metadata)
        root = Path(index.root)

        def run(spec: PackSpec) -> PackResult:
            result = run_pack(spec, root, paths, limits=config.architecture, budget=budget)
            self.logger.debug("%s pack: %d files, %d edges", spec.label, len(result.files), result.edge_count)
            return result

        if not config.parallel or len(specs) < 2:
            return [run(spec) for spec in specs]
        with ThreadPoolExecutor(max_workers=len(specs), thread_name_prefix="repoatlas-pack") as pool:
            futures = [pool.submit(run, spec) for spec in specs]
            return [future.result() for future in futures]


__all__ = ["DEEP_ANALYSIS_UNAVAILABLE", "Orchestrator"]
