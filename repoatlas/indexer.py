"""Workspace indexing: folder map, file metadata, docs, CI and run commands."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .config import IndexLimits
from .logging import get_logger
from .manifests import (
    ManifestError,
    build_node_script_command,
    detect_node_package_manager,
    load_package_json,
    load_pyproject,
    package_scripts,
    pyproject_scripts,
)
from .models import FileMeta, FolderMapNode, IndexResult, RunCommand

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    ".venv",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".idea",
}

_LANGUAGE_BY_EXTENSION = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".py": "python",
    ".pyi": "python",
    ".java": "java",
    ".kt": "kotlin",
    ".kts": "kotlin",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".php": "php",
    ".cs": "csharp",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cc": "cpp",
    ".swift": "swift",
    ".scala": "scala",
    ".sh": "shell",
    ".md": "markdown",
    ".rst": "restructuredtext",
    ".json": "json",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".toml": "toml",
    ".xml": "xml",
}

_KEY_DOC_PATTERNS = tuple(
    re.compile(rf"^{name}(\.[^.]+)?$", re.IGNORECASE)
    for name in ("README", "CONTRIBUTING", "LICENSE", "CHANGELOG")
)

_CI_DIRECTORIES = (".github/workflows/", ".circleci/")
_CI_FILENAMES = {
    ".gitlab-ci.yml",
    ".gitlab-ci.yaml",
    "Jenkinsfile",
    "azure-pipelines.yml",
    "bitbucket-pipelines.yml",
    ".travis.yml",
}

_LOGGER = get_logger("indexer")


@dataclass
class IgnoreRule:
    """Glob rule from the ``exclude_paths`` setting, with gitignore-like flags."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool

    @classmethod
    def parse(cls, raw: str) -> Optional["IgnoreRule"]:
        pattern = raw.strip()
        negate = pattern.startswith("!")
        if negate:
            pattern = pattern[1:]
        directory_only = pattern.endswith("/")
        pattern = pattern.rstrip("/")
        anchored = pattern.startswith("/") or "/" in pattern
        pattern = pattern.lstrip("/")
        if not pattern:
            return None
        return cls(pattern=pattern, directory_only=directory_only, anchored=anchored, negate=negate)

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if self.directory_only and not is_dir:
            return False
        if self.anchored:
            return fnmatchcase(rel_path, self.pattern)
        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def _is_excluded(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    excluded = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            excluded = not rule.negate
    return excluded


def detect_language(extension: str) -> str:
    return _LANGUAGE_BY_EXTENSION.get(extension.lower(), "unknown")


def is_key_doc(name: str) -> bool:
    return any(pattern.match(name) for pattern in _KEY_DOC_PATTERNS)


def is_ci_config(rel_path: str) -> bool:
    if any(rel_path.startswith(prefix) or f"/{prefix}" in rel_path for prefix in _CI_DIRECTORIES):
        return True
    return rel_path.rsplit("/", 1)[-1] in _CI_FILENAMES


class _Walk:
    """Mutable state of a single indexing walk; never outlives ``index``."""

    def __init__(self, root: Path, limits: IndexLimits, rules: Sequence[IgnoreRule]) -> None:
        self.root = root
        self.limits = limits
        self.rules = rules
        self.file_metadata: Dict[str, FileMeta] = {}
        self.key_docs: List[str] = []
        self.ci_configs: List[str] = []
        self.omitted_files = 0
        self.depth_limited = 0

    def directory(self, path: Path, rel_path: str, depth: int) -> FolderMapNode:
        node_path = rel_path or "."
        if depth >= self.limits.max_depth:
            self.depth_limited += 1
            return FolderMapNode(path=node_path, type="dir", children=[])

        try:
            with os.scandir(path) as iterator:
                entries = sorted(iterator, key=lambda entry: entry.name)
        except OSError:
            _LOGGER.debug("Unable to list directory %s", path)
            return FolderMapNode(path=node_path, type="dir", children=[])

        directories: List[FolderMapNode] = []
        files: List[FolderMapNode] = []
        for entry in entries:
            child_rel = f"{rel_path}/{entry.name}" if rel_path else entry.name
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError:
                continue
            if is_dir:
                if entry.name in _EXCLUDED_DIRS or _is_excluded(child_rel, True, self.rules):
                    continue
                directories.append(self.directory(Path(entry.path), child_rel, depth + 1))
                continue
            if _is_excluded(child_rel, False, self.rules):
                continue
            self.file(entry, child_rel)
            files.append(FolderMapNode(path=child_rel, type="file"))

        directories.sort(key=lambda node: node.path)
        files.sort(key=lambda node: node.path)
        return FolderMapNode(path=node_path, type="dir", children=directories + files)

    def file(self, entry: os.DirEntry, rel_path: str) -> None:
        if len(self.file_metadata) < self.limits.max_files:
            try:
                size = entry.stat(follow_symlinks=False).st_size
            except OSError:
                size = 0
            extension = os.path.splitext(entry.name)[1]
            self.file_metadata[rel_path] = FileMeta(
                path=rel_path,
                size=size,
                extension=extension,
                language=detect_language(extension),
            )
        else:
            self.omitted_files += 1

        if is_key_doc(entry.name):
            self.key_docs.append(rel_path)
        if is_ci_config(rel_path):
            self.ci_configs.append(rel_path)


class WorkspaceIndexer:
    """Walks a materialized workspace once and records its shape."""

    def __init__(
        self,
        limits: IndexLimits | None = None,
        exclude_paths: Sequence[str] = (),
    ) -> None:
        self.limits = limits or IndexLimits()
        self.rules = [rule for rule in (IgnoreRule.parse(raw) for raw in exclude_paths) if rule]

    def index(self, root: str | Path) -> IndexResult:
        """Return the folder map, metadata and contribution signals for ``root``."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Workspace path not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Workspace path is not a directory: {root}")

        walk = _Walk(root_path, self.limits, self.rules)
        folder_map = walk.directory(root_path, "", 0)

        warnings: List[str] = []
        if walk.omitted_files:
            warnings.append(
                f"Max file count reached ({self.limits.max_files}); "
                f"{walk.omitted_files} files omitted from analysis."
            )
        if walk.depth_limited:
            _LOGGER.debug("%d directories truncated at depth %d", walk.depth_limited, self.limits.max_depth)

        run_commands = extract_run_commands(root_path, walk.file_metadata)
        _LOGGER.debug(
            "Indexed %d files (%d key docs, %d CI configs, %d run commands)",
            len(walk.file_metadata),
            len(walk.key_docs),
            len(walk.ci_configs),
            len(run_commands),
        )

        return IndexResult(
            root=str(root_path),
            folder_map=folder_map,
            file_metadata=walk.file_metadata,
            key_docs=sorted(walk.key_docs),
            ci_configs=sorted(walk.ci_configs),
            run_commands=run_commands,
            warnings=warnings,
        )


def extract_run_commands(root: Path, file_metadata: Dict[str, FileMeta]) -> List[RunCommand]:
    """Collect commands declared in package.json scripts and pyproject scripts.

    Malformed manifests contribute nothing and never raise.
    """
    commands: List[RunCommand] = []

    try:
        package = load_package_json(root)
    except ManifestError as exc:
        _LOGGER.debug("Skipping package.json scripts: %s", exc)
        package = {}
    scripts = package_scripts(package)
    if scripts:
        manager = detect_node_package_manager(file_metadata.keys())
        for name in scripts:
            commands.append(
                RunCommand(
                    source="package.json",
                    command=build_node_script_command(name, manager),
                    description=name,
                )
            )

    try:
        pyproject = load_pyproject(root)
    except ManifestError as exc:
        _LOGGER.debug("Skipping pyproject.toml scripts: %s", exc)
        pyproject = {}
    for name, target in pyproject_scripts(pyproject):
        commands.append(RunCommand(source="pyproject.toml", command=name, description=target))

    return commands


__all__ = ["IgnoreRule", "WorkspaceIndexer", "detect_language", "extract_run_commands", "is_ci_config", "is_key_doc"]
