"""Java pack: FQN-based import resolution, framework entry points, test mirrors."""

from __future__ import annotations

import posixpath
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..budget import AnalysisBudget
from ..config import ArchitectureLimits
from ..logging import get_logger
from ..manifests import detect_gradle_modules, detect_maven_modules
from ..models import Landmark, PackResult
from .architecture import reduce_architecture
from .common import (
    PROXIMITY_COLOCATED,
    PROXIMITY_MIRRORED,
    PROXIMITY_NESTED,
    PROXIMITY_NONE,
    brace_complexity,
    has_ignored_segment,
    join_dir,
    parent_dir,
    read_source,
    restrict,
    scan_files,
    strip_top_level_test_root,
)

ECOSYSTEM = "java"
LABEL = "Java"
EXTENSIONS = (".java",)

_LOGGER = get_logger("packs.java")

_IGNORED_DIRS = {"target", "build", ".gradle", ".idea", "out", "bin", ".settings"}

_PACKAGE = re.compile(r"^\s*package\s+([\w.]+)\s*;", re.MULTILINE)
_IMPORT = re.compile(r"^\s*import\s+(static\s+)?([\w.]+(?:\.\*)?)\s*;", re.MULTILINE)

_SPRING_BOOT = re.compile(r"@SpringBootApplication\b|SpringApplication\.run\s*\(")
_SPRING_WEB = re.compile(r"@(?:RestController|Controller|RequestMapping)\b")
_JAX_RS = re.compile(r"@(?:Path|GET|POST|PUT|DELETE|PATCH)\b")
_MAIN_METHOD = re.compile(r"public\s+static\s+void\s+main\s*\(\s*(?:final\s+)?String\s*(?:\[\s*\]|\.\.\.)\s*\w+\s*\)")

_BRANCHES = re.compile(r"\b(?:if|else|switch|case|for|while|do|catch)\b|&&|\|\||\?(?=\s)")
_COMMENT_PREFIXES = ("//", "/*", "*")

_TEST_NAME = re.compile(r"(?:Test|Tests|TestCase|IT)\.java$")
_MAIN_JAVA = re.compile(r"^(.*?)src/main/java/(.+)$")
_SOURCE_ROOT = re.compile(r"(?:^|/)src/(?:main|test)/java/(.+)/[^/]+\.java$")

_UNIT_TEST_SUFFIXES = ("Test", "Tests", "TestCase")
_MAIN_LISTED = 5


def select_files(paths: Iterable[str]) -> List[str]:
    return sorted(
        path
        for path in paths
        if path.endswith(EXTENSIONS) and not has_ignored_segment(path, _IGNORED_DIRS)
    )


def _class_name(path: str) -> str:
    return posixpath.basename(path)[: -len(".java")]


# Imports


class ClassIndex:
    """Fully-qualified class names and package membership of the pack's files."""

    def __init__(self, packages: Dict[str, str]) -> None:
        self.packages = packages
        self.by_fqn: Dict[str, str] = {}
        self.by_package: Dict[str, List[str]] = {}
        for path in sorted(packages):
            package = packages[path]
            name = _class_name(path)
            self.by_fqn.setdefault(f"{package}.{name}" if package else name, path)
            self.by_package.setdefault(package, []).append(path)

    @classmethod
    def build(cls, root: Path, files: Sequence[str], budget: AnalysisBudget | None = None) -> "ClassIndex":
        packages: Dict[str, str] = {}
        for position, path in enumerate(files):
            if budget is not None and budget.exhausted():
                _LOGGER.debug("Class index stopped after %d of %d files", position, len(files))
                break
            text = read_source(root, path)
            if text is None:
                continue
            match = _PACKAGE.search(text)
            packages[path] = match.group(1) if match else ""
        return cls(packages)

    def resolve(self, spec: str, static: bool = False) -> List[str]:
        if spec.endswith(".*"):
            owner = spec[:-2]
            if static and owner in self.by_fqn:
                return [self.by_fqn[owner]]
            return list(self.by_package.get(owner, ()))
        resolved = self.by_fqn.get(spec)
        if resolved:
            return [resolved]
        if static and "." in spec:
            owner = self.by_fqn.get(spec.rsplit(".", 1)[0])
            if owner:
                return [owner]
        return []


def extract_imports(text: str) -> List[Tuple[str, bool]]:
    """Return ``(spec, is_static)`` pairs in source order."""
    return [(match.group(2), bool(match.group(1))) for match in _IMPORT.finditer(text)]


# Entry points and landmarks


def entrypoint_kind(text: str) -> Optional[str]:
    """Classify a source as a framework entry point, a main class or neither."""
    if _SPRING_BOOT.search(text) or _SPRING_WEB.search(text) or _JAX_RS.search(text):
        return "framework"
    if _MAIN_METHOD.search(text):
        return "main"
    return None


def detect_landmarks(files: Iterable[str]) -> Dict[str, Landmark]:
    landmarks: Dict[str, Landmark] = {}
    for path in files:
        name = _class_name(path)
        if name.endswith("Application"):
            landmarks[path] = Landmark("bootstrap", "Application bootstrap class")
        elif name.endswith(("Controller", "Resource")):
            landmarks[path] = Landmark("route", "Request handler")
        elif name.endswith(("Router", "Routes")):
            landmarks[path] = Landmark("router", "Router definition")
    return landmarks


# Tests


def is_test_file(path: str) -> bool:
    return bool(_TEST_NAME.search(path)) or "src/test/" in f"/{path}"


class JavaProximity:
    """Proximity tiers using the Maven/Gradle ``src/main`` to ``src/test`` mirror."""

    def __init__(self, test_files: Iterable[str]) -> None:
        self.test_files = frozenset(test_files)
        self.test_dirs = frozenset(parent_dir(path) for path in self.test_files)
        mirrored: Set[str] = set()
        for path in self.test_files:
            below_root = strip_top_level_test_root(path)
            if below_root is not None and _TEST_NAME.search(below_root):
                mirrored.add(_TEST_NAME.sub("", below_root))
        self.mirrored = frozenset(mirrored)

    def score(self, path: str) -> int:
        if path in self.test_files:
            return PROXIMITY_COLOCATED
        directory = parent_dir(path)
        if directory in self.test_dirs:
            return PROXIMITY_COLOCATED

        name = _class_name(path)
        mirror_dir = self._mirror_dir(path)
        if mirror_dir is not None:
            if any(f"{mirror_dir}/{name}{suffix}.java" in self.test_files for suffix in _UNIT_TEST_SUFFIXES):
                return PROXIMITY_COLOCATED
            if f"{mirror_dir}/{name}IT.java" in self.test_files:
                return PROXIMITY_NESTED
        if join_dir(directory, "test") in self.test_dirs:
            return PROXIMITY_NESTED
        if mirror_dir is not None and mirror_dir in self.test_dirs:
            return PROXIMITY_MIRRORED
        if path[: -len(".java")] in self.mirrored:
            return PROXIMITY_MIRRORED
        return PROXIMITY_NONE

    @staticmethod
    def _mirror_dir(path: str) -> Optional[str]:
        match = _MAIN_JAVA.match(path)
        if not match:
            return None
        prefix, below = match.groups()
        package_dir = posixpath.dirname(below)
        mirror = f"{prefix}src/test/java"
        return f"{mirror}/{package_dir}" if package_dir else mirror


# Architecture


def package_of(path: str, packages: Dict[str, str]) -> str:
    match = _SOURCE_ROOT.search(path)
    if match:
        return match.group(1).replace("/", ".")
    declared = packages.get(path)
    if declared:
        return declared
    directory = parent_dir(path)
    return directory if directory == "." else directory.replace("/", ".")


def _log_build_modules(root: Path) -> None:
    maven = detect_maven_modules(root)
    gradle = detect_gradle_modules(root)
    if maven:
        _LOGGER.debug("Maven modules: %s", ", ".join(maven))
    if gradle:
        _LOGGER.debug("Gradle modules: %s", ", ".join(gradle))


def analyze(
    root: str | Path,
    files: Sequence[str],
    *,
    limits: ArchitectureLimits | None = None,
    budget: AnalysisBudget | None = None,
) -> PackResult:
    """Run the Java pack over ``files`` (repo-relative paths).

    Class names are indexed in a first pass because an import can only be
    resolved once every file's ``package`` declaration is known.
    """
    root_path = Path(root)
    files = select_files(files)
    if not files:
        return PackResult.empty(ECOSYSTEM)

    budget = budget or AnalysisBudget.unlimited()
    _log_build_modules(root_path)
    index = ClassIndex.build(root_path, files, budget)
    test_files = {path for path in files if is_test_file(path)}
    entrypoints: Set[str] = set()
    main_classes: List[str] = []

    def extract_targets(path: str, text: str) -> Iterable[str]:
        kind = entrypoint_kind(text)
        if kind:
            entrypoints.add(path)
            if kind == "main":
                main_classes.append(path)
        for spec, static in extract_imports(text):
            yield from index.resolve(spec, static)

    outcome = scan_files(
        root_path,
        files,
        label=LABEL,
        budget=budget,
        extract_targets=extract_targets,
        measure=lambda text: brace_complexity(text, _BRANCHES, _COMMENT_PREFIXES),
    )
    processed = outcome.processed
    reached = set(processed)

    warnings: List[str] = []
    if len(main_classes) > 1:
        listed = ", ".join(main_classes[:_MAIN_LISTED])
        more = "..." if len(main_classes) > _MAIN_LISTED else ""
        warnings.append(f"Multiple main() entrypoints detected: {listed}{more}")

    proximity = JavaProximity(test_files)
    architecture, architecture_warnings = reduce_architecture(
        processed,
        outcome.imports,
        group_of=lambda path: package_of(path, index.packages),
        unit="packages",
        limits=limits,
    )
    _LOGGER.debug("Analyzed %d files, %d classes indexed", len(processed), len(index.by_fqn))

    return PackResult(
        ecosystem=ECOSYSTEM,
        files=tuple(processed),
        imports=outcome.imports,
        entrypoints=restrict(entrypoints, reached),
        test_files=restrict(test_files, reached),
        complexity=outcome.complexity,
        test_proximity={path: proximity.score(path) for path in processed},
        landmarks=detect_landmarks(processed),
        architecture=architecture,
        warnings=tuple(warnings + outcome.warnings + architecture_warnings),
    )


__all__ = [
    "ClassIndex",
    "ECOSYSTEM",
    "EXTENSIONS",
    "JavaProximity",
    "analyze",
    "entrypoint_kind",
    "extract_imports",
    "is_test_file",
    "package_of",
]
