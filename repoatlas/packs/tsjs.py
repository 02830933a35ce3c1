"""TypeScript/JavaScript pack: imports, entry points, tests and complexity."""

from __future__ import annotations

import posixpath
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..budget import AnalysisBudget
from ..config import ArchitectureLimits
from ..logging import get_logger
from ..manifests import ManifestError, first_string, load_package_json, package_scripts
from ..models import Landmark, PackResult
from .architecture import reduce_architecture
from .common import (
    ProximityIndex,
    brace_complexity,
    has_ignored_segment,
    parent_dir,
    restrict,
    scan_files,
)

ECOSYSTEM = "tsjs"
LABEL = "TypeScript/JavaScript"
EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")

_LOGGER = get_logger("packs.tsjs")

_IGNORED_DIRS = {"node_modules", ".next", "dist", "build", "coverage"}
_EXT = r"(?:ts|tsx|js|jsx|mjs|cjs)"

_STATIC_IMPORT = re.compile(r"""\bimport\s+(?:type\s+)?(?:[\w*{}\s,$]+?\s+from\s+)?["']([^"'\n]+)["']""")
_REEXPORT = re.compile(
    r"""\bexport\s+(?:type\s+)?(?:\*(?:\s+as\s+[\w$]+)?|\{[^}]*\})\s*from\s+["']([^"'\n]+)["']"""
)
_DYNAMIC_IMPORT = re.compile(r"""\bimport\s*\(\s*["']([^"'\n]+)["']\s*\)""")
_REQUIRE = re.compile(r"""\brequire\s*\(\s*["']([^"'\n]+)["']\s*\)""")

_BRANCHES = re.compile(r"\b(?:if|else|for|while|switch|case|catch)\b|&&|\|\||\?(?=\s)")
_COMMENT_PREFIXES = ("//", "/*", "*")

_TEST_FILE = re.compile(rf"\.(?:test|spec)\.{_EXT}$", re.IGNORECASE)
_TEST_DIR = re.compile(r"(?:^|/)__tests__/")
_SOURCE_EXT = re.compile(rf"\.{_EXT}$", re.IGNORECASE)

_ROOT_PAGE = re.compile(rf"^(?:src/)?app/page\.{_EXT}$")
_ROOT_LAYOUT = re.compile(rf"^(?:src/)?app/layout\.{_EXT}$")
_APP_PAGE_OR_LAYOUT = re.compile(rf"^(?:src/)?app/(?:.+/)?(?:page|layout)\.{_EXT}$")
_APP_ROUTE = re.compile(rf"^(?:src/)?app/(?:.+/)?route\.{_EXT}$")
_API_ROUTE = re.compile(rf"^(?:src/)?app/api/.+/route\.{_EXT}$")
_PAGES_DIR = re.compile(rf"^(?:src/)?pages/.+\.{_EXT}$")
_PAGES_INDEX = re.compile(rf"^(?:src/)?pages/index\.{_EXT}$")
_PAGES_API = re.compile(rf"^(?:src/)?pages/api/.+\.{_EXT}$")
_ROUTER_FILE = re.compile(rf"(?:^|/)(?:router|routes)\.{_EXT}$|(?:^|/)routes/[^/]+\.{_EXT}$")

_CONVENTIONAL_ENTRIES = ("src/index", "src/main", "src/server", "src/app", "index", "main", "server")
_ENTRY_SCRIPTS = ("dev", "start", "build", "serve")
_SCRIPT_PATH = re.compile(rf"(?:^|[\s\"'=])(\.{{0,2}}/?[\w./-]+\.{_EXT})(?=[\s\"']|$)")


def select_files(paths: Iterable[str]) -> List[str]:
    return sorted(
        path
        for path in paths
        if path.endswith(EXTENSIONS) and not has_ignored_segment(path, _IGNORED_DIRS)
    )


# Imports


def extract_specifiers(text: str) -> List[str]:
    """Return module specifiers in order of first appearance."""
    found: List[Tuple[int, str]] = []
    for pattern in (_STATIC_IMPORT, _REEXPORT, _DYNAMIC_IMPORT, _REQUIRE):
        found.extend((match.start(), match.group(1)) for match in pattern.finditer(text))
    seen: Set[str] = set()
    ordered: List[str] = []
    for _, spec in sorted(found):
        if spec not in seen:
            seen.add(spec)
            ordered.append(spec)
    return ordered


def resolve_specifier(importer: str, spec: str, file_set: Set[str]) -> Optional[str]:
    """Resolve a relative specifier to a file of the pack; anything else is external."""
    if not spec.startswith(("./", "../")):
        return None
    base = posixpath.normpath(posixpath.join(parent_dir(importer), spec))
    if base == ".." or base.startswith("../"):
        return None

    candidates = [base]
    stem, extension = posixpath.splitext(base)
    if extension in (".js", ".jsx", ".mjs", ".cjs"):
        # ESM-style TypeScript imports name the compiled file.
        candidates.extend(f"{stem}{swap}" for swap in (".ts", ".tsx"))
    candidates.extend(f"{base}{ext}" for ext in EXTENSIONS)
    index_dir = "" if base == "." else f"{base}/"
    candidates.extend(f"{index_dir}index{ext}" for ext in EXTENSIONS)

    for candidate in candidates:
        if candidate in file_set:
            return candidate
    return None


# Entry points and landmarks


def detect_entrypoints(root: Path, files: Sequence[str]) -> Tuple[Set[str], List[str]]:
    entrypoints: Set[str] = set()
    warnings: List[str] = []
    file_set = set(files)

    for path in files:
        if (
            _APP_PAGE_OR_LAYOUT.match(path)
            or _APP_ROUTE.match(path)
            or _PAGES_DIR.match(path)
        ):
            entrypoints.add(path)

    for stem in _CONVENTIONAL_ENTRIES:
        for ext in EXTENSIONS:
            candidate = f"{stem}{ext}"
            if candidate in file_set:
                entrypoints.add(candidate)

    try:
        package = load_package_json(root)
    except ManifestError as exc:
        _LOGGER.debug("package.json unreadable: %s", exc)
        warnings.append("Could not parse package.json for entrypoints")
        return entrypoints, warnings

    declared: List[str] = []
    main = first_string(package, "main")
    if main:
        declared.append(main)
    bin_field = package.get("bin")
    if isinstance(bin_field, str):
        declared.append(bin_field)
    elif isinstance(bin_field, dict):
        declared.extend(value for value in bin_field.values() if isinstance(value, str))
    scripts = package_scripts(package)
    for name in _ENTRY_SCRIPTS:
        command = scripts.get(name)
        if command:
            declared.extend(match.group(1) for match in _SCRIPT_PATH.finditer(command))

    for raw in declared:
        candidate = posixpath.normpath(raw.strip())
        resolved = resolve_specifier("package.json", f"./{candidate}", file_set)
        if resolved:
            entrypoints.add(resolved)

    return entrypoints, warnings


def detect_landmarks(files: Iterable[str]) -> Dict[str, Landmark]:
    landmarks: Dict[str, Landmark] = {}
    for path in files:
        if _ROOT_PAGE.match(path) or _PAGES_INDEX.match(path):
            landmarks[path] = Landmark("page", "Next.js root page")
        elif _ROOT_LAYOUT.match(path):
            landmarks[path] = Landmark("layout", "Next.js root layout")
        elif _API_ROUTE.match(path) or _PAGES_API.match(path):
            landmarks[path] = Landmark("route", "API route handler")
        elif _ROUTER_FILE.search(path):
            landmarks[path] = Landmark("router", "Router definition")
    return landmarks


# Tests


def is_test_file(path: str) -> bool:
    return bool(_TEST_FILE.search(path) or _TEST_DIR.search(path))


def _mirror_key(below_root: str) -> Optional[str]:
    if not _TEST_FILE.search(below_root):
        return None
    return _TEST_FILE.sub("", below_root)


def _stems(path: str) -> Tuple[str, ...]:
    stem = _SOURCE_EXT.sub("", path)
    if stem.startswith("src/"):
        return (stem, stem[len("src/"):])
    return (stem,)


def analyze(
    root: str | Path,
    files: Sequence[str],
    *,
    limits: ArchitectureLimits | None = None,
    budget: AnalysisBudget | None = None,
) -> PackResult:
    """Run the TypeScript/JavaScript pack over ``files`` (repo-relative paths)."""
    root_path = Path(root)
    files = select_files(files)
    if not files:
        return PackResult.empty(ECOSYSTEM)

    file_set = set(files)
    test_files = {path for path in files if is_test_file(path)}
    entrypoints, warnings = detect_entrypoints(root_path, files)

    def extract_targets(path: str, text: str) -> Iterable[str]:
        for spec in extract_specifiers(text):
            resolved = resolve_specifier(path, spec, file_set)
            if resolved:
                yield resolved

    outcome = scan_files(
        root_path,
        files,
        label=LABEL,
        budget=budget or AnalysisBudget.unlimited(),
        extract_targets=extract_targets,
        measure=lambda text: brace_complexity(text, _BRANCHES, _COMMENT_PREFIXES),
    )
    processed = outcome.processed
    reached = set(processed)

    proximity = ProximityIndex(test_files, nested_dirs=("__tests__",), mirror_key=_mirror_key)
    architecture, architecture_warnings = reduce_architecture(
        processed, outcome.imports, group_of=parent_dir, unit="folders", limits=limits
    )
    _LOGGER.debug("Analyzed %d files, %d entrypoints", len(processed), len(entrypoints))

    return PackResult(
        ecosystem=ECOSYSTEM,
        files=tuple(processed),
        imports=outcome.imports,
        entrypoints=restrict(entrypoints, reached),
        test_files=restrict(test_files, reached),
        complexity=outcome.complexity,
        test_proximity={path: proximity.score(path, _stems(path)) for path in processed},
        landmarks=detect_landmarks(processed),
        architecture=architecture,
        warnings=tuple(warnings + outcome.warnings + architecture_warnings),
    )


__all__ = [
    "ECOSYSTEM",
    "EXTENSIONS",
    "analyze",
    "detect_entrypoints",
    "extract_specifiers",
    "is_test_file",
    "resolve_specifier",
]
