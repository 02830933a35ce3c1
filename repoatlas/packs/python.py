"""Python pack: module resolution across package roots, entry points and tests."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..budget import AnalysisBudget
from ..config import ArchitectureLimits
from ..logging import get_logger
from ..manifests import (
    ManifestError,
    load_pyproject,
    load_setup_py,
    pyproject_declares_src_layout,
    pyproject_scripts,
    setup_py_console_scripts,
    setup_py_declares_src_layout,
)
from ..models import ComplexitySignal, Landmark, PackResult
from .architecture import reduce_architecture
from .common import (
    PROXIMITY_COLOCATED,
    ProximityIndex,
    count_loc,
    has_ignored_segment,
    indentation_nesting,
    parent_dir,
    restrict,
    scan_files,
)

ECOSYSTEM = "python"
LABEL = "Python"
EXTENSIONS = (".py",)

_LOGGER = get_logger("packs.python")

_IGNORED_DIRS = {
    "venv",
    ".venv",
    "site-packages",
    "dist",
    "build",
    "__pycache__",
    ".pytest_cache",
    ".tox",
    "eggs",
    ".eggs",
}

_IMPORT = re.compile(
    r"^[ \t]*import[ \t]+([\w.]+(?:[ \t]+as[ \t]+\w+)?(?:[ \t]*,[ \t]*[\w.]+(?:[ \t]+as[ \t]+\w+)?)*)",
    re.MULTILINE,
)
_FROM_IMPORT = re.compile(
    r"^[ \t]*from[ \t]+(\.*)([\w.]*)[ \t]+import[ \t]+(\([^)]*\)|[^#\n]+)",
    re.MULTILINE,
)
_ALIAS = re.compile(r"\s+as\s+\w+$")
_MAIN_GUARD = re.compile(r"""^if\s+__name__\s*==\s*["']__main__["']\s*:""", re.MULTILINE)

_BRANCHES = re.compile(r"\b(?:if|elif|else|for|while|try|except|finally|with|and|or|match|case)\b")
_COMMENT_PREFIXES = ("#", '"""', "'''")

_ENTRY_BASENAMES = {"__main__", "main", "app", "cli", "server", "manage", "run", "wsgi", "asgi"}
_TEST_SEGMENTS = {"tests", "test"}

_LANDMARKS = {
    "urls.py": Landmark("route", "Django URL configuration"),
    "routes.py": Landmark("router", "Route definitions"),
    "router.py": Landmark("router", "Router definition"),
    "views.py": Landmark("router", "Request handlers"),
    "api.py": Landmark("router", "API surface"),
    "wsgi.py": Landmark("bootstrap", "WSGI application bootstrap"),
    "asgi.py": Landmark("bootstrap", "ASGI application bootstrap"),
}


@dataclass(frozen=True)
class ImportStatement:
    """One ``import``/``from ... import`` statement.

    ``level`` counts the leading dots of a relative import; ``names`` holds the
    imported names of a ``from`` statement (possibly submodules).
    """

    level: int
    module: str
    names: Tuple[str, ...] = ()


def select_files(paths: Iterable[str]) -> List[str]:
    return sorted(
        path
        for path in paths
        if path.endswith(EXTENSIONS) and not has_ignored_segment(path, _IGNORED_DIRS)
    )


# Imports


def extract_imports(text: str) -> List[ImportStatement]:
    found: List[Tuple[int, ImportStatement]] = []
    for match in _IMPORT.finditer(text):
        for part in match.group(1).split(","):
            module = _ALIAS.sub("", part.strip())
            if module:
                found.append((match.start(), ImportStatement(level=0, module=module)))
    for match in _FROM_IMPORT.finditer(text):
        dots, module, raw_names = match.groups()
        names = tuple(
            name
            for name in (
                _ALIAS.sub("", chunk.strip()) for chunk in raw_names.strip("()\\ \t\n").split(",")
            )
            if name and name != "*" and name.isidentifier()
        )
        if not dots and not module:
            continue
        found.append((match.start(), ImportStatement(level=len(dots), module=module, names=names)))
    return [statement for _, statement in sorted(found, key=lambda item: item[0])]


def detect_package_roots(root: Path, files: Sequence[str]) -> List[str]:
    """Return import roots to try, ``src/`` first when the project uses a src layout."""
    src_layout = any(path.startswith("src/") and path.endswith("/__init__.py") for path in files)
    if not src_layout:
        try:
            src_layout = pyproject_declares_src_layout(load_pyproject(root))
        except ManifestError as exc:
            _LOGGER.debug("Ignoring pyproject.toml layout hints: %s", exc)
    if not src_layout:
        src_layout = setup_py_declares_src_layout(load_setup_py(root))
    return ["src", ""] if src_layout else [""]


def _module_file(base: str, module: str, file_set: Set[str]) -> Optional[str]:
    prefix = "" if base in ("", ".") else f"{base}/"
    if not module:
        package_init = f"{prefix}__init__.py"
        return package_init if package_init in file_set else None
    stem = prefix + module.replace(".", "/")
    for candidate in (f"{stem}.py", f"{stem}/__init__.py"):
        if candidate in file_set:
            return candidate
    return None


def _relative_base(importer: str, level: int) -> Optional[str]:
    base = parent_dir(importer)
    for _ in range(level - 1):
        if base == ".":
            return None
        base = parent_dir(base)
    return base


def resolve_import(
    importer: str,
    statement: ImportStatement,
    file_set: Set[str],
    package_roots: Sequence[str],
) -> List[str]:
    """Resolve ``statement`` to pack files; third-party imports resolve to nothing."""
    if statement.level:
        base = _relative_base(importer, statement.level)
        if base is None:
            return []
        bases: Sequence[str] = [base]
    else:
        bases = package_roots

    targets: List[str] = []
    for name in statement.names:
        submodule = f"{statement.module}.{name}" if statement.module else name
        for base in bases:
            resolved = _module_file(base, submodule, file_set)
            if resolved:
                targets.append(resolved)
                break
    if len(targets) < len(statement.names) or not statement.names:
        for base in bases:
            resolved = _module_file(base, statement.module, file_set)
            if resolved:
                targets.append(resolved)
                break
    return targets


# Entry points and landmarks


def _script_target_file(target: str, file_set: Set[str], package_roots: Sequence[str]) -> Optional[str]:
    module = target.split(":", 1)[0].strip()
    for base in package_roots:
        resolved = _module_file(base, module, file_set)
        if resolved:
            return resolved
    return None


def detect_entrypoints(root: Path, files: Sequence[str], package_roots: Sequence[str]) -> Set[str]:
    """Entry points known without reading sources (names and manifests)."""
    file_set = set(files)
    entrypoints = {
        path for path in files if posixpath.basename(path)[: -len(".py")] in _ENTRY_BASENAMES
    }

    scripts: List[Tuple[str, str]] = []
    try:
        scripts.extend(pyproject_scripts(load_pyproject(root)))
    except ManifestError as exc:
        _LOGGER.debug("Ignoring pyproject.toml scripts: %s", exc)
    scripts.extend(setup_py_console_scripts(load_setup_py(root)))

    for name, target in scripts:
        resolved = _script_target_file(target, file_set, package_roots)
        if resolved:
            entrypoints.add(resolved)
        else:
            _LOGGER.debug("Script %s points at %s, which is not in the workspace", name, target)
    return entrypoints


def detect_landmarks(files: Iterable[str]) -> Dict[str, Landmark]:
    landmarks: Dict[str, Landmark] = {}
    for path in files:
        landmark = _LANDMARKS.get(posixpath.basename(path))
        if landmark:
            landmarks[path] = landmark
    return landmarks


# Tests and complexity


def is_test_file(path: str) -> bool:
    name = posixpath.basename(path)
    if name.startswith("test_") or name.endswith("_test.py") or name == "conftest.py":
        return True
    return any(segment in _TEST_SEGMENTS for segment in path.split("/")[:-1])


def _mirror_key(below_root: str) -> Optional[str]:
    directory, name = posixpath.split(below_root)
    stem = name[: -len(".py")] if name.endswith(".py") else name
    if stem.startswith("test_"):
        stem = stem[len("test_"):]
    elif stem.endswith("_test"):
        stem = stem[: -len("_test")]
    else:
        return None
    return f"{directory}/{stem}" if directory else stem


def _stems(path: str) -> Tuple[str, ...]:
    stem = path[: -len(".py")]
    if stem.startswith("src/"):
        return (stem, stem[len("src/"):])
    return (stem,)


def measure_complexity(text: str) -> ComplexitySignal:
    lines = text.splitlines()
    return ComplexitySignal(
        loc=count_loc(lines, _COMMENT_PREFIXES),
        branches=len(_BRANCHES.findall(text)),
        max_nesting=indentation_nesting(lines),
    )


def _folder_label(folder: str) -> str:
    return posixpath.basename(folder) or folder


def analyze(
    root: str | Path,
    files: Sequence[str],
    *,
    limits: ArchitectureLimits | None = None,
    budget: AnalysisBudget | None = None,
) -> PackResult:
    """Run the Python pack over ``files`` (repo-relative paths)."""
    root_path = Path(root)
    files = select_files(files)
    if not files:
        return PackResult.empty(ECOSYSTEM)

    file_set = set(files)
    package_roots = detect_package_roots(root_path, files)
    test_files = {path for path in files if is_test_file(path)}
    entrypoints = detect_entrypoints(root_path, files, package_roots)
    _LOGGER.debug("Package roots: %s", package_roots)

    def extract_targets(path: str, text: str) -> Iterable[str]:
        # The main guard is only visible in the source, so it is picked up here.
        if _MAIN_GUARD.search(text):
            entrypoints.add(path)
        for statement in extract_imports(text):
            yield from resolve_import(path, statement, file_set, package_roots)

    outcome = scan_files(
        root_path,
        files,
        label=LABEL,
        budget=budget or AnalysisBudget.unlimited(),
        extract_targets=extract_targets,
        measure=measure_complexity,
    )
    processed = outcome.processed
    reached = set(processed)

    # conftest.py only holds fixtures, so it is no evidence of nearby coverage.
    proximity = ProximityIndex(
        (path for path in test_files if posixpath.basename(path) != "conftest.py"),
        nested_dirs=("tests", "test"),
        mirror_key=_mirror_key,
    )
    architecture, architecture_warnings = reduce_architecture(
        processed,
        outcome.imports,
        group_of=parent_dir,
        label_of=_folder_label,
        unit="folders",
        limits=limits,
    )
    _LOGGER.debug("Analyzed %d files, %d entrypoints", len(processed), len(entrypoints))

    return PackResult(
        ecosystem=ECOSYSTEM,
        files=tuple(processed),
        imports=outcome.imports,
        entrypoints=restrict(entrypoints, reached),
        test_files=restrict(test_files, reached),
        complexity=outcome.complexity,
        test_proximity={
            path: PROXIMITY_COLOCATED if path in test_files else proximity.score(path, _stems(path))
            for path in processed
        },
        landmarks=detect_landmarks(processed),
        architecture=architecture,
        warnings=tuple(outcome.warnings + architecture_warnings),
    )


__all__ = [
    "ECOSYSTEM",
    "EXTENSIONS",
    "ImportStatement",
    "analyze",
    "detect_entrypoints",
    "detect_package_roots",
    "extract_imports",
    "is_test_file",
    "measure_complexity",
    "resolve_import",
]
