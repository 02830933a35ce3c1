"""Readers for package manifests found at the workspace root."""

from __future__ import annotations

import json
import re
import tomllib
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .logging import get_logger

_LOGGER = get_logger("manifests")

_SETUP_CONSOLE_SCRIPTS = re.compile(
    r"['\"]console_scripts['\"]\s*:\s*\[(?P<body>[^\]]*)\]", re.DOTALL
)
_SETUP_SCRIPT_ENTRY = re.compile(r"['\"]\s*([\w.-]+)\s*=\s*([\w.]+)\s*:\s*([\w.]+)\s*['\"]")
_SETUP_SRC_LAYOUT = re.compile(
    r"package_dir\s*=\s*\{[^}]*['\"]{2}\s*:\s*['\"]src['\"]|find_packages\s*\(\s*(where\s*=\s*)?['\"]src['\"]"
)
_MAVEN_MODULE = re.compile(r"<module>\s*([^<]+?)\s*</module>")
_GRADLE_INCLUDE = re.compile(r"include\s*\(?\s*((?:['\"][^'\"]+['\"]\s*,?\s*)+)\)?")
_QUOTED = re.compile(r"['\"]([^'\"]+)['\"]")


class ManifestError(ValueError):
    """Raised when a manifest exists but cannot be decoded."""


# Node.js manifest helpers


def load_package_json(root: Path) -> Dict[str, object]:
    """Return the parsed package.json contents, ``{}`` when absent.

    Raises ``ManifestError`` when the file exists but is not a JSON object so
    callers can decide whether to surface a warning.
    """
    package_json = root / "package.json"
    if not package_json.is_file():
        return {}
    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ManifestError(f"Could not parse package.json: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestError("package.json must contain a JSON object")
    return data


def package_scripts(package: Dict[str, object]) -> Dict[str, str]:
    scripts = package.get("scripts")
    if not isinstance(scripts, dict):
        return {}
    return {name: cmd for name, cmd in scripts.items() if isinstance(name, str) and isinstance(cmd, str)}


def detect_node_package_manager(paths: Iterable[str]) -> str:
    """Infer the preferred Node package manager based on root lockfiles."""
    present = set(paths)
    if "pnpm-lock.yaml" in present:
        return "pnpm"
    if "yarn.lock" in present:
        return "yarn"
    return "npm"


def build_node_script_command(script: str, manager: str) -> str:
    manager = manager.lower()
    if manager == "pnpm":
        return f"pnpm {script}"
    if manager == "yarn":
        return f"yarn {script}"
    # npm run <script>, except start which can be `npm start`
    if script == "start":
        return "npm start"
    return f"npm run {script}"


# Python manifest helpers


def load_pyproject(root: Path) -> Dict[str, object]:
    """Return the parsed pyproject.toml, ``{}`` when absent.

    Raises ``ManifestError`` for unreadable or malformed TOML.
    """
    pyproject = root / "pyproject.toml"
    if not pyproject.is_file():
        return {}
    try:
        return tomllib.loads(pyproject.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ManifestError(f"Could not parse pyproject.toml: {exc}") from exc


def pyproject_scripts(data: Dict[str, object]) -> List[Tuple[str, str]]:
    """Return ``(name, "module:function")`` pairs from PEP 621 and Poetry tables."""
    entries: List[Tuple[str, str]] = []
    project = data.get("project")
    if isinstance(project, dict):
        entries.extend(_string_items(project.get("scripts")))
    tool = data.get("tool")
    if isinstance(tool, dict):
        poetry = tool.get("poetry")
        if isinstance(poetry, dict):
            entries.extend(_string_items(poetry.get("scripts")))
    return entries


def pyproject_declares_src_layout(data: Dict[str, object]) -> bool:
    if _dig(data, "tool", "setuptools", "package-dir").get("") == "src":
        return True
    where = _dig(data, "tool", "setuptools", "packages", "find").get("where") or []
    if isinstance(where, list) and "src" in where:
        return True
    poetry_packages = _dig(data, "tool", "poetry").get("packages")
    for package in poetry_packages if isinstance(poetry_packages, list) else []:
        if isinstance(package, dict) and package.get("from") == "src":
            return True
    hatch_packages = _dig(data, "tool", "hatch", "build", "targets", "wheel").get("packages")
    for package in hatch_packages if isinstance(hatch_packages, list) else []:
        if isinstance(package, str) and package.startswith("src/"):
            return True
    return False


def _dig(data: Dict[str, object], *keys: str) -> Dict[str, object]:
    current: object = data
    for key in keys:
        if not isinstance(current, dict):
            return {}
        current = current.get(key)
    return current if isinstance(current, dict) else {}


def load_setup_py(root: Path) -> str:
    setup_py = root / "setup.py"
    if not setup_py.is_file():
        return ""
    try:
        return setup_py.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        _LOGGER.debug("Unable to read setup.py under %s", root)
        return ""


def setup_py_console_scripts(text: str) -> List[Tuple[str, str]]:
    entries: List[Tuple[str, str]] = []
    for block in _SETUP_CONSOLE_SCRIPTS.finditer(text):
        for match in _SETUP_SCRIPT_ENTRY.finditer(block.group("body")):
            name, module, function = match.groups()
            entries.append((name, f"{module}:{function}"))
    return entries


def setup_py_declares_src_layout(text: str) -> bool:
    return bool(_SETUP_SRC_LAYOUT.search(text))


def _string_items(value: object) -> List[Tuple[str, str]]:
    if not isinstance(value, dict):
        return []
    return [(name, target) for name, target in value.items() if isinstance(name, str) and isinstance(target, str)]


# Java build helpers


def detect_maven_modules(root: Path) -> List[str]:
    """Return ``<module>`` entries declared by the root pom.xml."""
    pom = root / "pom.xml"
    if not pom.is_file():
        return []
    try:
        content = pom.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return []
    return _unique(match.group(1) for match in _MAVEN_MODULE.finditer(content))


def detect_gradle_modules(root: Path) -> List[str]:
    """Return projects included by settings.gradle(.kts), as directory paths."""
    for name in ("settings.gradle", "settings.gradle.kts"):
        settings = root / name
        if not settings.is_file():
            continue
        try:
            content = settings.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            continue
        modules: List[str] = []
        for line in content.splitlines():
            stripped = line.strip()
            if stripped.startswith("//"):
                continue
            match = _GRADLE_INCLUDE.search(stripped)
            if not match:
                continue
            for quoted in _QUOTED.finditer(match.group(1)):
                modules.append(quoted.group(1).lstrip(":").replace(":", "/"))
        return _unique(modules)
    return []


def _unique(values: Iterable[str]) -> List[str]:
    seen: Set[str] = set()
    ordered: List[str] = []
    for value in values:
        value = value.strip()
        if value and value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


def first_string(data: Dict[str, object], key: str) -> Optional[str]:
    value = data.get(key)
    return value if isinstance(value, str) else None


__all__ = [
    "ManifestError",
    "build_node_script_command",
    "detect_gradle_modules",
    "detect_maven_modules",
    "detect_node_package_manager",
    "first_string",
    "load_package_json",
    "load_pyproject",
    "load_setup_py",
    "package_scripts",
    "pyproject_declares_src_layout",
    "pyproject_scripts",
    "setup_py_console_scripts",
    "setup_py_declares_src_layout",
]
