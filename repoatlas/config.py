"""Configuration loading for repoatlas (.repoatlas.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".repoatlas.yml"

SUPPORTED_PACKS: tuple[str, ...] = ("tsjs", "python", "java")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass(frozen=True)
class IndexLimits:
    """Bounds on the workspace walk."""

    max_depth: int = 10
    max_files: int = 10_000


@dataclass(frozen=True)
class ArchitectureLimits:
    """Caps applied by the architecture reducer."""

    max_nodes: int = 50
    max_edges: int = 200


@dataclass(frozen=True)
class StartHereWeights:
    """Additive bonuses used by the Start Here ranking.

    The values are empirically chosen and expected to be recalibrated.
    """

    root_readme: int = 95
    readme: int = 80
    contributing: int = 75
    key_doc: int = 45
    docs_path: int = 5
    page: int = 85
    bootstrap: int = 85
    layout: int = 80
    route: int = 75
    router: int = 65
    fan_in_per_import: int = 3
    fan_in_cap: int = 35
    entrypoint: int = 90
    one_hop: int = 35
    near_base: int = 18
    near_step: int = 4
    near_max_distance: int = 3
    test_penalty: int = 40
    limit: int = 12

    def landmark_bonus(self, kind: str) -> int:
        return int(getattr(self, kind, 0)) if kind in _LANDMARK_KINDS else 0


_LANDMARK_KINDS = frozenset({"page", "bootstrap", "layout", "route", "router"})


@dataclass(frozen=True)
class DangerZoneWeights:
    """Weights of the Danger Zone composite; they sum to 1.0 by default."""

    size: float = 0.20
    fan_in: float = 0.25
    fan_out: float = 0.20
    complexity: float = 0.25
    weak_tests: float = 0.10


@dataclass
class AtlasConfig:
    """Represents the settings defined in .repoatlas.yml."""

    root: Optional[Path] = None
    limits: IndexLimits = field(default_factory=IndexLimits)
    architecture: ArchitectureLimits = field(default_factory=ArchitectureLimits)
    start_here: StartHereWeights = field(default_factory=StartHereWeights)
    danger_zones: DangerZoneWeights = field(default_factory=DangerZoneWeights)
    packs: List[str] = field(default_factory=lambda: list(SUPPORTED_PACKS))
    parallel: bool = True
    exclude_paths: List[str] = field(default_factory=list)
    time_budget_seconds: Optional[float] = None


def load_config(config_path: Path | None) -> AtlasConfig:
    """Load configuration from disk; a missing file yields the defaults."""
    if config_path is None:
        return AtlasConfig()

    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()
    if not config_file.exists():
        return AtlasConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")

    limits_data = _as_dict(data.get("limits"))
    limits = IndexLimits(
        max_depth=_as_cap(limits_data, "max_depth", IndexLimits.max_depth),
        max_files=_as_cap(limits_data, "max_files", IndexLimits.max_files),
    )
    time_budget = _as_float(limits_data.get("time_budget_seconds"))

    architecture_data = _as_dict(data.get("architecture"))
    architecture = ArchitectureLimits(
        max_nodes=_as_cap(architecture_data, "max_nodes", ArchitectureLimits.max_nodes),
        max_edges=_as_cap(architecture_data, "max_edges", ArchitectureLimits.max_edges),
    )

    start_here = _override(StartHereWeights(), _as_dict(data.get("start_here")), _as_int)
    danger_data = _as_dict(data.get("danger_zones"))
    danger_zones = _override(DangerZoneWeights(), _as_dict(danger_data.get("weights")), _as_float)

    packs_data = _as_dict(data.get("packs"))
    packs = list(SUPPORTED_PACKS)
    if "enabled" in packs_data:
        packs = [name.lower() for name in _as_str_list(packs_data.get("enabled"))]
        unknown = sorted(set(packs) - set(SUPPORTED_PACKS))
        if unknown:
            raise ConfigError(f"Unknown language packs requested: {', '.join(unknown)}")

    parallel = _as_bool(data.get("parallel"))

    return AtlasConfig(
        root=root,
        limits=limits,
        architecture=architecture,
        start_here=start_here,
        danger_zones=danger_zones,
        packs=packs,
        parallel=True if parallel is None else parallel,
        exclude_paths=_as_str_list(data.get("exclude_paths")),
        time_budget_seconds=time_budget,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _override(defaults: Any, data: Dict[str, Any], coerce: Any) -> Any:
    """Return ``defaults`` with any recognised, well-typed keys from ``data`` applied."""
    known = {item.name for item in fields(defaults)}
    changes: Dict[str, Any] = {}
    for key, raw in data.items():
        if key not in known:
            raise ConfigError(f"Unknown setting '{key}' for {type(defaults).__name__}")
        value = coerce(raw)
        if value is None:
            raise ConfigError(f"Setting '{key}' must be numeric")
        changes[key] = value
    return replace(defaults, **changes) if changes else defaults


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_cap(data: Dict[str, Any], key: str, default: int) -> int:
    value = _as_int(data.get(key))
    if value is None:
        return default
    if value <= 0:
        raise ConfigError(f"{key} must be a positive integer, got {value}")
    return value


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "ArchitectureLimits",
    "AtlasConfig",
    "ConfigError",
    "DangerZoneWeights",
    "IndexLimits",
    "StartHereWeights",
    "SUPPORTED_PACKS",
    "load_config",
]
