"""Configuration loading for restyle (.restyle.yml)."""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".restyle.yml"
TSCONFIG_FILENAME = "tsconfig.json"
DEFAULT_ALIASES = {"@/": "."}

_EXECUTORS = {"process", "thread"}
_JSONC_COMMENTS = re.compile(r'"(?:\\.|[^"\\])*"|//[^\n]*|/\*.*?\*/', re.DOTALL)
_JSONC_TRAILING_COMMAS = re.compile(r'"(?:\\.|[^"\\])*"|,(?=\s*[}\]])')


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class PathsConfig:
    """Locations of inputs and outputs, relative to the project root."""

    components: str = "registry/{style}/ui/{component}.tsx"
    accessors: str = "registry/styles/{style}/{component}.tsx"
    output: str = "registry/ui/{style}/{component}.tsx"


@dataclass
class ModulesConfig:
    """Module specifiers written into rewritten sources."""

    accessors: str = "@/registry/styles/{style}/{component}"


@dataclass
class RestyleConfig:
    """Represents the settings defined in .restyle.yml."""

    root: Path
    styles: List[str] = field(default_factory=lambda: ["new-york", "default"])
    components: List[str] = field(default_factory=list)
    exclude_components: List[str] = field(default_factory=list)
    paths: PathsConfig = field(default_factory=PathsConfig)
    modules: ModulesConfig = field(default_factory=ModulesConfig)
    aliases: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ALIASES))
    workers: Optional[int] = None
    executor: str = "process"

    def component_path(self, style: str, component: str) -> Path:
        return self.root / self.paths.components.format(style=style, component=component)

    def accessor_path(self, style: str, component: str) -> Path:
        return self.root / self.paths.accessors.format(style=style, component=component)

    def output_path(self, style: str, component: str) -> Path:
        return self.root / self.paths.output.format(style=style, component=component)

    def accessor_module(self, style: str, component: str) -> str:
        return self.modules.accessors.format(style=style, component=component)

    def component_dir(self, style: str) -> Path:
        return self.component_path(style, "__placeholder__").parent


def load_config(config_path: Path) -> RestyleConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return _default_config(root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = _default_config(root)

    if "styles" in data:
        styles = _as_str_list(data.get("styles"))
        if not styles:
            raise ConfigError("`styles` must list at least one style")
        config.styles = styles
    config.components = _as_str_list(data.get("components"))
    config.exclude_components = _as_str_list(data.get("exclude_components"))

    paths_data = _as_dict(data.get("paths"))
    for key in ("components", "accessors", "output"):
        value = _as_str(paths_data.get(key))
        if value:
            _check_placeholders(f"paths.{key}", value)
            setattr(config.paths, key, value)

    modules_data = _as_dict(data.get("modules"))
    accessors_module = _as_str(modules_data.get("accessors"))
    if accessors_module:
        _check_placeholders("modules.accessors", accessors_module)
        config.modules.accessors = accessors_module

    if "aliases" in data:
        aliases = data.get("aliases")
        if not isinstance(aliases, dict):
            raise ConfigError("`aliases` must map specifier prefixes to directories")
        config.aliases = {str(prefix): str(target) for prefix, target in aliases.items()}

    workers = data.get("workers")
    if workers is not None:
        if not isinstance(workers, int) or isinstance(workers, bool) or workers < 1:
            raise ConfigError("`workers` must be a positive integer")
        config.workers = workers

    executor = _as_str(data.get("executor"))
    if executor:
        if executor not in _EXECUTORS:
            raise ConfigError(f"`executor` must be one of: {', '.join(sorted(_EXECUTORS))}")
        config.executor = executor

    return config


def _default_config(root: Path) -> RestyleConfig:
    return RestyleConfig(root=root, aliases=tsconfig_aliases(root) or dict(DEFAULT_ALIASES))


def find_tsconfig(start: Path) -> Optional[Path]:
    """Nearest tsconfig.json in ``start`` or one of its parents."""
    for directory in (start, *start.parents):
        candidate = directory / TSCONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def tsconfig_aliases(root: Path) -> Dict[str, str]:
    """Specifier prefixes from `compilerOptions.paths`, mapped to directories relative to ``root``.

    Only wildcard patterns such as `"@/*": ["./*"]` become aliases; the first
    target of each pattern wins. An unreadable tsconfig yields no aliases.
    """
    tsconfig = find_tsconfig(root)
    if tsconfig is None:
        return {}
    data = _read_jsonc(tsconfig)
    options = _as_dict(data.get("compilerOptions"))
    base_dir = tsconfig.parent / (_as_str(options.get("baseUrl")) or ".")
    aliases: Dict[str, str] = {}
    for pattern, targets in _as_dict(options.get("paths")).items():
        target = next(iter(_as_str_list(targets)), None)
        if not pattern.endswith("*") or target is None or not target.endswith("*"):
            continue
        prefix = pattern[:-1]
        if not prefix:
            continue
        directory = os.path.normpath(base_dir / target[:-1])
        aliases[prefix] = Path(os.path.relpath(directory, root)).as_posix()
    return aliases


def _read_jsonc(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    text = _JSONC_COMMENTS.sub(lambda match: match.group(0) if match.group(0).startswith('"') else "", text)
    text = _JSONC_TRAILING_COMMAS.sub(lambda match: match.group(0) if match.group(0).startswith('"') else "", text)
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _check_placeholders(key: str, value: str) -> None:
    try:
        value.format(style="style", component="component")
    except (KeyError, IndexError, ValueError) as exc:
        raise ConfigError(f"`{key}` may only use {{style}} and {{component}} placeholders") from exc


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_ALIASES",
    "TSCONFIG_FILENAME",
    "ConfigError",
    "ModulesConfig",
    "PathsConfig",
    "RestyleConfig",
    "find_tsconfig",
    "load_config",
    "tsconfig_aliases",
]
