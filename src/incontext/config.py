"""Configuration loading and management."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from incontext.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Config directory names
PROJECT_DIR = ".incontext"
CONFIG_FILE = "config.yaml"

# File extensions scanned for pointers (lower-case, without the dot)
SUPPORTED_EXTENSIONS: frozenset[str] = frozenset({
    "md", "markdown", "txt", "text",
    "js", "ts", "jsx", "tsx",
    "kt", "java", "py",
    "html", "css",
})

# Directory names never scanned, at any depth
EXCLUDED_DIRECTORIES: frozenset[str] = frozenset({
    "node_modules",
    ".git",
    "dist",
    "build",
    "out",
    "target",
    ".idea",
    ".gradle",
    "vendor",
    "bower_components",
})

# Conventional directories probed when a module is not found directly
COMMON_PROJECT_DIRS: tuple[str, ...] = (
    "src", "app", "lib", "packages", "projects", "modules", "backend", "frontend",
)


@dataclass(slots=True, frozen=True)
class ModuleInfo:
    """A named workspace module and its content roots."""

    name: str
    content_roots: tuple[Path, ...] = ()


@dataclass(slots=True)
class InContextConfig:
    """Merged configuration from all sources.

    Priority: CLI args > env vars > project config > defaults
    """

    workspace_root: str = ""
    modules: list[ModuleInfo] = field(default_factory=list)
    respect_gitignore: bool = False

    # Logging
    debug: bool = False
    json_logs: bool = False


def find_workspace_root(start: Path | None = None) -> Path | None:
    """Find the workspace root by looking for .incontext/ or .git/."""
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        if (parent / PROJECT_DIR).exists():
            return parent
        if (parent / ".git").exists():
            return parent
    return None


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load a YAML config file, returning empty dict if missing or malformed."""
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, OSError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def parse_modules(raw: Any, workspace_root: Path) -> list[ModuleInfo]:
    """Build the module registry from a ``modules`` config value.

    Accepts either a mapping ``{name: [root, ...]}`` (a single root may be
    given as a string) or a list of ``{name: ..., roots: [...]}`` entries.
    Relative roots are resolved against *workspace_root*.
    """
    if raw is None:
        return []

    entries: list[tuple[Any, Any]]
    if isinstance(raw, dict):
        entries = list(raw.items())
    elif isinstance(raw, list):
        entries = []
        for item in raw:
            if not isinstance(item, dict) or "name" not in item:
                raise ConfigurationError(f"Module entry must be a mapping with a name: {item!r}")
            entries.append((item["name"], item.get("roots", item.get("root"))))
    else:
        raise ConfigurationError(f"'modules' must be a mapping or a list, got {type(raw).__name__}")

    modules: list[ModuleInfo] = []
    for name, roots in entries:
        if not isinstance(name, str) or not name:
            raise ConfigurationError(f"Invalid module name: {name!r}")
        if roots is None:
            roots = [name]
        elif isinstance(roots, str):
            roots = [roots]
        elif not isinstance(roots, list) or not all(isinstance(r, str) for r in roots):
            raise ConfigurationError(f"Roots of module {name!r} must be strings")
        resolved = tuple(
            Path(r) if Path(r).is_absolute() else workspace_root / r
            for r in roots
        )
        modules.append(ModuleInfo(name=name, content_roots=resolved))
    return modules


def load_config(
    workspace_root: str | Path | None = None,
    *,
    cli_args: dict[str, Any] | None = None,
) -> InContextConfig:
    """Load configuration from all sources with proper priority.

    Priority: CLI args > env vars > project config > defaults
    """
    load_dotenv()
    config = InContextConfig()
    cli_args = cli_args or {}

    if workspace_root is not None:
        root = Path(workspace_root).resolve()
    else:
        root = find_workspace_root() or Path.cwd().resolve()
    config.workspace_root = str(root)

    # 1. Project-level config (.incontext/config.yaml)
    project_config = load_yaml_config(root / PROJECT_DIR / CONFIG_FILE)
    if "modules" in project_config:
        config.modules = parse_modules(project_config["modules"], root)
    _apply_dict(config, project_config)

    # 2. Environment variables
    if debug := os.environ.get("INCONTEXT_DEBUG"):
        config.debug = debug.lower() in ("1", "true", "yes")
    if json_logs := os.environ.get("INCONTEXT_JSON_LOGS"):
        config.json_logs = json_logs.lower() in ("1", "true", "yes")

    # 3. CLI args (highest priority)
    _apply_dict(config, cli_args)

    return config


def _apply_dict(config: InContextConfig, data: dict[str, Any]) -> None:
    """Apply dictionary values to config, only for known scalar fields."""
    for key in ("respect_gitignore", "debug", "json_logs"):
        if key in data and data[key] is not None:
            setattr(config, key, bool(data[key]))
