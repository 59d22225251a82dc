"""Configuration loading for the minimake command line."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping
import json
import os
import tomllib

import yaml

from .command_runner import DEFAULT_SHELL


ConfigLoader = Callable[[Any], Mapping[str, Any]]

CONFIG_ENV_VAR = "MINIMAKE_CONFIG"
CONFIG_STEM = "minimake"

_FILE_LOADERS: Dict[str, ConfigLoader] = {
    ".toml": lambda stream: tomllib.load(stream),
    ".json": lambda stream: json.load(stream),
    ".yaml": lambda stream: yaml.safe_load(stream) or {},
    ".yml": lambda stream: yaml.safe_load(stream) or {},
}

_LOG_LEVELS = {"debug", "info", "warning", "error", "critical"}


def _load_config_file(path: Path) -> Mapping[str, Any]:
    suffix = path.suffix.lower()
    loader = _FILE_LOADERS.get(suffix)
    if loader is None:
        raise ValueError(f"Unsupported configuration file extension: {suffix}")
    mode = "rb" if suffix == ".toml" else "r"
    kwargs: Dict[str, Any] = {}
    if mode == "r":
        kwargs["encoding"] = "utf-8"
    with path.open(mode, **kwargs) as handle:
        data = loader(handle)
    if not isinstance(data, Mapping):
        raise TypeError(f"Configuration file '{path}' must contain a mapping at the root")
    return data


def _as_bool(value: Any, *, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off", ""}:
            return False
    if isinstance(value, int):
        return bool(value)
    raise TypeError(f"{field_name} must be a boolean")


@dataclass(slots=True)
class GlobalConfig:
    makefile: str = "Makefile"
    shell: str = DEFAULT_SHELL
    log_level: str = "info"
    log_file: str | None = None
    dry_run: bool = False
    ignore_errors: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GlobalConfig":
        global_section = data.get("global", {}) if isinstance(data, Mapping) else {}
        if not isinstance(global_section, Mapping):
            raise TypeError("'global' section must be a mapping")
        log_level = str(global_section.get("log_level", "info")).lower()
        if log_level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log_level '{log_level}'. Expected one of: {', '.join(sorted(_LOG_LEVELS))}")
        return cls(
            makefile=str(global_section.get("makefile", "Makefile")),
            shell=str(global_section.get("shell", DEFAULT_SHELL)),
            log_level=log_level,
            log_file=str(global_section.get("log_file")) if global_section.get("log_file") else None,
            dry_run=_as_bool(global_section.get("dry_run", False), field_name="global.dry_run"),
            ignore_errors=_as_bool(global_section.get("ignore_errors", False), field_name="global.ignore_errors"),
        )


@dataclass(slots=True)
class MakeConfig:
    global_config: GlobalConfig = field(default_factory=GlobalConfig)
    variables: Dict[str, str] = field(default_factory=dict)
    source: Path | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, source: Path | None = None) -> "MakeConfig":
        variables_section = data.get("variables", {})
        if not isinstance(variables_section, Mapping):
            raise TypeError("'variables' section must be a mapping")
        variables: Dict[str, str] = {}
        for key, value in variables_section.items():
            if isinstance(value, (dict, list, tuple)):
                raise TypeError(f"Variable '{key}' must be a scalar value")
            if isinstance(value, bool):
                value = "1" if value else ""
            variables[str(key)] = "" if value is None else str(value)
        return cls(
            global_config=GlobalConfig.from_mapping(data),
            variables=variables,
            source=source,
        )


def load_config(path: Path) -> MakeConfig:
    return MakeConfig.from_mapping(_load_config_file(path), source=path)


def _candidate_files(workspace: Path) -> list[Path]:
    candidates: list[Path] = []
    for suffix in _FILE_LOADERS:
        path = workspace / f"{CONFIG_STEM}{suffix}"
        if path.is_file():
            candidates.append(path)
    return candidates


def discover_config(workspace: Path, explicit: Path | str | None = None) -> MakeConfig:
    """Locate and load the configuration for *workspace*.

    An explicit path wins, then the ``MINIMAKE_CONFIG`` environment variable,
    then a single ``minimake.{toml,json,yaml,yml}`` file in the workspace.
    Without any of those the defaults are returned.
    """

    chosen: Path | None = None
    if explicit:
        chosen = Path(explicit)
    elif os.environ.get(CONFIG_ENV_VAR):
        chosen = Path(os.environ[CONFIG_ENV_VAR])

    if chosen is not None:
        if not chosen.is_absolute():
            chosen = workspace / chosen
        if not chosen.is_file():
            raise FileNotFoundError(f"Configuration file '{chosen}' does not exist")
        return load_config(chosen)

    candidates = _candidate_files(workspace)
    if len(candidates) > 1:
        names = "', '".join(path.name for path in candidates)
        raise ValueError(
            f"Multiple configuration files found: '{names}'. Only one format per configuration entry is allowed."
        )
    if candidates:
        return load_config(candidates[0])
    return MakeConfig()
