"""Loading of the optional project-level ``esbuild-bundle`` configuration."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping
import json
import logging
import tomllib

import yaml

from .commands import CommandVariant


logger = logging.getLogger(__name__)

CONFIG_STEM = "esbuild-bundle"

ConfigLoader = Callable[[Any], Any]

_FILE_LOADERS: Dict[str, ConfigLoader] = {
    ".json": lambda stream: json.load(stream),
    ".toml": lambda stream: tomllib.load(stream),
    ".yaml": lambda stream: yaml.safe_load(stream),
    ".yml": lambda stream: yaml.safe_load(stream),
}


class ConfigurationError(ValueError):
    """Raised when the configuration file exists but cannot be used."""


def _load_config_file(path: Path) -> Mapping[str, Any]:
    suffix = path.suffix.lower()
    loader = _FILE_LOADERS[suffix]
    mode = "rb" if suffix == ".toml" else "r"
    kwargs: Dict[str, Any] = {}
    if mode == "r":
        kwargs["encoding"] = "utf-8"
    try:
        with path.open(mode, **kwargs) as handle:
            data = loader(handle)
    except OSError as exc:
        raise ConfigurationError(f"Failed to read configuration '{path}': {exc}") from exc
    except (ValueError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Failed to parse configuration '{path}': {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Configuration file '{path}' must contain a mapping at the root")
    return data


def find_config_file(project_root: Path) -> Path | None:
    """Locate the configuration file under ``project_root``.

    ``esbuild-bundle.json`` always wins; other formats next to it are ignored
    with a warning. Without a JSON file, at most one of the remaining formats
    may be present.
    """

    candidates: List[Path] = []
    for suffix in _FILE_LOADERS:
        path = project_root / f"{CONFIG_STEM}{suffix}"
        if path.is_file():
            candidates.append(path)
    if not candidates:
        return None

    primary = project_root / f"{CONFIG_STEM}.json"
    if primary in candidates:
        ignored = [path.name for path in candidates if path != primary]
        if ignored:
            logger.warning("Using %s; ignoring %s", primary.name, ", ".join(ignored))
        return primary

    if len(candidates) > 1:
        names = "', '".join(path.name for path in candidates)
        raise ConfigurationError(
            f"Multiple configuration files found: '{names}'. Only one format is allowed."
        )
    return candidates[0]


@dataclass(slots=True)
class Configuration:
    bundle_path: str | None = None
    esbuild: CommandVariant | None = None
    source: Path | None = None

    @property
    def command_variant(self) -> CommandVariant:
        return self.esbuild if self.esbuild is not None else CommandVariant()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, source: Path | None = None) -> "Configuration":
        bundle_path = data.get("bundle_path")
        if bundle_path is not None and not isinstance(bundle_path, str):
            raise ConfigurationError("bundle_path must be a string")

        esbuild_section = data.get("esbuild")
        esbuild: CommandVariant | None = None
        if esbuild_section is not None:
            if not isinstance(esbuild_section, Mapping):
                raise ConfigurationError("esbuild must be a table with a 'type' field")
            try:
                esbuild = CommandVariant.from_mapping(esbuild_section)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"Invalid esbuild configuration: {exc}") from exc

        return cls(bundle_path=bundle_path or None, esbuild=esbuild, source=source)


def load_configuration(project_root: Path) -> Configuration:
    """Load the configuration found at ``project_root``, or the defaults if none exists."""

    path = find_config_file(project_root)
    if path is None:
        logger.debug("No %s configuration under %s; using defaults", CONFIG_STEM, project_root)
        return Configuration()
    logger.debug("Loading configuration from %s", path)
    data = _load_config_file(path)
    try:
        return Configuration.from_mapping(data, source=path)
    except ConfigurationError as exc:
        raise ConfigurationError(f"Invalid configuration '{path}': {exc}") from exc
