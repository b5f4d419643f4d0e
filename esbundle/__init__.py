"""Stable-name esbuild bundling driven from Python."""
from __future__ import annotations

from .build import BundleEngine, BundleError, BundleRequest, produce_bundle
from .cache import CacheError, IdentifierCache
from .command_runner import CommandError, SpawnError
from .commands import BundleOptions, CommandVariant, PackageManager
from .config_loader import Configuration, ConfigurationError, load_configuration
from .environment import ExpansionError

__all__ = [
    "BundleEngine",
    "BundleError",
    "BundleOptions",
    "BundleRequest",
    "CacheError",
    "CommandError",
    "CommandVariant",
    "Configuration",
    "ConfigurationError",
    "ExpansionError",
    "IdentifierCache",
    "PackageManager",
    "SpawnError",
    "load_configuration",
    "produce_bundle",
]
