"""Mapping of package-manager variants and bundler options to esbuild command lines."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping


class PackageManager(str, Enum):
    NPM = "npm"
    PNPM = "pnpm"
    NPX = "npx"
    YARN = "yarn"


# Argument prefixes used when esbuild is invoked directly rather than through a user script.
_DIRECT_PREFIXES: Dict[PackageManager, List[str]] = {
    PackageManager.NPX: ["npx", "esbuild"],
    PackageManager.YARN: ["yarn", "esbuild"],
    PackageManager.PNPM: ["pnpm", "exec", "esbuild"],
}


@dataclass(frozen=True, slots=True)
class BundleOptions:
    format: str | None = None
    global_name: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BundleOptions":
        values: Dict[str, str] = {}
        for key, value in data.items():
            if key not in {"format", "global_name"}:
                raise ValueError(f"unexpected key '{key}'")
            if value is None:
                continue
            if not isinstance(value, str):
                raise TypeError(f"Bundle option '{key}' must be a string")
            values[key] = value
        return cls(**values)

    def to_flags(self) -> List[str]:
        flags: List[str] = []
        if self.format is not None:
            flags.append(f"--format={self.format}")
        if self.global_name is not None:
            flags.append(f"--global-name={self.global_name}")
        return flags


@dataclass(frozen=True, slots=True)
class CommandVariant:
    """The package-manager front end used to run esbuild.

    ``npm`` always runs a user script; ``pnpm`` runs one when ``script`` is
    set. A script receives the entry point and output path as positional
    arguments and is responsible for any minification. The remaining variants
    invoke esbuild directly with flags derived from :class:`BundleOptions`.
    """

    manager: PackageManager = PackageManager.NPX
    script: str | None = None

    def __post_init__(self) -> None:
        if self.manager is PackageManager.NPM and not self.script:
            raise ValueError("The npm command variant requires a 'script'")
        if self.script is not None and self.manager not in {PackageManager.NPM, PackageManager.PNPM}:
            raise ValueError(f"The {self.manager.value} command variant does not accept a 'script'")

    @classmethod
    def npm(cls, script: str) -> "CommandVariant":
        return cls(PackageManager.NPM, script)

    @classmethod
    def pnpm(cls, script: str | None = None) -> "CommandVariant":
        return cls(PackageManager.PNPM, script)

    @classmethod
    def npx(cls) -> "CommandVariant":
        return cls(PackageManager.NPX)

    @classmethod
    def yarn(cls) -> "CommandVariant":
        return cls(PackageManager.YARN)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CommandVariant":
        raw_type = data.get("type")
        if not raw_type:
            raise ValueError("esbuild.type is required (one of: npm, pnpm, npx, yarn)")
        try:
            manager = PackageManager(str(raw_type))
        except ValueError:
            choices = ", ".join(member.value for member in PackageManager)
            raise ValueError(f"Unknown esbuild.type '{raw_type}'. Expected one of: {choices}") from None
        script = data.get("script")
        if script is not None and not isinstance(script, str):
            raise TypeError("esbuild.script must be a string")
        return cls(manager, script)

    @property
    def delegates_to_script(self) -> bool:
        return self.script is not None

    def build_command(
        self,
        options: BundleOptions,
        minified: bool,
        entry_point: str,
        output_path: str,
    ) -> List[str]:
        if self.script is not None:
            return [self.manager.value, self.script, entry_point, output_path]

        command = [*_DIRECT_PREFIXES[self.manager], *options.to_flags()]
        command.append("--minify" if minified else "--sourcemap")
        command.extend(["--bundle", f"--outfile={output_path}", entry_point])
        return command


def build_command(
    variant: CommandVariant,
    options: BundleOptions,
    minified: bool,
    entry_point: str,
    output_path: str,
) -> List[str]:
    return variant.build_command(options, minified, entry_point, output_path)
