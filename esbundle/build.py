"""Bundle planning and execution: from an entry point to a stable bundle identifier."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Mapping, Sequence
import logging

from .cache import IdentifierCache, generate_identifier
from .command_runner import CommandResult, CommandRunner, SubprocessCommandRunner
from .commands import BundleOptions, build_command
from .config_loader import CONFIG_STEM, Configuration, load_configuration
from .environment import EnvironmentExpander


logger = logging.getLogger(__name__)


class BundleError(RuntimeError):
    """Raised when a bundle request cannot be carried out."""


@dataclass(slots=True)
class BundleRequest:
    entry_point: str
    bundle_path: str | None = None
    options: BundleOptions = field(default_factory=BundleOptions)


@dataclass(slots=True)
class BundleStep:
    description: str
    command: Sequence[str]
    output_path: Path


@dataclass(slots=True)
class BundlePlan:
    entry_point: str
    identifier: str
    is_new: bool
    bundle_dir: Path
    cache: IdentifierCache
    steps: List[BundleStep]


def output_filenames(identifier: str) -> List[tuple[bool, str]]:
    return [(False, f"{identifier}.js"), (True, f"{identifier}.min.js")]


class BundleEngine:
    def __init__(
        self,
        *,
        project_root: Path,
        command_runner: CommandRunner,
        environ: Mapping[str, str] | None = None,
        identifier_generator: Callable[[], str] = generate_identifier,
    ) -> None:
        self._project_root = project_root
        self._command_runner = command_runner
        self._expander = EnvironmentExpander(environ)
        self._identifier_generator = identifier_generator

    def resolve_bundle_dir(self, override: str | None, config: Configuration) -> Path:
        raw_path = override or config.bundle_path
        if not raw_path:
            raise BundleError(
                "No bundle path provided, and either no configuration found or "
                f"the {CONFIG_STEM} configuration has no 'bundle_path'"
            )
        bundle_dir = Path(self._expander.expand(raw_path))
        if not bundle_dir.is_absolute():
            bundle_dir = self._project_root / bundle_dir
        return bundle_dir

    def load_cache(self, bundle_dir: Path) -> IdentifierCache:
        return IdentifierCache.load(bundle_dir, generator=self._identifier_generator)

    def plan(self, request: BundleRequest) -> BundlePlan:
        entry_point = self._expander.expand(request.entry_point)
        config = load_configuration(self._project_root)
        bundle_dir = self.resolve_bundle_dir(request.bundle_path, config)

        cache = self.load_cache(bundle_dir)
        identifier, is_new = cache.get_or_create(entry_point)
        if is_new:
            logger.info("Assigned new bundle identifier %s to %s", identifier, entry_point)
        else:
            logger.info("Reusing bundle identifier %s for %s", identifier, entry_point)

        variant = config.command_variant
        steps: List[BundleStep] = []
        for minified, filename in output_filenames(identifier):
            output_path = bundle_dir / filename
            command = build_command(variant, request.options, minified, entry_point, str(output_path))
            kind = "minified" if minified else "unminified"
            via = f"{variant.manager.value} script '{variant.script}'" if variant.delegates_to_script else "esbuild"
            steps.append(
                BundleStep(
                    description=f"Bundle {entry_point} ({kind}) via {via}",
                    command=command,
                    output_path=output_path,
                )
            )

        return BundlePlan(
            entry_point=entry_point,
            identifier=identifier,
            is_new=is_new,
            bundle_dir=bundle_dir,
            cache=cache,
            steps=steps,
        )

    def execute(self, plan: BundlePlan, *, dry_run: bool = False) -> List[CommandResult]:
        """Run every step of ``plan`` in order and record the identifier.

        The first failing step raises and stops the run. The cache is only
        rewritten once all steps have succeeded; outputs already produced by
        earlier steps are left in place. With ``dry_run`` the commands still
        go through the runner but the bundle directory and cache are untouched.
        """
        if not dry_run:
            try:
                plan.bundle_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise BundleError(f"Failed to create bundle directory '{plan.bundle_dir}': {exc}") from exc

        results: List[CommandResult] = []
        for step in plan.steps:
            logger.debug(
                "%s -> %s: %s",
                step.description,
                step.output_path,
                self._command_runner.format_command(step.command),
            )
            result = self._command_runner.run(step.command, cwd=self._project_root, note=step.description)
            results.append(result)

        if not dry_run:
            plan.cache.persist()
        return results

    def produce(self, request: BundleRequest, *, dry_run: bool = False) -> str:
        plan = self.plan(request)
        self.execute(plan, dry_run=dry_run)
        return plan.identifier


def produce_bundle(
    entry_point: str,
    bundle_path: str | None = None,
    options: BundleOptions | Mapping[str, str] | None = None,
    *,
    project_root: Path | None = None,
    command_runner: CommandRunner | None = None,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Bundle ``entry_point`` with esbuild and return its stable identifier.

    Two artifacts are written under the bundle directory,
    ``<identifier>.js`` and ``<identifier>.min.js``. Repeated calls for the
    same entry point against the same bundle directory return the same
    identifier.
    """
    if options is None:
        options = BundleOptions()
    elif not isinstance(options, BundleOptions):
        options = BundleOptions.from_mapping(options)

    engine = BundleEngine(
        project_root=project_root or Path.cwd(),
        command_runner=command_runner or SubprocessCommandRunner(),
        environ=environ,
    )
    return engine.produce(BundleRequest(entry_point=entry_point, bundle_path=bundle_path, options=options))
