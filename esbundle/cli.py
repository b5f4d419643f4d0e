"""Command line interface for the esbuild bundle orchestrator."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Iterable
import logging
import sys

from .build import BundleEngine, BundleError, BundleRequest
from .cache import CacheError
from .command_runner import (
    CommandError,
    CommandRunner,
    RecordingCommandRunner,
    SpawnError,
    SubprocessCommandRunner,
)
from .commands import BundleOptions
from .config_loader import ConfigurationError, load_configuration
from .environment import ExpansionError


_HANDLED_ERRORS = (
    BundleError,
    CacheError,
    CommandError,
    ConfigurationError,
    ExpansionError,
    SpawnError,
)


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(prog="esbundle", description="Stable-name esbuild bundle orchestrator")
    parser.add_argument("--project-root", type=Path, help="Directory holding esbuild-bundle.json (default: cwd)")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser("build", help="Bundle an entry point and print its identifier")
    build_parser.add_argument("entry_point", help="JavaScript/TypeScript entry point to bundle")
    build_parser.add_argument("--bundle-path", help="Directory for bundles (overrides the configuration)")
    build_parser.add_argument("--format", help="esbuild output format (iife, cjs, esm)")
    build_parser.add_argument("--global-name", help="esbuild global name for iife bundles")
    build_parser.add_argument("--dry-run", action="store_true", help="Print commands without executing them")

    list_parser = subparsers.add_parser("list", help="List cached bundle identifiers")
    list_parser.add_argument("--bundle-path", help="Directory for bundles (overrides the configuration)")

    return parser.parse_args(list(argv))


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    workspace = (args.project_root or Path.cwd()).resolve()

    try:
        if args.command == "build":
            return _handle_build(args, workspace)
        if args.command == "list":
            return _handle_list(args, workspace)
    except _HANDLED_ERRORS as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    raise ValueError(f"Unknown command: {args.command}")


def _handle_build(args: Namespace, workspace: Path) -> int:
    recorder = RecordingCommandRunner()
    runner: CommandRunner = recorder if args.dry_run else SubprocessCommandRunner()

    engine = BundleEngine(project_root=workspace, command_runner=runner)
    request = BundleRequest(
        entry_point=args.entry_point,
        bundle_path=args.bundle_path,
        options=BundleOptions(format=args.format, global_name=args.global_name),
    )
    identifier = engine.produce(request, dry_run=args.dry_run)

    if args.dry_run:
        for line in recorder.iter_formatted(workspace=workspace):
            print(line)
    print(identifier)
    return 0


def _handle_list(args: Namespace, workspace: Path) -> int:
    engine = BundleEngine(project_root=workspace, command_runner=RecordingCommandRunner())
    config = load_configuration(workspace)
    bundle_dir = engine.resolve_bundle_dir(args.bundle_path, config)
    cache = engine.load_cache(bundle_dir)
    if not len(cache):
        print(f"No bundles recorded in {bundle_dir}")
        return 0
    for entry_point, identifier in cache:
        print(f"{entry_point} -> {identifier}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
