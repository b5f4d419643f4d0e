"""The ``.bundles.json`` cache mapping entry points to stable bundle identifiers."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterator, Tuple
import json
import logging
import os
import secrets
import shutil
import string
import tempfile


logger = logging.getLogger(__name__)

CACHE_FILENAME = ".bundles.json"
IDENTIFIER_LENGTH = 32
IDENTIFIER_ALPHABET = string.ascii_letters + string.digits


class CacheError(ValueError):
    """Raised when the bundle cache cannot be read, parsed or written."""


def generate_identifier() -> str:
    return "".join(secrets.choice(IDENTIFIER_ALPHABET) for _ in range(IDENTIFIER_LENGTH))


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


@dataclass(slots=True)
class IdentifierCache:
    """In-memory view of a bundle directory's ``.bundles.json``.

    The file is read once by :meth:`load`, changed only in memory by
    :meth:`get_or_create`, and rewritten in full by :meth:`persist`. Nothing
    guards against concurrent writers: two builds sharing a bundle directory
    each persist their own snapshot and the last one wins.
    """

    path: Path
    entries: Dict[str, str] = field(default_factory=dict)
    generator: Callable[[], str] = generate_identifier

    @classmethod
    def load(cls, bundle_path: Path, *, generator: Callable[[], str] = generate_identifier) -> "IdentifierCache":
        path = bundle_path / CACHE_FILENAME
        if not path.is_file():
            return cls(path=path, generator=generator)

        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise CacheError(f"Failed to read bundles cache '{path}': {exc}") from exc
        try:
            data = json.loads(content)
        except ValueError as exc:
            raise CacheError(f"Failed to parse bundles cache '{path}': {exc}") from exc

        if not isinstance(data, dict):
            raise CacheError(f"Bundles cache '{path}' must contain a JSON object")
        for key, value in data.items():
            if not isinstance(value, str):
                raise CacheError(f"Bundles cache '{path}' maps '{key}' to a non-string value")
        return cls(path=path, entries=dict(data), generator=generator)

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(sorted(self.entries.items()))

    def __len__(self) -> int:
        return len(self.entries)

    def get_or_create(self, entry_point: str) -> Tuple[str, bool]:
        existing = self.entries.get(entry_point)
        if existing is not None:
            return existing, False
        # Identifiers are not checked against existing values.
        identifier = self.generator()
        self.entries[entry_point] = identifier
        return identifier, True

    def dumps(self) -> str:
        try:
            return json.dumps(self.entries, indent=2, sort_keys=True)
        except (TypeError, ValueError) as exc:
            raise CacheError(f"Failed to serialize bundles cache: {exc}") from exc

    def persist(self) -> None:
        """Rewrite the cache file in full.

        The content goes to a temporary sibling that is renamed into place. An
        existing file keeps its permission bits, and a symlinked cache file
        stays a symlink with its target rewritten. A new file gets the mode a
        plain ``open()`` would give it under the current umask.
        """
        content = self.dumps()
        target = self.path.resolve() if self.path.is_symlink() else self.path
        temp_name: str | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=target.parent,
                prefix=f"{CACHE_FILENAME}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                temp_name = handle.name
                handle.write(content)
            if target.exists():
                shutil.copymode(target, temp_name)
            else:
                os.chmod(temp_name, 0o666 & ~_current_umask())
            os.replace(temp_name, target)
        except OSError as exc:
            if temp_name is not None:
                Path(temp_name).unlink(missing_ok=True)
            raise CacheError(f"Failed to write bundles cache '{self.path}': {exc}") from exc
        logger.info("Wrote %d bundle identifier(s) to %s", len(self.entries), self.path)
