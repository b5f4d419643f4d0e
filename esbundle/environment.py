"""Environment variable expansion for entry points and bundle paths."""
from __future__ import annotations

from typing import Mapping
import os
import re


_VARIABLE_PATTERN = re.compile(r"\$(?:\{(?P<braced>[^{}]*)\}|(?P<bare>[A-Za-z0-9_]+))")
_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


class ExpansionError(ValueError):
    """Raised when a string references an environment variable that is not set."""

    def __init__(self, name: str, text: str):
        super().__init__(f"Environment variable '{name}' referenced in '{text}' is not defined")
        self.name = name
        self.text = text


class EnvironmentExpander:
    """Expands ``$NAME``, ``${NAME}`` and ``${NAME:-default}`` references.

    A ``$`` that does not start a reference is kept as-is. A reference to a
    variable missing from the mapping raises :class:`ExpansionError` unless it
    carries a ``:-default``, which is then substituted literally.
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = dict(environ) if environ is not None else dict(os.environ)

    def expand(self, text: str) -> str:
        def replace(match: re.Match[str]) -> str:
            default: str | None = None
            name = match.group("braced")
            if name is None:
                name = match.group("bare")
            else:
                name, separator, fallback = name.partition(":-")
                if separator:
                    default = fallback
                if not _NAME_PATTERN.match(name):
                    raise ExpansionError(name, text)
            value = self._environ.get(name)
            if value is not None:
                return value
            if default is not None:
                return default
            raise ExpansionError(name, text)

        return _VARIABLE_PATTERN.sub(replace, text)
