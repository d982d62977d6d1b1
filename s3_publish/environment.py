"""Environment helpers shared by the publishing toolchain."""

from __future__ import annotations

import os
import typing as typ
from pathlib import Path

from .errors import ConfigurationError

__all__ = ["parse_definitions", "pipeline_environment", "workspace_root"]


def workspace_root(name: str = "GITHUB_WORKSPACE") -> Path:
    """Return the absolute workspace named by ``name`` or the current directory.

    Parameters
    ----------
    name:
        Environment variable holding the CI workspace path.
    """
    value = os.environ.get(name)
    return Path(value).absolute() if value else Path.cwd()


def parse_definitions(definitions: typ.Iterable[str]) -> dict[str, str]:
    """Return ``NAME=VALUE`` command-line definitions as a mapping.

    Raises
    ------
    ConfigurationError
        Raised when a definition lacks ``=`` or names an empty variable.

    Examples
    --------
    >>> parse_definitions(["BUILD_ID=42", "EMPTY="])
    {'BUILD_ID': '42', 'EMPTY': ''}
    """
    parsed: dict[str, str] = {}
    for definition in definitions:
        name, sep, value = definition.partition("=")
        if not sep or not name.strip():
            message = f"Invalid variable definition '{definition}'; expected NAME=VALUE"
            raise ConfigurationError(message)
        parsed[name.strip()] = value
    return parsed


def pipeline_environment(
    overrides: typ.Mapping[str, str] | None = None,
    base: typ.Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Return the macro environment for a run.

    ``base`` defaults to :data:`os.environ`; ``overrides`` win on conflicts.
    """
    source = os.environ if base is None else base
    return dict(source) | dict(overrides or {})
