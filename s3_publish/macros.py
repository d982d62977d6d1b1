"""Expansion of ``${NAME}`` macros against the pipeline environment."""

from __future__ import annotations

import dataclasses
import re
import typing as typ

if typ.TYPE_CHECKING:
    from .config import MetadataEntry

__all__ = ["MACRO_PATTERN", "expand", "expand_metadata"]


MACRO_PATTERN = re.compile(
    r"\$(?:\{(?P<braced>[A-Za-z0-9_.]+)\}|(?P<bare>[A-Za-z0-9_]+))"
)


def expand(text: str, env: typ.Mapping[str, str]) -> str:
    """Return ``text`` with each known macro replaced by its ``env`` value.

    Both ``${NAME}`` and ``$NAME`` are recognised. Names missing from ``env``
    leave the token untouched.

    Examples
    --------
    >>> expand("out-${BUILD_ID}.log", {"BUILD_ID": "42"})
    'out-42.log'
    >>> expand("out-${MISSING}.log", {})
    'out-${MISSING}.log'
    """

    def _substitute(match: re.Match[str]) -> str:
        name = match.group("braced") or match.group("bare")
        value = env.get(name)
        return match.group(0) if value is None else value

    return MACRO_PATTERN.sub(_substitute, text)


def expand_metadata(
    entries: typ.Iterable[MetadataEntry], env: typ.Mapping[str, str]
) -> list[MetadataEntry]:
    """Return copies of ``entries`` with keys and values expanded."""

    return [
        dataclasses.replace(
            entry, key=expand(entry.key, env), value=expand(entry.value, env)
        )
        for entry in entries
    ]
