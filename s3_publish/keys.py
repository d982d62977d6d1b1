"""Derivation of object keys from matched workspace paths.

The key of an uploaded object is the part of the file's path below the
mask's wildcard boundary. The boundary is found once per mask as a character
offset into ``<workspace>/<mask>`` and stripped from each matched path.

Usage
-----
Derive keys for the files matched by a rule::

    from s3_publish.keys import derive_matches

    matched = derive_matches(Path("/ws"), "build/*.jar", [Path("/ws/build/a.jar")])
    print(matched[0].relative_key)  # a.jar
"""

from __future__ import annotations

import dataclasses
import typing as typ
from pathlib import Path

from .workspace import compile_mask, split_mask

__all__ = [
    "Destination",
    "MatchedFile",
    "derive_matches",
    "join_search_path",
    "prefix_length",
    "relative_key",
    "split_destination",
]


@dataclasses.dataclass(slots=True, frozen=True)
class MatchedFile:
    """Workspace file selected for upload together with its object key."""

    absolute_path: Path
    relative_key: str


@dataclasses.dataclass(slots=True, frozen=True)
class Destination:
    """Bucket and object key an upload is written to."""

    bucket: str
    key: str

    @property
    def uri(self) -> str:
        """``s3://`` URI of the destination object."""
        return f"s3://{self.bucket}/{self.key}"


def join_search_path(workspace_root: str | Path, pattern: str) -> str:
    """Return ``pattern`` appended to ``workspace_root`` with one ``/``.

    Examples
    --------
    >>> join_search_path("/ws/", "/build/*.jar")
    '/ws/build/*.jar'
    >>> join_search_path("", "*.jar")
    '*.jar'
    """
    root = Path(workspace_root).as_posix() if workspace_root != "" else ""
    tail = pattern.replace("\\", "/").lstrip("/")
    if not root:
        return tail
    return f"{root.rstrip('/')}/{tail}" if tail else root


def prefix_length(workspace_root: str | Path, expanded_pattern: str) -> int:
    """Return the offset of the first ``*`` in the joined search path.

    A pattern without ``*`` returns the full joined length. A ``*`` in the
    very first position returns ``0`` so the whole path becomes the key.

    Examples
    --------
    >>> prefix_length("/ws", "build/*.jar") == len("/ws/build/")
    True
    >>> prefix_length("/ws", "build/app.jar") == len("/ws/build/app.jar")
    True
    >>> prefix_length("", "*.jar")
    0
    """
    search_path = join_search_path(workspace_root, expanded_pattern)
    index = search_path.find("*")
    if index > 0:
        return index
    if index == 0:
        return 0
    return len(search_path)


def relative_key(absolute_path: Path, length: int) -> str:
    """Strip ``length`` characters and leading separators from ``absolute_path``.

    When nothing remains (a mask naming one file literally) the file name is
    used so the key is never empty.

    Examples
    --------
    >>> relative_key(Path("/ws/build/a.jar"), len("/ws/build/"))
    'a.jar'
    >>> relative_key(Path("/ws/build/a.jar"), len("/ws/build/a.jar"))
    'a.jar'
    """
    text = absolute_path.as_posix()
    key = text[length:].lstrip("/")
    return key or absolute_path.name


def derive_matches(
    workspace_root: Path, expanded_pattern: str, paths: typ.Iterable[Path]
) -> list[MatchedFile]:
    """Return :class:`MatchedFile` entries for ``paths`` in their given order.

    A single-include mask uses one :func:`prefix_length` for every path. For
    comma separated masks each path is keyed by the first include matching
    it.
    """
    workspace_root = Path(workspace_root).absolute()
    includes = split_mask(expanded_pattern)
    if len(includes) <= 1:
        single = includes[0] if includes else expanded_pattern
        length = prefix_length(workspace_root, single)
        return [MatchedFile(path, relative_key(path, length)) for path in paths]

    lengths = [
        (include, prefix_length(workspace_root, include)) for include in includes
    ]
    matched: list[MatchedFile] = []
    for path in paths:
        relative = path.relative_to(workspace_root).as_posix()
        length = next(
            (
                include_length
                for include, include_length in lengths
                if compile_mask(include).fullmatch(relative)
            ),
            lengths[0][1],
        )
        matched.append(MatchedFile(path, relative_key(path, length)))
    return matched


def split_destination(bucket: str, key: str) -> Destination:
    """Split ``bucket`` into a bucket name and a key prefix for ``key``.

    Examples
    --------
    >>> split_destination("artefacts/builds/42", "a.jar")
    Destination(bucket='artefacts', key='builds/42/a.jar')
    >>> split_destination("artefacts", "libs/a.jar")
    Destination(bucket='artefacts', key='libs/a.jar')
    """
    name, _, prefix = bucket.strip().strip("/").partition("/")
    prefix = prefix.strip("/")
    return Destination(name, f"{prefix}/{key}" if prefix else key)
