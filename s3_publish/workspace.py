"""Ant-style mask matching for files in the CI workspace."""

from __future__ import annotations

import functools
import os
import re
import typing as typ
from pathlib import Path, PurePosixPath, PureWindowsPath

__all__ = [
    "DEFAULT_EXCLUDES",
    "Workspace",
    "compile_mask",
    "diagnose",
    "has_wildcard",
    "match",
    "split_mask",
]

# Ant's default excludes: VCS metadata and editor leftovers.
DEFAULT_EXCLUDES: tuple[str, ...] = (
    "**/*~",
    "**/#*#",
    "**/.#*",
    "**/%*%",
    "**/._*",
    "**/CVS/**",
    "**/.cvsignore",
    "**/SCCS/**",
    "**/vssver.scc",
    "**/.svn/**",
    "**/.git/**",
    "**/.gitattributes",
    "**/.gitignore",
    "**/.gitmodules",
    "**/.hg/**",
    "**/.hgignore",
    "**/.hgsub",
    "**/.hgsubstate",
    "**/.hgtags",
    "**/.bzr/**",
    "**/.bzrignore",
    "**/.DS_Store",
)


def split_mask(mask: str) -> list[str]:
    """Return the includes of a comma separated ``mask``.

    Backslashes become ``/``, a leading ``./`` is dropped and a trailing ``/``
    selects everything below that directory.

    Examples
    --------
    >>> split_mask("build/*.jar, dist/")
    ['build/*.jar', 'dist/**']
    """
    includes: list[str] = []
    for token in mask.split(","):
        include = token.strip().replace("\\", "/")
        while include.startswith("./"):
            include = include[2:]
        if include.endswith("/"):
            include = f"{include}**"
        if include:
            includes.append(include)
    return includes


def has_wildcard(include: str) -> bool:
    """Return ``True`` when ``include`` contains ``*`` or ``?``."""
    return "*" in include or "?" in include


@functools.lru_cache(maxsize=256)
def compile_mask(include: str, *, ignore_case: bool = False) -> re.Pattern[str]:
    """Compile a single Ant include into a regular expression.

    The expression is matched against workspace-relative POSIX paths. ``*``
    stays within one segment, a ``**`` segment spans zero or more
    directories and ``?`` matches exactly one character.

    Examples
    --------
    >>> bool(compile_mask("build/**/*.jar").fullmatch("build/libs/a.jar"))
    True
    >>> bool(compile_mask("build/*.jar").fullmatch("build/libs/a.jar"))
    False
    """
    segments = include.split("/")
    parts: list[str] = []
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        if segment == "**":
            parts.append(".*" if last else "(?:.*/)?")
            continue
        parts.append(_segment_expression(segment))
        if not last:
            parts.append("/")
    flags = re.IGNORECASE if ignore_case else 0
    return re.compile("".join(parts), flags)


def _segment_expression(segment: str) -> str:
    pieces: list[str] = []
    for char in segment:
        if char == "*":
            if not pieces or pieces[-1] != "[^/]*":
                pieces.append("[^/]*")
        elif char == "?":
            pieces.append("[^/]")
        else:
            pieces.append(re.escape(char))
    return "".join(pieces)


def _mask_problem(include: str) -> str | None:
    """Return why ``include`` can never match inside a workspace."""
    if PurePosixPath(include).is_absolute() or PureWindowsPath(include).is_absolute():
        return f"'{include}' is an absolute path; masks are relative to the workspace"
    if PureWindowsPath(include).drive:
        return f"'{include}' names a drive; masks are relative to the workspace"
    if ".." in include.split("/"):
        return f"'{include}' escapes the workspace with '..'"
    return None


class Workspace:
    """Workspace root that resolves Ant-style masks to files.

    Parameters
    ----------
    root:
        Directory every mask is resolved against.
    excludes:
        Masks skipped while scanning. Defaults to :data:`DEFAULT_EXCLUDES`.

    Examples
    --------
    >>> ws = Workspace(Path("/tmp/ws"))  # doctest: +SKIP
    >>> ws.list_files("build/*.jar")  # doctest: +SKIP
    [PosixPath('/tmp/ws/build/a.jar'), PosixPath('/tmp/ws/build/b.jar')]
    """

    def __init__(
        self, root: Path, excludes: typ.Iterable[str] = DEFAULT_EXCLUDES
    ) -> None:
        self.root = Path(root).absolute()
        self._excludes = [compile_mask(mask) for mask in excludes]

    def list_files(self, mask: str) -> list[Path]:
        """Return files matching ``mask`` sorted by their relative path."""
        found: dict[str, Path] = {}
        for include in split_mask(mask):
            if _mask_problem(include) is not None:
                continue
            for relative, path in self._iter_include(include):
                found.setdefault(relative, path)
        return [found[relative] for relative in sorted(found)]

    def validate_pattern(self, mask: str) -> str | None:
        """Explain why ``mask`` matched no files.

        Returns ``None`` when ``mask`` does match a file.
        """
        if not self.root.is_dir():
            return f"Workspace {self.root.as_posix()} does not exist"
        includes = split_mask(mask)
        if not includes:
            return "No file mask given"
        for include in includes:
            if (problem := _mask_problem(include)) is not None:
                return problem
        if self.list_files(mask):
            return None
        entries = list(self._iter_entries())
        for include in includes:
            if (hint := self._hint(include, entries)) is not None:
                return hint
        return f"'{mask}' is a valid mask but matched no files"

    def _iter_include(self, include: str) -> typ.Iterator[tuple[str, Path]]:
        if not has_wildcard(include):
            candidate = self.root / include
            if candidate.is_file() and not self._excluded(include):
                yield include, candidate
            return

        expression = compile_mask(include)
        base = _literal_base(include)
        for relative, path, is_dir in self._iter_entries(base):
            if not is_dir and expression.fullmatch(relative):
                yield relative, path

    def _iter_entries(self, base: str = "") -> typ.Iterator[tuple[str, Path, bool]]:
        start = self.root / base if base else self.root
        if not start.is_dir():
            return
        for current, dirnames, filenames in os.walk(start):
            current_path = Path(current)
            prefix = current_path.relative_to(self.root).as_posix()
            prefix = "" if prefix == "." else f"{prefix}/"
            dirnames[:] = sorted(
                name for name in dirnames if not self._excluded(f"{prefix}{name}/")
            )
            for name in dirnames:
                yield f"{prefix}{name}", current_path / name, True
            for name in sorted(filenames):
                relative = f"{prefix}{name}"
                if not self._excluded(relative):
                    yield relative, current_path / name, False

    def _excluded(self, relative: str) -> bool:
        return any(expression.fullmatch(relative) for expression in self._excludes)

    def _hint(
        self, include: str, entries: list[tuple[str, Path, bool]]
    ) -> str | None:
        expression = compile_mask(include)
        if any(is_dir and expression.fullmatch(rel) for rel, _, is_dir in entries):
            return f"'{include}' matches only directories, not files"

        folded = compile_mask(include, ignore_case=True)
        for relative, _, is_dir in entries:
            if not is_dir and folded.fullmatch(relative):
                return (
                    f"'{include}' doesn't match anything, but '{relative}' would "
                    "if masks were case insensitive"
                )

        segments = include.split("/")
        for length in range(len(segments) - 1, 0, -1):
            leading = segments[:length]
            if all(segment == "**" for segment in leading):
                continue
            prefix = "/".join(leading)
            prefix_expression = compile_mask(prefix)
            if any(prefix_expression.fullmatch(rel) for rel, _, _ in entries):
                return f"'{include}' doesn't match anything, but '{prefix}' does"
        return f"'{include}' doesn't match anything: even '{segments[0]}' doesn't exist"


def _literal_base(include: str) -> str:
    """Return the leading wildcard-free directories of ``include``.

    Examples
    --------
    >>> _literal_base("build/libs/*.jar")
    'build/libs'
    >>> _literal_base("**/*.jar")
    ''
    """
    segments = include.split("/")[:-1]
    literal: list[str] = []
    for segment in segments:
        if has_wildcard(segment):
            break
        literal.append(segment)
    return "/".join(literal)


def match(workspace_root: Path, mask: str) -> list[Path]:
    """Return files below ``workspace_root`` matching ``mask``."""
    return Workspace(workspace_root).list_files(mask)


def diagnose(workspace_root: Path, mask: str) -> str | None:
    """Return a diagnostic for a ``mask`` that matched nothing."""
    return Workspace(workspace_root).validate_pattern(mask)
