"""Workflow outputs describing a publishing run."""

from __future__ import annotations

import typing as typ
import uuid
from collections.abc import Mapping, Sequence
from pathlib import Path

if typ.TYPE_CHECKING:
    from .report import RunResult

__all__ = ["prepare_outputs", "write_github_output"]


def prepare_outputs(
    result: RunResult, workspace: Path
) -> dict[str, str | list[str]]:
    """Return the workflow outputs recorded for ``result``.

    Parameters
    ----------
    result : RunResult
        Outcome returned by :func:`~s3_publish.publishing.pipeline.publish`.
    workspace : Path
        Workspace root used to shorten failed file paths.

    Returns
    -------
    dict[str, str | list[str]]
        ``status``, ``uploaded_count``, the ``uploaded`` object URIs and the
        ``failed`` workspace-relative paths.

    Examples
    --------
    >>> from s3_publish.publishing.report import RunResult, Severity
    >>> prepare_outputs(RunResult(Severity.OK, []), Path("/ws"))["status"]
    'OK'
    """

    uploaded = [outcome.destination.uri for outcome in result.uploaded]
    failed = [
        _workspace_relative(outcome.file.absolute_path, workspace)
        for outcome in result.failed
    ]
    return {
        "status": result.status.name,
        "uploaded_count": str(len(uploaded)),
        "uploaded": uploaded,
        "failed": failed,
    }


def _workspace_relative(path: Path, workspace: Path) -> str:
    try:
        return path.relative_to(workspace).as_posix()
    except ValueError:
        return path.as_posix()


def write_github_output(
    file: Path, values: Mapping[str, str | Sequence[str]]
) -> None:
    """Append ``values`` to the GitHub Actions output ``file``.

    Every value uses the heredoc syntax with a random delimiter, so multiline
    values survive unescaped. Sequences are joined with newlines.
    """

    file.parent.mkdir(parents=True, exist_ok=True)
    with file.open("a", encoding="utf-8") as handle:
        for key, value in values.items():
            text = value if isinstance(value, str) else "\n".join(value)
            delimiter = f"ghadelimiter_{uuid.uuid4().hex}"
            handle.write(f"{key}<<{delimiter}\n{text}\n{delimiter}\n")
