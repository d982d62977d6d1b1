"""Line-oriented reporting and status folding for publishing runs."""

from __future__ import annotations

import dataclasses
import enum
import sys
import typing as typ

if typ.TYPE_CHECKING:
    from ..keys import Destination, MatchedFile

__all__ = [
    "DISPLAY_NAME",
    "Reporter",
    "RunResult",
    "Severity",
    "UploadOutcome",
    "fold_status",
]

DISPLAY_NAME = "Publish artifacts to S3 Bucket"


class Severity(enum.IntEnum):
    """Ordered outcome severities; the worst one observed wins."""

    OK = 0
    UNSTABLE = 1


def fold_status(severities: typ.Iterable[Severity]) -> Severity:
    """Return the worst of ``severities`` or ``OK`` when there are none.

    Examples
    --------
    >>> fold_status([Severity.OK, Severity.UNSTABLE, Severity.OK]).name
    'UNSTABLE'
    >>> fold_status([]).name
    'OK'
    """
    return max(severities, default=Severity.OK)


@dataclasses.dataclass(slots=True, frozen=True)
class UploadOutcome:
    """Result of one attempted upload."""

    file: MatchedFile
    destination: Destination
    success: bool
    error: str | None = None

    @property
    def bucket(self) -> str:
        return self.destination.bucket


@dataclasses.dataclass(slots=True)
class RunResult:
    """Outcome of a publishing run."""

    status: Severity
    outcomes: list[UploadOutcome]

    @property
    def uploaded(self) -> list[UploadOutcome]:
        return [outcome for outcome in self.outcomes if outcome.success]

    @property
    def failed(self) -> list[UploadOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.success]


class Reporter:
    """Write one labelled line per event and track the run severity.

    Parameters
    ----------
    stream:
        Log sink. Defaults to :data:`sys.stdout` at write time.
    label:
        Prefix written before every message.
    annotate:
        Also emit GitHub Actions ``::warning``/``::error`` annotations on
        :data:`sys.stderr` for warnings and degrading events.

    Examples
    --------
    >>> import io
    >>> sink = io.StringIO()
    >>> reporter = Reporter(sink, label="[s3]")
    >>> reporter.degrade("No S3 profile is configured.")
    >>> sink.getvalue()
    '[s3] No S3 profile is configured.\\n'
    >>> reporter.status.name
    'UNSTABLE'
    """

    def __init__(
        self,
        stream: typ.TextIO | None = None,
        label: str = DISPLAY_NAME,
        *,
        annotate: bool = False,
    ) -> None:
        self._stream = stream
        self.label = label
        self.annotate = annotate
        self._severities: list[Severity] = []
        self.outcomes: list[UploadOutcome] = []

    @property
    def status(self) -> Severity:
        return fold_status(self._severities)

    def log(self, message: str, severity: Severity = Severity.OK) -> None:
        """Write ``message`` and record ``severity``."""
        self._severities.append(severity)
        print(f"{self.label} {message}", file=self._stream or sys.stdout)

    def warn(self, message: str) -> None:
        """Write a warning that does not degrade the run."""
        self.log(message)
        self._annotation("warning", "Publish Warning", message)

    def degrade(self, message: str, detail: str | None = None) -> None:
        """Write ``message`` and mark the run unstable.

        ``detail`` (typically a formatted traceback) follows as indented lines.
        """
        self.log(message, Severity.UNSTABLE)
        if detail:
            stream = self._stream or sys.stdout
            for line in detail.rstrip("\n").splitlines():
                print(f"    {line}", file=stream)
        self._annotation("error", "Publish Failure", message)

    def record(self, outcome: UploadOutcome, detail: str | None = None) -> None:
        """Report ``outcome`` as it happens."""
        self.outcomes.append(outcome)
        if outcome.success:
            self.log(
                f"Uploaded {outcome.file.absolute_path.name} to "
                f"{outcome.destination.uri}"
            )
            return
        self.degrade(
            f"ERROR: Failed to upload {outcome.file.absolute_path.as_posix()} to "
            f"{outcome.destination.uri}: {outcome.error}",
            detail,
        )

    def result(self) -> RunResult:
        """Return the :class:`RunResult` for the events reported so far."""
        return RunResult(self.status, list(self.outcomes))

    def _annotation(self, level: str, title: str, message: str) -> None:
        if self.annotate:
            print(f"::{level} title={title}::{message}", file=sys.stderr)
