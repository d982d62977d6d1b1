"""Shared helpers for the publishing test suites."""

from __future__ import annotations

import dataclasses
import typing as typ
from pathlib import Path

from s3_publish import UploadError

if typ.TYPE_CHECKING:
    from s3_publish import Destination, MetadataEntry, Profile, StorageClass

__all__ = [
    "RecordingStorageClient",
    "UploadCall",
    "decode_output_file",
    "simulated_failure",
    "write_files",
]


@dataclasses.dataclass(slots=True)
class UploadCall:
    """Arguments received by :class:`RecordingStorageClient`."""

    destination: Destination
    source: Path
    metadata: list[MetadataEntry]
    storage_class: StorageClass
    region: str


class RecordingStorageClient:
    """Storage client double that records calls and fails on request.

    Parameters
    ----------
    failures:
        Mapping of file names to the exception raised when they upload.
    """

    def __init__(self, failures: dict[str, Exception] | None = None) -> None:
        self.failures = dict(failures or {})
        self.calls: list[UploadCall] = []
        self.profiles: list[Profile] = []

    def factory(self, profile: Profile) -> RecordingStorageClient:
        """Client factory accepted by :func:`s3_publish.publish`."""
        self.profiles.append(profile)
        return self

    def upload(
        self,
        destination: Destination,
        source: Path,
        metadata: typ.Sequence[MetadataEntry],
        storage_class: StorageClass,
        region: str,
    ) -> None:
        self.calls.append(
            UploadCall(destination, source, list(metadata), storage_class, region)
        )
        if (failure := self.failures.get(source.name)) is not None:
            raise failure

    @property
    def keys(self) -> list[str]:
        return [call.destination.key for call in self.calls]


def simulated_failure(name: str) -> UploadError:
    """Return the :class:`UploadError` raised for ``name`` in tests."""

    return UploadError(f"simulated failure for {name}")


def write_files(root: Path, *relatives: str) -> list[Path]:
    """Create ``relatives`` below ``root`` and return their absolute paths."""

    created: list[Path] = []
    for relative in relatives:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(relative, encoding="utf-8")
        created.append(path)
    return created


def decode_output_file(path: Path) -> dict[str, str]:
    """Parse GitHub output records written with ``write_github_output``.

    Parameters
    ----------
    path : Path
        Path to the output file containing GitHub workflow output records.

    Returns
    -------
    dict[str, str]
        Mapping of output keys to their decoded string values.
    """

    lines = path.read_text(encoding="utf-8").splitlines()
    values: dict[str, str] = {}
    index = 0
    while index < len(lines):
        key, delimiter = lines[index].split("<<", 1)
        index += 1
        buffer: list[str] = []
        while lines[index] != delimiter:
            buffer.append(lines[index])
            index += 1
        values[key] = "\n".join(buffer)
        index += 1
    return values
