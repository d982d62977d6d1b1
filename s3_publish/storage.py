"""Object storage clients used by the publishing pipeline."""

from __future__ import annotations

import dataclasses
import mimetypes
import typing as typ
from pathlib import Path

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from .config import DEFAULT_REGION
from .errors import ConfigurationError, UploadError

if typ.TYPE_CHECKING:
    from .config import MetadataEntry, Profile, StorageClass
    from .keys import Destination

__all__ = [
    "DryRunStorageClient",
    "PlannedUpload",
    "S3StorageClient",
    "StorageClient",
    "metadata_mapping",
]


class StorageClient(typ.Protocol):
    """Upload boundary the publishing pipeline depends on."""

    def upload(
        self,
        destination: Destination,
        source: Path,
        metadata: typ.Sequence[MetadataEntry],
        storage_class: StorageClass,
        region: str,
    ) -> None:
        """Upload ``source`` to ``destination`` or raise :class:`UploadError`."""
        ...


def metadata_mapping(entries: typ.Iterable[MetadataEntry]) -> dict[str, str]:
    """Return ``entries`` as an object metadata mapping.

    Repeated keys are joined with ``,`` in declaration order so that no entry
    is dropped.

    Examples
    --------
    >>> from s3_publish.config import MetadataEntry
    >>> metadata_mapping([MetadataEntry("a", "1"), MetadataEntry("a", "2")])
    {'a': '1,2'}
    """
    mapping: dict[str, str] = {}
    for entry in entries:
        if entry.key in mapping:
            mapping[entry.key] = f"{mapping[entry.key]},{entry.value}"
        else:
            mapping[entry.key] = entry.value
    return mapping


class S3StorageClient:
    """Upload files to S3 with boto3 using one client per region.

    Parameters
    ----------
    profile:
        Credential profile. Missing keys defer to the boto3 credential chain.
    session:
        Optional pre-built :class:`boto3.session.Session`.
    """

    def __init__(
        self, profile: Profile, session: boto3.session.Session | None = None
    ) -> None:
        self.profile = profile
        self._session = session or boto3.session.Session(
            aws_access_key_id=profile.access_key,
            aws_secret_access_key=profile.secret_key,
        )
        self._clients: dict[str, typ.Any] = {}

    def upload(
        self,
        destination: Destination,
        source: Path,
        metadata: typ.Sequence[MetadataEntry],
        storage_class: StorageClass,
        region: str,
    ) -> None:
        """Upload ``source`` with user metadata and a storage class.

        Raises
        ------
        UploadError
            Raised when boto3 rejects the endpoint or reports a failure for
            the transfer.
        """
        extra_args: dict[str, typ.Any] = {
            "Metadata": metadata_mapping(metadata),
            "StorageClass": storage_class.value,
        }
        content_type, _ = mimetypes.guess_type(source.name)
        if content_type:
            extra_args["ContentType"] = content_type
        try:
            self._client(region).upload_file(
                str(source), destination.bucket, destination.key, ExtraArgs=extra_args
            )
        except (BotoCoreError, ClientError, S3UploadFailedError, ValueError) as exc:
            message = f"Failed to upload {source} to {destination.uri}: {exc}"
            raise UploadError(message) from exc

    def check(self, region: str = DEFAULT_REGION) -> list[str]:
        """Return the bucket names visible to the profile's credentials.

        Raises
        ------
        ConfigurationError
            Raised when the S3 service rejects the credentials or is
            unreachable.
        """
        try:
            response = self._client(region).list_buckets()
        except (BotoCoreError, ClientError, ValueError) as exc:
            message = f"Can't connect to S3 service: {exc}"
            raise ConfigurationError(message) from exc
        return [bucket["Name"] for bucket in response.get("Buckets", [])]

    def _client(self, region: str) -> typ.Any:
        if region not in self._clients:
            self._clients[region] = self._session.client(
                "s3", region_name=region, endpoint_url=self.profile.endpoint_url
            )
        return self._clients[region]


@dataclasses.dataclass(slots=True, frozen=True)
class PlannedUpload:
    """Upload recorded by :class:`DryRunStorageClient`."""

    destination: Destination
    source: Path
    metadata: dict[str, str]
    storage_class: str
    region: str


class DryRunStorageClient:
    """Record uploads without contacting the storage service.

    Parameters
    ----------
    log:
        Sink for one line per planned upload, typically
        :meth:`Reporter.log <s3_publish.publishing.report.Reporter.log>`.
        Nothing is written when omitted.
    """

    def __init__(self, log: typ.Callable[[str], object] | None = None) -> None:
        self._log = log
        self.planned: list[PlannedUpload] = []

    def upload(
        self,
        destination: Destination,
        source: Path,
        metadata: typ.Sequence[MetadataEntry],
        storage_class: StorageClass,
        region: str,
    ) -> None:
        if not source.is_file():
            message = f"Artefact {source} does not exist"
            raise UploadError(message)
        planned = PlannedUpload(
            destination,
            source,
            metadata_mapping(metadata),
            storage_class.value,
            region,
        )
        self.planned.append(planned)
        if self._log is not None:
            self._log(
                f"Would upload {source} -> {destination.uri} "
                f"({planned.storage_class}, {region})"
            )
