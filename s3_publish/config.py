"""Configuration models and loader for the publishing helper.

This module provides dataclasses and a loader function for parsing TOML
publisher configurations that describe credential profiles, upload rules and
the user metadata attached to every uploaded object.

Usage
-----
Load a publisher configuration for the current workspace::

    from pathlib import Path
    from s3_publish.config import load_config

    config = load_config(Path(".github/s3-publish.toml"), Path.cwd())
    print(f"Rules: {len(config.rules)}")
"""

from __future__ import annotations

import dataclasses
import enum
import functools
import typing as typ
import urllib.parse
from pathlib import Path

import boto3
import tomllib

from .errors import ConfigurationError
from .macros import MACRO_PATTERN

__all__ = [
    "DEFAULT_REGION",
    "MetadataEntry",
    "Profile",
    "PublisherConfig",
    "StorageClass",
    "UploadRule",
    "load_config",
    "normalise_region",
    "parse_storage_class",
]

DEFAULT_REGION = "us-east-1"


class StorageClass(enum.StrEnum):
    """Durability tiers accepted for uploaded objects."""

    STANDARD = "STANDARD"
    REDUCED_REDUNDANCY = "REDUCED_REDUNDANCY"


@dataclasses.dataclass(slots=True, frozen=True)
class UploadRule:
    """Describe which workspace files to upload and where.

    Parameters
    ----------
    source : str
        Ant-style mask relative to the workspace. May contain macros.
    bucket : str
        Destination bucket, optionally followed by ``/key/prefix``. May
        contain macros.
    storage_class : str, default="STANDARD"
        Storage class name. Kept as text because it may contain macros.
    region : str, default="us-east-1"
        Region identifier used verbatim when uploading.

    Examples
    --------
    >>> rule = UploadRule(source="build/*.jar", bucket="artefacts/${BUILD_ID}")
    >>> rule.storage_class
    'STANDARD'
    """

    source: str
    bucket: str
    storage_class: str = StorageClass.STANDARD.value
    region: str = DEFAULT_REGION


@dataclasses.dataclass(slots=True, frozen=True)
class MetadataEntry:
    """User metadata key/value pair attached to every uploaded object."""

    key: str
    value: str


@dataclasses.dataclass(slots=True, frozen=True)
class Profile:
    """Resolved credential profile.

    Missing keys defer to the boto3 default credential chain.
    """

    name: str
    access_key: str | None = None
    secret_key: str | None = dataclasses.field(default=None, repr=False)
    endpoint_url: str | None = None


@dataclasses.dataclass(slots=True)
class PublisherConfig:
    """Concrete configuration produced by :func:`load_config`.

    Parameters
    ----------
    workspace : Path
        Root directory every rule's mask is resolved against.
    profiles : list[Profile]
        Credential profiles available to the run.
    rules : list[UploadRule]
        Upload rules processed in order.
    metadata : list[MetadataEntry]
        Metadata applied to every upload, in declaration order.
    profile_name : str | None, optional
        Profile selected for the run. ``None`` selects the first profile.
    """

    workspace: Path
    profiles: list[Profile]
    rules: list[UploadRule]
    metadata: list[MetadataEntry] = dataclasses.field(default_factory=list)
    profile_name: str | None = None

    def resolve_profile(self) -> Profile | None:
        """Return the selected profile or ``None`` when it cannot be found."""
        if self.profile_name is None:
            return self.profiles[0] if self.profiles else None
        return next(
            (profile for profile in self.profiles if profile.name == self.profile_name),
            None,
        )


def load_config(
    config_file: Path, workspace: Path, profile_name: str | None = None
) -> PublisherConfig:
    """Load the publisher configuration from ``config_file``.

    Parameters
    ----------
    config_file : Path
        Path to the TOML configuration file.
    workspace : Path
        Workspace root the upload rules are resolved against.
    profile_name : str | None, optional
        Profile overriding ``[publisher].profile`` from the file.

    Returns
    -------
    PublisherConfig
        Validated configuration snapshot for a single run.

    Raises
    ------
    ConfigurationError
        Raised when the file is absent, is not valid TOML, or when required
        keys are missing or hold values of the wrong type.
    """
    config_file = Path(config_file)
    if not config_file.is_file():
        message = f"Configuration file not found at {config_file}"
        raise ConfigurationError(message)

    data = _load_toml(config_file)
    publisher = _table(data, "publisher", config_file)
    selected = profile_name or _optional_str(publisher, "profile", "publisher", config_file)

    return PublisherConfig(
        workspace=Path(workspace).absolute(),
        profiles=_make_profiles(data.get("profiles", []), config_file),
        rules=_make_rules(data.get("entries", []), config_file),
        metadata=_make_metadata(data.get("metadata", []), config_file),
        profile_name=selected,
    )


def parse_storage_class(text: str) -> StorageClass:
    """Return the :class:`StorageClass` named by ``text``.

    Raises
    ------
    ConfigurationError
        Raised when ``text`` is not a supported storage class.
    """
    try:
        return StorageClass(text.strip().upper())
    except ValueError as exc:
        allowed = ", ".join(member.value for member in StorageClass)
        message = f"Unsupported storage class '{text}' (expected one of {allowed})"
        raise ConfigurationError(message) from exc


def normalise_region(text: str) -> str:
    """Return ``text`` as a boto3 region name.

    Provider enumeration names such as ``US_EAST_1`` are accepted alongside
    ``us-east-1``.

    Raises
    ------
    ConfigurationError
        Raised when the region is unknown to botocore for S3.

    Examples
    --------
    >>> normalise_region("EU_WEST_1")  # doctest: +SKIP
    'eu-west-1'
    """
    region = text.strip().lower().replace("_", "-")
    if region not in _known_regions():
        message = f"Unknown S3 region '{text}'"
        raise ConfigurationError(message)
    return region


@functools.cache
def _known_regions() -> frozenset[str]:
    session = boto3.session.Session()
    regions: set[str] = set()
    for partition in session.get_available_partitions():
        regions.update(session.get_available_regions("s3", partition_name=partition))
    return frozenset(regions)


def _load_toml(path: Path) -> dict[str, typ.Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        message = f"Invalid TOML in {path}: {exc}"
        raise ConfigurationError(message) from exc


def _table(data: dict[str, typ.Any], name: str, config_path: Path) -> dict[str, typ.Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        message = f"[{name}] must be a table in {config_path}"
        raise ConfigurationError(message)
    return section


def _array_of_tables(
    value: object, label: str, config_path: Path
) -> list[tuple[int, dict[str, typ.Any]]]:
    if not isinstance(value, list):
        message = f"[[{label}]] must be an array of tables in {config_path}"
        raise ConfigurationError(message)
    tables: list[tuple[int, dict[str, typ.Any]]] = []
    for index, entry in enumerate(value, start=1):
        if not isinstance(entry, dict):
            message = (
                f"Each [[{label}]] item must be a table of key/value pairs "
                f"(entry #{index} in {config_path})"
            )
            raise ConfigurationError(message)
        tables.append((index, entry))
    return tables


def _required_str(
    entry: dict[str, typ.Any], key: str, label: str, config_path: Path
) -> str:
    value = entry.get(key)
    if not isinstance(value, str) or not value:
        message = f"Missing required key '{key}' in {label} of {config_path}"
        raise ConfigurationError(message)
    return value


def _optional_str(
    entry: dict[str, typ.Any], key: str, label: str, config_path: Path
) -> str | None:
    value = entry.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        message = f"Key '{key}' in {label} of {config_path} must be a string"
        raise ConfigurationError(message)
    return value or None


def _make_profiles(value: object, config_path: Path) -> list[Profile]:
    profiles: list[Profile] = []
    seen: set[str] = set()
    for index, entry in _array_of_tables(value, "profiles", config_path):
        label = f"profile #{index}"
        name = _required_str(entry, "name", label, config_path)
        if name in seen:
            message = f"Duplicate profile name '{name}' in {config_path}"
            raise ConfigurationError(message)
        seen.add(name)
        profiles.append(
            Profile(
                name=name,
                access_key=_optional_str(entry, "access_key", label, config_path),
                secret_key=_optional_str(entry, "secret_key", label, config_path),
                endpoint_url=_endpoint_url(entry, label, config_path),
            )
        )
    return profiles


def _endpoint_url(
    entry: dict[str, typ.Any], label: str, config_path: Path
) -> str | None:
    value = _optional_str(entry, "endpoint_url", label, config_path)
    if value is None:
        return None
    parsed = urllib.parse.urlsplit(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        message = (
            f"Key 'endpoint_url' in {label} of {config_path} must be an "
            f"http(s) URL, got '{value}'"
        )
        raise ConfigurationError(message)
    return value


def _make_rules(value: object, config_path: Path) -> list[UploadRule]:
    rules: list[UploadRule] = []
    for index, entry in _array_of_tables(value, "entries", config_path):
        label = f"entry #{index}"
        storage_class = (
            _optional_str(entry, "storage_class", label, config_path)
            or StorageClass.STANDARD.value
        )
        if not MACRO_PATTERN.search(storage_class):
            storage_class = parse_storage_class(storage_class).value
        region = _optional_str(entry, "region", label, config_path) or DEFAULT_REGION
        rules.append(
            UploadRule(
                source=_required_str(entry, "source", label, config_path),
                bucket=_required_str(entry, "bucket", label, config_path),
                storage_class=storage_class,
                region=normalise_region(region),
            )
        )
    return rules


def _make_metadata(value: object, config_path: Path) -> list[MetadataEntry]:
    entries: list[MetadataEntry] = []
    for index, entry in _array_of_tables(value, "metadata", config_path):
        label = f"metadata #{index}"
        raw_value = entry.get("value", "")
        if not isinstance(raw_value, str):
            message = f"Key 'value' in {label} of {config_path} must be a string"
            raise ConfigurationError(message)
        entries.append(
            MetadataEntry(
                key=_required_str(entry, "key", label, config_path),
                value=raw_value,
            )
        )
    return entries
