"""Public interface for the S3 artefact publishing helper."""

from .config import (
    MetadataEntry,
    Profile,
    PublisherConfig,
    StorageClass,
    UploadRule,
    load_config,
)
from .environment import parse_definitions, pipeline_environment, workspace_root
from .errors import ConfigurationError, PublishError, UploadError
from .keys import Destination, MatchedFile, derive_matches, prefix_length, relative_key
from .macros import expand
from .publishing import Reporter, RunResult, Severity, UploadOutcome, publish, run
from .storage import DryRunStorageClient, S3StorageClient, StorageClient
from .workspace import Workspace, diagnose, match

__all__ = [
    "ConfigurationError",
    "Destination",
    "DryRunStorageClient",
    "MatchedFile",
    "MetadataEntry",
    "Profile",
    "PublishError",
    "PublisherConfig",
    "Reporter",
    "RunResult",
    "S3StorageClient",
    "Severity",
    "StorageClass",
    "StorageClient",
    "UploadError",
    "UploadOutcome",
    "UploadRule",
    "Workspace",
    "derive_matches",
    "diagnose",
    "expand",
    "load_config",
    "match",
    "parse_definitions",
    "pipeline_environment",
    "prefix_length",
    "publish",
    "relative_key",
    "run",
    "workspace_root",
]
