"""Core artefact publishing pipeline."""

from __future__ import annotations

import traceback
import typing as typ
from pathlib import Path

from ..config import PublisherConfig, parse_storage_class
from ..errors import ConfigurationError, UploadError
from ..keys import derive_matches, split_destination
from ..macros import expand, expand_metadata
from ..storage import S3StorageClient
from ..workspace import Workspace
from .report import Reporter, RunResult, UploadOutcome

if typ.TYPE_CHECKING:
    from ..config import MetadataEntry, Profile, StorageClass, UploadRule
    from ..keys import MatchedFile
    from ..storage import StorageClient

__all__ = ["ClientFactory", "publish", "run"]

ClientFactory = typ.Callable[["Profile"], "StorageClient"]


def publish(
    config: PublisherConfig,
    env: typ.Mapping[str, str],
    *,
    client_factory: ClientFactory = S3StorageClient,
    reporter: Reporter | None = None,
) -> RunResult:
    """Upload every file matched by ``config``'s rules.

    Parameters
    ----------
    config : PublisherConfig
        Configuration snapshot for this run.
    env : Mapping[str, str]
        Variables used to expand macros in rules and metadata.
    client_factory : Callable[[Profile], StorageClient], optional
        Builds the storage client for the resolved profile.
    reporter : Reporter | None, optional
        Log sink for the run. A stdout reporter is created when omitted.

    Returns
    -------
    RunResult
        ``UNSTABLE`` when no profile resolves, when a rule cannot run, or when
        any upload fails; ``OK`` otherwise. Failures never abort the run.
    """

    reporter = reporter or Reporter()
    profile = config.resolve_profile()
    if profile is None:
        reporter.degrade("No S3 profile is configured.")
        return reporter.result()

    reporter.log(f"Using S3 profile: {profile.name}")
    client = client_factory(profile)
    workspace = Workspace(config.workspace)
    for rule in config.rules:
        _publish_rule(workspace, rule, config.metadata, env, client, reporter)
    return reporter.result()


def run(
    rules: typ.Sequence[UploadRule],
    profile: Profile | None,
    workspace_root: Path,
    env: typ.Mapping[str, str],
    metadata: typ.Sequence[MetadataEntry] = (),
    *,
    client_factory: ClientFactory = S3StorageClient,
    reporter: Reporter | None = None,
) -> RunResult:
    """Publish ``rules`` with an already resolved ``profile``."""

    config = PublisherConfig(
        workspace=Path(workspace_root).absolute(),
        profiles=[profile] if profile is not None else [],
        rules=list(rules),
        metadata=list(metadata),
    )
    return publish(config, env, client_factory=client_factory, reporter=reporter)


def _publish_rule(
    workspace: Workspace,
    rule: UploadRule,
    metadata: typ.Sequence[MetadataEntry],
    env: typ.Mapping[str, str],
    client: StorageClient,
    reporter: Reporter,
) -> None:
    source = expand(rule.source, env)
    bucket = expand(rule.bucket, env)
    try:
        storage_class = parse_storage_class(expand(rule.storage_class, env))
    except ConfigurationError as exc:
        reporter.degrade(f"Skipping '{source}': {exc}")
        return

    paths = workspace.list_files(source)
    if not paths:
        reporter.warn(f"No file(s) found: {source}")
        if (error := workspace.validate_pattern(source)) is not None:
            reporter.warn(error)
        return

    matched = derive_matches(workspace.root, source, paths)
    expanded_metadata = expand_metadata(metadata, env)
    for item in matched:
        _upload_single_file(
            client, reporter, item, bucket, expanded_metadata, storage_class, rule.region
        )


def _upload_single_file(
    client: StorageClient,
    reporter: Reporter,
    item: MatchedFile,
    bucket: str,
    metadata: list[MetadataEntry],
    storage_class: StorageClass,
    region: str,
) -> None:
    destination = split_destination(bucket, item.relative_key)
    reporter.log(
        f"bucket={bucket}, file={item.absolute_path.name} region = {region}"
    )
    try:
        client.upload(destination, item.absolute_path, metadata, storage_class, region)
    except (UploadError, OSError) as exc:
        reporter.record(
            UploadOutcome(item, destination, success=False, error=str(exc)),
            detail=traceback.format_exc(),
        )
        return
    reporter.record(UploadOutcome(item, destination, success=True))
