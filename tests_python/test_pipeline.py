"""Behavioural tests for the upload orchestration pipeline."""

from __future__ import annotations

import io
from pathlib import Path
from unittest import mock

import pytest

from publish_test_helpers import RecordingStorageClient, simulated_failure, write_files
from s3_publish import (
    DryRunStorageClient,
    MetadataEntry,
    Profile,
    PublisherConfig,
    Reporter,
    S3StorageClient,
    Severity,
    StorageClass,
    UploadRule,
    publish,
    run,
)
from s3_publish.publishing import DISPLAY_NAME


def create_config(
    workspace: Path,
    rules: list[UploadRule],
    profiles: list[Profile] | None = None,
    metadata: list[MetadataEntry] | None = None,
) -> PublisherConfig:
    """Return a publisher configuration with one default profile."""

    return PublisherConfig(
        workspace=workspace,
        profiles=[Profile("release")] if profiles is None else profiles,
        rules=rules,
        metadata=metadata or [],
    )


def _lines(log_sink: io.StringIO) -> list[str]:
    return log_sink.getvalue().splitlines()


def test_publish_without_profiles_is_unstable(
    workspace: Path,
    recording_client: RecordingStorageClient,
    reporter: Reporter,
    log_sink: io.StringIO,
) -> None:
    """A run with no configured profile should degrade without uploading."""

    write_files(workspace, "build/a.jar")
    config = create_config(workspace, [UploadRule("build/*.jar", "b")], profiles=[])

    result = publish(
        config, {}, client_factory=recording_client.factory, reporter=reporter
    )

    assert result.status is Severity.UNSTABLE
    assert result.outcomes == []
    assert recording_client.calls == []
    assert recording_client.profiles == [], "No client should be built"
    assert _lines(log_sink) == [f"{DISPLAY_NAME} No S3 profile is configured."]


def test_publish_with_unknown_profile_is_unstable(
    workspace: Path, recording_client: RecordingStorageClient, reporter: Reporter
) -> None:
    """Selecting a profile that does not exist should degrade the run."""

    write_files(workspace, "build/a.jar")
    config = create_config(workspace, [UploadRule("build/*.jar", "b")])
    config.profile_name = "missing"

    result = publish(
        config, {}, client_factory=recording_client.factory, reporter=reporter
    )

    assert result.status is Severity.UNSTABLE
    assert recording_client.calls == []


def test_publish_uploads_matches_in_order(
    workspace: Path,
    recording_client: RecordingStorageClient,
    reporter: Reporter,
    log_sink: io.StringIO,
) -> None:
    """Matched files should be keyed below the wildcard and uploaded in order."""

    a_jar, b_jar = write_files(workspace, "build/a.jar", "build/b.jar")
    write_files(workspace, "build/notes.txt")
    config = create_config(
        workspace, [UploadRule("build/*.jar", "artefacts", region="eu-west-1")]
    )

    result = publish(
        config, {}, client_factory=recording_client.factory, reporter=reporter
    )

    assert result.status is Severity.OK
    assert recording_client.keys == ["a.jar", "b.jar"]
    assert [call.source for call in recording_client.calls] == [a_jar, b_jar]
    assert {call.region for call in recording_client.calls} == {"eu-west-1"}
    assert {call.storage_class for call in recording_client.calls} == {
        StorageClass.STANDARD
    }
    assert [outcome.success for outcome in result.outcomes] == [True, True]
    lines = _lines(log_sink)
    assert lines[0] == f"{DISPLAY_NAME} Using S3 profile: release"
    assert lines[1] == f"{DISPLAY_NAME} bucket=artefacts, file=a.jar region = eu-west-1"
    assert lines[2] == f"{DISPLAY_NAME} Uploaded a.jar to s3://artefacts/a.jar"


def test_publish_empty_match_logs_diagnostic_without_degrading(
    workspace: Path,
    recording_client: RecordingStorageClient,
    reporter: Reporter,
    log_sink: io.StringIO,
) -> None:
    """A mask matching nothing is logged but leaves the status untouched."""

    write_files(workspace, "build/a.jar")
    config = create_config(workspace, [UploadRule("build/*.war", "artefacts")])

    result = publish(
        config, {}, client_factory=recording_client.factory, reporter=reporter
    )

    assert result.status is Severity.OK
    assert recording_client.calls == []
    lines = _lines(log_sink)
    assert f"{DISPLAY_NAME} No file(s) found: build/*.war" in lines
    assert any("but 'build' does" in line for line in lines)


def test_publish_continues_after_upload_failure(
    workspace: Path, reporter: Reporter, log_sink: io.StringIO
) -> None:
    """A failed upload should not stop later files and should degrade status."""

    write_files(workspace, "build/a.jar", "build/b.jar")
    client = RecordingStorageClient({"a.jar": simulated_failure("a.jar")})
    config = create_config(workspace, [UploadRule("build/*.jar", "artefacts")])

    result = publish(config, {}, client_factory=client.factory, reporter=reporter)

    assert client.keys == ["a.jar", "b.jar"], "Both uploads should be attempted"
    assert result.status is Severity.UNSTABLE
    assert [outcome.success for outcome in result.outcomes] == [False, True]
    assert result.failed[0].error == "simulated failure for a.jar"
    lines = _lines(log_sink)
    errors = [line for line in lines if "ERROR: Failed to upload" in line]
    successes = [line for line in lines if " Uploaded " in line]
    assert len(errors) == 1
    assert len(successes) == 1
    assert any("UploadError: simulated failure for a.jar" in line for line in lines), (
        "Failure detail should include the traceback"
    )


def test_publish_treats_os_errors_as_upload_failures(
    workspace: Path, reporter: Reporter
) -> None:
    """Local I/O errors raised while uploading should be caught per file."""

    write_files(workspace, "a.txt", "b.txt")
    client = RecordingStorageClient({"a.txt": PermissionError("denied")})
    config = create_config(workspace, [UploadRule("*.txt", "artefacts")])

    result = publish(config, {}, client_factory=client.factory, reporter=reporter)

    assert result.status is Severity.UNSTABLE
    assert client.keys == ["a.txt", "b.txt"]


def test_publish_failure_does_not_stop_later_rules(
    workspace: Path, reporter: Reporter
) -> None:
    """Rules after a failing one should still be processed."""

    write_files(workspace, "build/a.jar", "dist/app.zip")
    client = RecordingStorageClient({"a.jar": simulated_failure("a.jar")})
    config = create_config(
        workspace,
        [UploadRule("build/*.jar", "jars"), UploadRule("dist/*.zip", "zips")],
    )

    result = publish(config, {}, client_factory=client.factory, reporter=reporter)

    assert [call.destination.bucket for call in client.calls] == ["jars", "zips"]
    assert result.status is Severity.UNSTABLE
    assert [outcome.bucket for outcome in result.uploaded] == ["zips"]


def test_publish_expands_macros(
    workspace: Path, recording_client: RecordingStorageClient, reporter: Reporter
) -> None:
    """Source, bucket, storage class and metadata should all be expanded."""

    write_files(workspace, "out/42/app-42.jar")
    config = create_config(
        workspace,
        [
            UploadRule(
                source="out/${BUILD_ID}/*-${BUILD_ID}.jar",
                bucket="artefacts/builds/${BUILD_ID}",
                storage_class="${CLASS}",
                region="us-west-2",
            )
        ],
        metadata=[
            MetadataEntry("build", "${BUILD_ID}"),
            MetadataEntry("build", "${MISSING}"),
        ],
    )
    env = {"BUILD_ID": "42", "CLASS": "reduced_redundancy"}

    result = publish(
        config, env, client_factory=recording_client.factory, reporter=reporter
    )

    assert result.status is Severity.OK
    (call,) = recording_client.calls
    assert call.destination.bucket == "artefacts"
    assert call.destination.key == "builds/42/app-42.jar"
    assert call.storage_class is StorageClass.REDUCED_REDUNDANCY
    assert call.region == "us-west-2"
    assert call.metadata == [
        MetadataEntry("build", "42"),
        MetadataEntry("build", "${MISSING}"),
    ]


def test_publish_skips_rule_with_invalid_storage_class(
    workspace: Path,
    recording_client: RecordingStorageClient,
    reporter: Reporter,
    log_sink: io.StringIO,
) -> None:
    """A storage class that expands to an unknown tier skips only that rule."""

    write_files(workspace, "a.txt", "b.zip")
    config = create_config(
        workspace,
        [
            UploadRule("*.txt", "artefacts", storage_class="${CLASS}"),
            UploadRule("*.zip", "artefacts"),
        ],
    )

    result = publish(
        config,
        {"CLASS": "GLACIER"},
        client_factory=recording_client.factory,
        reporter=reporter,
    )

    assert result.status is Severity.UNSTABLE
    assert recording_client.keys == ["b.zip"]
    assert any("Unsupported storage class 'GLACIER'" in line for line in _lines(log_sink))


def test_publish_literal_mask_uses_file_name(
    workspace: Path, recording_client: RecordingStorageClient, reporter: Reporter
) -> None:
    """A wildcard-free mask should upload the single file under its name."""

    write_files(workspace, "target/release/app.tar.gz")
    config = create_config(
        workspace, [UploadRule("target/release/app.tar.gz", "artefacts/latest")]
    )

    publish(config, {}, client_factory=recording_client.factory, reporter=reporter)

    assert recording_client.keys == ["latest/app.tar.gz"]


def test_publish_uses_selected_profile(
    workspace: Path, recording_client: RecordingStorageClient, reporter: Reporter
) -> None:
    """The client should be built once, for the selected profile."""

    write_files(workspace, "a.txt")
    config = create_config(
        workspace,
        [UploadRule("*.txt", "artefacts"), UploadRule("*.txt", "mirror")],
        profiles=[Profile("nightly"), Profile("release")],
    )
    config.profile_name = "release"

    publish(config, {}, client_factory=recording_client.factory, reporter=reporter)

    assert recording_client.profiles == [Profile("release")]


def test_run_accepts_resolved_profile(
    workspace: Path,
    profile: Profile,
    recording_client: RecordingStorageClient,
    reporter: Reporter,
) -> None:
    """``run`` should publish with an explicitly supplied profile."""

    write_files(workspace, "build/a.jar", "build/b.jar")

    result = run(
        [UploadRule("build/*.jar", "artefacts")],
        profile,
        workspace,
        {},
        [MetadataEntry("k", "v")],
        client_factory=recording_client.factory,
        reporter=reporter,
    )

    assert result.status is Severity.OK
    assert recording_client.keys == ["a.jar", "b.jar"]
    assert recording_client.calls[0].metadata == [MetadataEntry("k", "v")]


def test_run_without_profile_is_unstable(
    workspace: Path, recording_client: RecordingStorageClient, reporter: Reporter
) -> None:
    """``run`` with no profile should degrade and upload nothing."""

    write_files(workspace, "build/a.jar")

    result = run(
        [UploadRule("build/*.jar", "artefacts")],
        None,
        workspace,
        {},
        client_factory=recording_client.factory,
        reporter=reporter,
    )

    assert result.status is Severity.UNSTABLE
    assert recording_client.calls == []


def test_publish_with_dry_run_client(
    workspace: Path, reporter: Reporter, log_sink: io.StringIO
) -> None:
    """The dry-run client should plan uploads through the reporter."""

    write_files(workspace, "build/a.jar")
    client = DryRunStorageClient(reporter.log)
    config = create_config(workspace, [UploadRule("build/*.jar", "artefacts/x")])

    result = publish(
        config, {}, client_factory=lambda _profile: client, reporter=reporter
    )

    assert result.status is Severity.OK
    assert [planned.destination.key for planned in client.planned] == ["x/a.jar"]
    assert f"{DISPLAY_NAME} Would upload" in log_sink.getvalue()


def test_publish_resolves_relative_workspace_root(
    workspace: Path,
    recording_client: RecordingStorageClient,
    reporter: Reporter,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """A relative workspace should still yield absolute paths and full names."""

    write_files(workspace, "build/a.jar", "build/libs/c.jar")
    monkeypatch.chdir(workspace)
    config = create_config(Path("."), [UploadRule("build/**/*.jar", "artefacts")])

    result = publish(
        config, {}, client_factory=recording_client.factory, reporter=reporter
    )

    assert result.status is Severity.OK
    assert recording_client.keys == ["a.jar", "libs/c.jar"]
    assert [call.source for call in recording_client.calls] == [
        workspace / "build" / "a.jar",
        workspace / "build" / "libs" / "c.jar",
    ]


def test_run_resolves_relative_workspace_root(
    workspace: Path,
    profile: Profile,
    recording_client: RecordingStorageClient,
    reporter: Reporter,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """``run`` should accept a workspace given relative to the cwd."""

    write_files(workspace, "build/a.jar")
    monkeypatch.chdir(workspace.parent)

    run(
        [UploadRule("build/*.jar", "artefacts")],
        profile,
        Path(workspace.name),
        {},
        client_factory=recording_client.factory,
        reporter=reporter,
    )

    assert recording_client.keys == ["a.jar"]
    assert recording_client.calls[0].source == workspace / "build" / "a.jar"


def test_publish_degrades_when_endpoint_is_rejected(
    workspace: Path, reporter: Reporter, log_sink: io.StringIO
) -> None:
    """A client that cannot be built should fail each file and keep going."""

    write_files(workspace, "build/a.jar", "build/b.jar")
    session = mock.MagicMock()
    session.client.side_effect = ValueError("Invalid endpoint: not a url")
    config = create_config(
        workspace,
        [UploadRule("build/*.jar", "artefacts")],
        profiles=[Profile("release", "AK", "SK", endpoint_url="not a url")],
    )

    result = publish(
        config,
        {},
        client_factory=lambda profile: S3StorageClient(profile, session=session),
        reporter=reporter,
    )

    assert result.status is Severity.UNSTABLE
    assert [outcome.file.relative_key for outcome in result.failed] == [
        "a.jar",
        "b.jar",
    ]
    assert "Invalid endpoint" in log_sink.getvalue()
