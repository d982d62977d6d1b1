# /// script
# requires-python = ">=3.11"
# dependencies = [
#   "boto3>=1.28",
#   "cyclopts>=2.9",
# ]
# ///

"""Command-line entry point for the S3 publishing helper.

Examples
--------
Publish the artefacts described by a configuration file from the workspace
root::

    export GITHUB_WORKSPACE="$(pwd)"
    uv run publish.py .github/s3-publish.toml --define BUILD_ID=42

Show the planned uploads without contacting S3::

    uv run publish.py .github/s3-publish.toml --dry-run
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import cyclopts

from s3_publish import (
    ConfigurationError,
    DryRunStorageClient,
    Profile,
    Reporter,
    S3StorageClient,
    Severity,
    load_config,
    parse_definitions,
    pipeline_environment,
    publish,
    workspace_root,
)
from s3_publish.publishing import ClientFactory, prepare_outputs, write_github_output

app = cyclopts.App(help="Publish workspace artefacts to S3 using a TOML configuration file.")


def _fail(exc: Exception) -> SystemExit:
    print(f"::error title=Publish Failure::{exc}", file=sys.stderr)
    return SystemExit(1)


def _dry_run_factory(reporter: Reporter) -> ClientFactory:
    def factory(_profile: Profile) -> DryRunStorageClient:
        return DryRunStorageClient(reporter.log)

    return factory


@app.default
def main(
    config_file: Path,
    *,
    profile: str | None = None,
    define: list[str] | None = None,
    dry_run: bool = False,
) -> None:
    """Upload the files matched by ``config_file``'s rules.

    Parameters
    ----------
    config_file:
        Path to the TOML publisher configuration.
    profile:
        Profile name overriding ``[publisher].profile``.
    define:
        ``NAME=VALUE`` variables added to the environment used for macros.
    dry_run:
        Print the planned uploads instead of performing them.
    """
    workspace = workspace_root()
    try:
        config = load_config(Path(config_file), workspace, profile)
        env = pipeline_environment(parse_definitions(define or []))
    except ConfigurationError as exc:
        raise _fail(exc) from exc

    reporter = Reporter(annotate=os.environ.get("GITHUB_ACTIONS") == "true")
    factory: ClientFactory = _dry_run_factory(reporter) if dry_run else S3StorageClient
    result = publish(config, env, client_factory=factory, reporter=reporter)

    if github_output := os.environ.get("GITHUB_OUTPUT"):
        write_github_output(Path(github_output), prepare_outputs(result, workspace))

    print(
        f"Uploaded {len(result.uploaded)} artefact(s); "
        f"{len(result.failed)} failed. Status: {result.status.name}.",
        file=sys.stderr,
    )
    if result.status is Severity.UNSTABLE:
        print(
            "::warning title=Publish Unstable::Some artefacts were not published.",
            file=sys.stderr,
        )


@app.command
def check(config_file: Path, *, profile: str | None = None) -> None:
    """Verify that the selected profile can reach S3.

    Parameters
    ----------
    config_file:
        Path to the TOML publisher configuration.
    profile:
        Profile name overriding ``[publisher].profile``.
    """
    try:
        config = load_config(Path(config_file), workspace_root(), profile)
        resolved = config.resolve_profile()
        if resolved is None:
            message = "No S3 profile is configured."
            raise ConfigurationError(message)
        buckets = S3StorageClient(resolved).check()
    except ConfigurationError as exc:
        raise _fail(exc) from exc

    print(f"Profile '{resolved.name}' can list {len(buckets)} bucket(s).")


if __name__ == "__main__":
    app()
