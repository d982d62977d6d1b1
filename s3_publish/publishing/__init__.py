"""Publishing pipeline package exposing the upload orchestration."""

from .output import prepare_outputs, write_github_output
from .pipeline import ClientFactory, publish, run
from .report import (
    DISPLAY_NAME,
    Reporter,
    RunResult,
    Severity,
    UploadOutcome,
    fold_status,
)

__all__ = [
    "ClientFactory",
    "DISPLAY_NAME",
    "Reporter",
    "RunResult",
    "Severity",
    "UploadOutcome",
    "fold_status",
    "prepare_outputs",
    "publish",
    "run",
    "write_github_output",
]
