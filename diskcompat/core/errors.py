"""
Error taxonomy for an update run.

Adapters never raise; the services translate failed receipts into one
of these. Every error remembers the stage it was raised in so the use
case can report where the run stopped.
"""

from __future__ import annotations


class UpdateError(Exception):
    """Base class for failures that end (or degrade) a run."""

    kind = "update-failed"

    def __init__(self, message: str, stage: str = "", detail: str = ""):
        super().__init__(message)
        self.stage = stage
        self.detail = detail

    def __str__(self) -> str:
        message = super().__str__()
        if self.detail:
            return f"{message}: {self.detail}"
        return message


class PrerequisiteMissing(UpdateError):
    """A required local executable (ssh, scp) is not on PATH."""

    kind = "prerequisite-missing"


class RemoteExecutionFailed(UpdateError):
    """A remote command exited non-zero, timed out, or never connected."""

    kind = "remote-execution-failed"


class CopyFailed(UpdateError):
    """A file transfer to or from the NAS failed."""

    kind = "copy-failed"


class ParseFailed(UpdateError):
    """The downloaded file is not a usable compatibility database."""

    kind = "parse-failed"


class EscalationFailed(UpdateError):
    """Privileged relocation is unavailable or failed.

    ``staging_path`` is set when the file was already uploaded and is
    left on the NAS for manual recovery.
    """

    kind = "escalation-failed"

    def __init__(
        self,
        message: str,
        stage: str = "",
        detail: str = "",
        staging_path: str | None = None,
    ):
        super().__init__(message, stage=stage, detail=detail)
        self.staging_path = staging_path
