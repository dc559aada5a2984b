"""
Action and Receipt — one remote operation and its outcome.

Services describe what they need from the NAS as an Action (run this
command, copy that file) and get a Receipt back from the adapter
registry. Failures travel inside the Receipt; turning them into
exceptions is the services' job.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

ReceiptStatus = Literal["ok", "skipped", "failed"]


def _utcnow() -> str:
    return datetime.now(UTC).isoformat()


class Action(BaseModel):
    """A single ssh command or scp copy to perform."""

    id: str                         # stable per step: "query-model", "upload-db", ...
    adapter: str                    # "ssh" or "scp"
    name: str = ""                  # shown in debug logs
    params: dict[str, Any] = Field(default_factory=dict)

    @property
    def label(self) -> str:
        return self.name or self.id


class Receipt(BaseModel):
    """What happened when an Action ran (or did not run).

    ``return_code`` is the tool's exit status, None when it never exited
    (timeout, missing executable). ``error_kind`` classifies failures:
    ``exit``, ``connection``, ``timeout``, ``tool-missing``,
    ``missing-output``, ``invalid``, ``no-adapter``.
    """

    adapter: str
    action_id: str
    status: ReceiptStatus = "ok"

    output: str = ""
    error: str | None = None
    return_code: int | None = None
    error_kind: str | None = None

    started_at: str = Field(default_factory=_utcnow)
    duration_ms: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"

    @classmethod
    def success(cls, adapter: str, action_id: str, output: str = "", **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, output=output, **kwargs)

    @classmethod
    def failure(cls, adapter: str, action_id: str, error: str, **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, status="failed", error=error, **kwargs)

    @classmethod
    def skip(cls, adapter: str, action_id: str, reason: str = "", **kwargs: Any) -> Receipt:
        """Receipt for an action that was validated but not run (dry run)."""
        return cls(adapter=adapter, action_id=action_id, status="skipped", output=reason, **kwargs)
