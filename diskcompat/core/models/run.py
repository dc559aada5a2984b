"""
Run bookkeeping — the stages of an update and what happened in each.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel


class Stage(StrEnum):
    """Stages of an update run, in execution order."""

    QUERY_MODEL = "query-model"
    QUERY_DISKS = "query-disks"
    DOWNLOAD = "download"
    PARSE = "parse"
    RECONCILE = "reconcile"
    SAVE_LOCAL = "save-local"
    ELEVATION_CHECK = "elevation-check"
    UPLOAD = "upload"
    ESCALATE = "escalate"


StageStatus = Literal["ok", "warning", "skipped", "failed"]


class StageRecord(BaseModel):
    """Outcome of a single stage."""

    stage: Stage
    status: StageStatus = "ok"
    message: str = ""
    duration_ms: int = 0
