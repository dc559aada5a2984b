"""
Disks use case — list the NAS's physical disks, optionally against its database.

Read-only: nothing is written to the NAS. With ``compare`` the database
is downloaded into a throwaway directory to tell which models it
already knows.
"""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from diskcompat.adapters.registry import AdapterRegistry, default_registry
from diskcompat.core.errors import UpdateError
from diskcompat.core.models.target import NasTarget
from diskcompat.core.services.compat_db import normalize_models, read_document
from diskcompat.core.services.nas_probe import DetectedDisk, query_disks, query_model
from diskcompat.core.services.transfer import download
from diskcompat.core.use_cases.check import ensure_prerequisites
from diskcompat.core.use_cases.update import SCRATCH_PREFIX

logger = logging.getLogger(__name__)


@dataclass
class DisksResult:
    """Detected disks and, when compared, which ones the database lists."""

    host: str = ""
    model_id: str | None = None
    disks: list[DetectedDisk] = field(default_factory=list)
    known: dict[str, bool] | None = None
    error: str | None = None
    error_kind: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def missing(self) -> list[str]:
        if self.known is None:
            return []
        return [model for model, present in self.known.items() if not present]

    def to_dict(self) -> dict:
        if self.error:
            return {"ok": False, "host": self.host, "error": self.error, "error_kind": self.error_kind}
        result: dict = {
            "ok": True,
            "host": self.host,
            "model_id": self.model_id,
            "disks": [{"device": d.device, "model": d.model} for d in self.disks],
        }
        if self.known is not None:
            result["known"] = dict(self.known)
            result["missing"] = self.missing
        return result


def list_disks(
    target: NasTarget,
    registry: AdapterRegistry | None = None,
    compare: bool = False,
) -> DisksResult:
    """Detect installed disk models, optionally checking them against the DB."""
    result = DisksResult(host=target.host)
    registry = registry or default_registry()

    try:
        ensure_prerequisites(registry)
        result.model_id = query_model(registry, target)
        result.disks = query_disks(registry, target)
        if compare:
            result.known = _compare(registry, target, result.model_id, result.disks)
    except UpdateError as e:
        result.error = str(e)
        result.error_kind = e.kind
        logger.error("%s", e)
    except OSError as e:
        result.error = f"Cannot use scratch directory {target.scratch_dir}: {e}"
        result.error_kind = "scratch-dir"
        logger.error("%s", result.error)

    return result


def _compare(
    registry: AdapterRegistry,
    target: NasTarget,
    model_id: str,
    disks: list[DetectedDisk],
) -> dict[str, bool]:
    with tempfile.TemporaryDirectory(prefix=SCRATCH_PREFIX, dir=target.scratch_dir) as tmp:
        local_db = Path(tmp) / target.db_filename(model_id)
        download(registry, target, target.remote_db_path(model_id), local_db)
        document = read_document(local_db, require_model=target.require_model_field)

    return {model: document.has_entry(model) for model in normalize_models(d.model for d in disks)}
