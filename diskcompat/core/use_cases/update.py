"""
Update use case — the full reconcile-and-update run against one NAS.

Stages, in order:

    query-model → query-disks → download → parse → reconcile
        → save-local → elevation-check → upload → escalate

Any stage may end the run, except two: a failed disk listing only
degrades it (nothing gets added), and reconcile cannot fail. The
scratch directory holding the downloaded and modified files is removed
on every exit path.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from diskcompat.adapters.registry import AdapterRegistry, default_registry
from diskcompat.core.errors import EscalationFailed, RemoteExecutionFailed, UpdateError
from diskcompat.core.models.compat import CompatibilityDocument
from diskcompat.core.models.run import Stage, StageRecord
from diskcompat.core.models.target import NasTarget
from diskcompat.core.services.compat_db import read_document, reconcile, write_document
from diskcompat.core.services.elevation import check_elevation, relocate
from diskcompat.core.services.nas_probe import DetectedDisk, query_disks, query_model
from diskcompat.core.services.transfer import download, upload
from diskcompat.core.use_cases.check import ensure_prerequisites

logger = logging.getLogger(__name__)

SCRATCH_PREFIX = "diskcompat_"


@dataclass
class RunResult:
    """Result of a run that ends with a staged upload and relocation."""

    host: str = ""
    model_id: str | None = None
    remote_path: str | None = None
    staging_path: str | None = None
    dry_run: bool = False
    uploaded: bool = False
    stages: list[StageRecord] = field(default_factory=list)

    error: str | None = None
    error_kind: str | None = None
    failed_stage: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    @contextmanager
    def stage(self, stage: Stage) -> Iterator[StageRecord]:
        """Time a stage and record its outcome.

        The body may set ``status``/``message`` on the yielded record.
        An UpdateError marks the stage failed and propagates.
        """
        record = StageRecord(stage=stage)
        start = time.monotonic()
        try:
            yield record
        except UpdateError as e:
            record.status = "failed"
            record.message = str(e)
            if not e.stage:
                e.stage = stage
            raise
        finally:
            record.duration_ms = int((time.monotonic() - start) * 1000)
            self.stages.append(record)

    def skip(self, stage: Stage, message: str) -> None:
        self.stages.append(StageRecord(stage=stage, status="skipped", message=message))

    def fail(self, error: UpdateError) -> None:
        self.error = str(error)
        self.error_kind = error.kind
        self.failed_stage = str(error.stage) if error.stage else None

    def to_dict(self) -> dict:
        result: dict = {
            "ok": self.ok,
            "host": self.host,
            "model_id": self.model_id,
            "remote_path": self.remote_path,
            "staging_path": self.staging_path,
            "dry_run": self.dry_run,
            "uploaded": self.uploaded,
            "stages": [s.model_dump(mode="json") for s in self.stages],
        }
        if self.error:
            result["error"] = self.error
            result["error_kind"] = self.error_kind
            result["failed_stage"] = self.failed_stage
        return result


@dataclass
class UpdateResult(RunResult):
    """Result of a reconcile-and-update run."""

    disks: list[DetectedDisk] = field(default_factory=list)
    disks_detected: bool = False
    added: list[str] = field(default_factory=list)
    output_path: Path | None = None

    @property
    def changed(self) -> bool:
        return bool(self.added)

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["disks"] = [{"device": d.device, "model": d.model} for d in self.disks]
        result["added"] = list(self.added)
        result["changed"] = self.changed
        if self.output_path:
            result["output_path"] = str(self.output_path)
        return result


def run_update(
    target: NasTarget,
    registry: AdapterRegistry | None = None,
    dry_run: bool = False,
    output_path: Path | None = None,
    isatty: Callable[[], bool] | None = None,
) -> UpdateResult:
    """Bring the NAS's disk compatibility database in line with its disks.

    Args:
        target: Connection and path settings.
        registry: Adapter registry (default: real ssh/scp).
        dry_run: Reconcile locally, validate but skip upload and relocation.
        output_path: Also copy the file that is (or would be) uploaded here.
        isatty: Terminal probe for interactive elevation (default: stdin).

    Returns:
        UpdateResult; ``error`` is set when the run failed.
    """
    result = UpdateResult(host=target.host, dry_run=dry_run, output_path=output_path)
    registry = registry or default_registry()

    try:
        ensure_prerequisites(registry)
        with _scratch_dir(target) as scratch:
            _run_stages(result, registry, target, scratch, isatty)
    except UpdateError as e:
        result.fail(e)
        logger.error("%s", e)
        if isinstance(e, EscalationFailed) and e.staging_path:
            logger.warning(
                "The uploaded file is still in '%s' on %s. Move it manually with sudo.",
                e.staging_path,
                target.host,
            )
        return result

    _log_summary(result)
    return result


@contextmanager
def _scratch_dir(target: NasTarget) -> Iterator[Path]:
    """Private working directory for one run, always removed afterwards."""
    try:
        tmp = tempfile.TemporaryDirectory(prefix=SCRATCH_PREFIX, dir=target.scratch_dir)
    except OSError as e:
        raise UpdateError(f"Cannot create scratch directory in {target.scratch_dir}", detail=str(e)) from e

    with tmp as path:
        logger.info("Using temporary directory: %s", path)
        try:
            yield Path(path)
        finally:
            logger.debug("Cleaning up temporary directory: %s", path)


def _run_stages(
    result: UpdateResult,
    registry: AdapterRegistry,
    target: NasTarget,
    scratch: Path,
    isatty: Callable[[], bool] | None,
) -> None:
    with result.stage(Stage.QUERY_MODEL) as rec:
        logger.info("Getting NAS model from %s...", target.host)
        model_id = query_model(registry, target)
        result.model_id = model_id
        result.remote_path = target.remote_db_path(model_id)
        result.staging_path = target.staging_path(model_id)
        rec.message = model_id
        logger.info("Detected NAS model: %s", model_id)

    with result.stage(Stage.QUERY_DISKS) as rec:
        logger.info("Getting physical disk models from %s...", target.host)
        try:
            result.disks = query_disks(registry, target)
            result.disks_detected = True
        except RemoteExecutionFailed as e:
            rec.status = "warning"
            rec.message = str(e)
            logger.warning("%s. Proceeding without adding disks.", e)
        else:
            rec.message = f"{len(result.disks)} disk(s)"
            logger.info("Detected %d physical disk models:", len(result.disks))
            for disk in result.disks:
                label = f"{disk.device}: " if disk.device else ""
                logger.info("  - %s%s", label, disk.model)

    local_db = scratch / target.db_filename(model_id)
    with result.stage(Stage.DOWNLOAD):
        download(registry, target, result.remote_path, local_db)
        logger.info("DB file downloaded successfully.")

    with result.stage(Stage.PARSE) as rec:
        document = read_document(local_db, require_model=target.require_model_field)
        rec.message = f"{len(document.entries)} entries"
        if document.nas_model:
            logger.debug("Database reports nas_model=%s", document.nas_model)

    with result.stage(Stage.RECONCILE) as rec:
        if not result.disks:
            logger.info("Skipping disk comparison as no physical disks were detected.")
        outcome = reconcile(document, [d.model for d in result.disks])
        result.added = outcome.added
        rec.message = f"{len(outcome.added)} added"
        if outcome.changed:
            logger.info("Finished adding %d missing disk(s).", len(outcome.added))
        elif result.disks:
            logger.info("No missing physical disks found in the DB file.")

    upload_source = local_db
    if outcome.changed:
        with result.stage(Stage.SAVE_LOCAL) as rec:
            upload_source = _save_local(document, scratch / target.modified_filename(model_id))
            rec.message = upload_source.name
    else:
        result.skip(Stage.SAVE_LOCAL, "no changes, re-using downloaded file")

    if result.output_path:
        _copy_out(upload_source, result.output_path)

    if result.dry_run:
        result.skip(Stage.ELEVATION_CHECK, "dry run")
    else:
        with result.stage(Stage.ELEVATION_CHECK):
            check_elevation(registry, target, isatty=isatty)

    with result.stage(Stage.UPLOAD) as rec:
        receipt = upload(registry, target, upload_source, result.staging_path, dry_run=result.dry_run)
        if receipt.skipped:
            rec.status = "skipped"
            rec.message = receipt.output
        else:
            result.uploaded = True
            logger.info("DB file uploaded to staging location %s on NAS.", result.staging_path)

    with result.stage(Stage.ESCALATE) as rec:
        receipt = relocate(registry, target, result.staging_path, result.remote_path, dry_run=result.dry_run)
        if receipt.skipped:
            rec.status = "skipped"
            rec.message = receipt.output


def _save_local(document: CompatibilityDocument, path: Path) -> Path:
    try:
        return write_document(document, path)
    except OSError as e:
        raise UpdateError(f"Cannot write {path}", stage=Stage.SAVE_LOCAL, detail=str(e)) from e


def _copy_out(source: Path, output_path: Path) -> None:
    try:
        shutil.copyfile(source, output_path)
    except OSError as e:
        raise UpdateError(f"Cannot write {output_path}", stage=Stage.SAVE_LOCAL, detail=str(e)) from e
    logger.info("Reconciled DB file written to %s", output_path)


def _log_summary(result: UpdateResult) -> None:
    if result.dry_run:
        if result.changed:
            logger.info("Dry run: %d disk model(s) would be added, nothing uploaded.", len(result.added))
        else:
            logger.info("Dry run: no missing physical disks, nothing uploaded.")
        return

    logger.info("Operation completed successfully.")
    if result.changed:
        logger.info("The disk compatibility database was updated with missing physical disks and uploaded.")
    else:
        logger.info("No missing physical disks were detected. The downloaded DB file was uploaded unchanged.")
