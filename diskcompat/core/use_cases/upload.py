"""
Upload use case — push a locally prepared database file to the NAS.

For operators who edited the file by hand: the file is checked to be a
loadable compatibility database, then staged and moved into place
exactly like the last two stages of an update run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from diskcompat.adapters.registry import AdapterRegistry, default_registry
from diskcompat.core.errors import EscalationFailed, UpdateError
from diskcompat.core.models.run import Stage
from diskcompat.core.models.target import NasTarget
from diskcompat.core.services.compat_db import read_document
from diskcompat.core.services.elevation import check_elevation, relocate
from diskcompat.core.services.nas_probe import parse_model_output, query_model
from diskcompat.core.services.transfer import upload
from diskcompat.core.use_cases.check import ensure_prerequisites
from diskcompat.core.use_cases.update import RunResult

logger = logging.getLogger(__name__)


def upload_database(
    target: NasTarget,
    local_file: Path,
    model_id: str | None = None,
    registry: AdapterRegistry | None = None,
    dry_run: bool = False,
    isatty: Callable[[], bool] | None = None,
) -> RunResult:
    """Stage ``local_file`` on the NAS and move it into the DB directory.

    Args:
        target: Connection and path settings.
        local_file: Database file to upload.
        model_id: NAS model identifier; queried from the NAS when omitted.
        registry: Adapter registry (default: real ssh/scp).
        dry_run: Validate everything, upload nothing.
        isatty: Terminal probe for interactive elevation (default: stdin).
    """
    result = RunResult(host=target.host, dry_run=dry_run)
    registry = registry or default_registry()

    try:
        ensure_prerequisites(registry)

        with result.stage(Stage.PARSE) as rec:
            document = read_document(local_file, require_model=target.require_model_field)
            rec.message = f"{len(document.entries)} entries"
            logger.info("%s holds %d disk entries", local_file, len(document.entries))

        with result.stage(Stage.QUERY_MODEL) as rec:
            if model_id:
                model_id = parse_model_output(model_id)
            else:
                logger.info("Getting NAS model from %s...", target.host)
                model_id = query_model(registry, target)
            result.model_id = model_id
            result.remote_path = target.remote_db_path(model_id)
            result.staging_path = target.staging_path(model_id)
            rec.message = model_id

        if dry_run:
            result.skip(Stage.ELEVATION_CHECK, "dry run")
        else:
            with result.stage(Stage.ELEVATION_CHECK):
                check_elevation(registry, target, isatty=isatty)

        with result.stage(Stage.UPLOAD) as rec:
            receipt = upload(registry, target, local_file, result.staging_path, dry_run=dry_run)
            if receipt.skipped:
                rec.status = "skipped"
                rec.message = receipt.output
            else:
                result.uploaded = True

        with result.stage(Stage.ESCALATE) as rec:
            receipt = relocate(registry, target, result.staging_path, result.remote_path, dry_run=dry_run)
            if receipt.skipped:
                rec.status = "skipped"
                rec.message = receipt.output

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

    if not dry_run:
        logger.info("%s installed as %s", local_file.name, result.remote_path)
    return result
