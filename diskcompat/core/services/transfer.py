"""
File transfer — download the database from the NAS and stage uploads.
"""

from __future__ import annotations

import logging
from pathlib import Path

from diskcompat.adapters.registry import AdapterRegistry
from diskcompat.core.errors import CopyFailed
from diskcompat.core.models.action import Action, Receipt
from diskcompat.core.models.run import Stage
from diskcompat.core.models.target import NasTarget

logger = logging.getLogger(__name__)


def download(
    registry: AdapterRegistry,
    target: NasTarget,
    remote_path: str,
    local_path: Path,
) -> Path:
    """Copy ``remote_path`` from the NAS to ``local_path``.

    Raises:
        CopyFailed: scp failed; no partial local file is left behind.
    """
    logger.info("Downloading %s -> %s", remote_path, local_path)
    action = Action(
        id="download-db",
        name="Download compatibility database",
        adapter="scp",
        params={
            "direction": "download",
            "local_path": str(local_path),
            "remote_path": remote_path,
        },
    )
    receipt = registry.execute_action(action, target)
    if not receipt.ok:
        raise CopyFailed(
            f"Failed to download {remote_path} (exit code: {receipt.return_code})",
            stage=Stage.DOWNLOAD,
            detail=receipt.error or "",
        )
    return local_path


def upload(
    registry: AdapterRegistry,
    target: NasTarget,
    local_path: Path,
    remote_path: str,
    dry_run: bool = False,
) -> Receipt:
    """Copy ``local_path`` to ``remote_path`` on the NAS.

    In dry-run mode the action is validated and skipped.

    Raises:
        CopyFailed: scp failed or the action did not validate.
    """
    logger.info("Uploading %s -> %s:%s", local_path, target.destination, remote_path)
    action = Action(
        id="upload-db",
        name="Upload compatibility database to staging",
        adapter="scp",
        params={
            "direction": "upload",
            "local_path": str(local_path),
            "remote_path": remote_path,
        },
    )
    receipt = registry.execute_action(action, target, dry_run=dry_run)
    if receipt.failed:
        raise CopyFailed(
            f"Failed to upload {local_path.name} (exit code: {receipt.return_code})",
            stage=Stage.UPLOAD,
            detail=receipt.error or "",
        )
    return receipt
