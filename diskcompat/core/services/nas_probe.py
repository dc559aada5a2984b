"""
NAS probing — read the appliance's model identifier and its disk models.

Both probes are fixed shell fragments run over ssh. Their output
contracts:

    MODEL_QUERY_COMMAND   one line, the ``unique=`` value from synoinfo.conf,
                          e.g. ``synology_geminilake_920+``
    DISK_LIST_COMMAND     one line per SATA/NVMe block device,
                          ``<device>: <model>``, trailing blanks trimmed

Older scripts printed the bare model without the device label, so the
parser accepts both ``sda: WD40EFRX-68N32N0`` and ``WD40EFRX-68N32N0``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from diskcompat.adapters.registry import AdapterRegistry
from diskcompat.core.errors import RemoteExecutionFailed
from diskcompat.core.models.action import Action
from diskcompat.core.models.run import Stage
from diskcompat.core.models.target import NasTarget

logger = logging.getLogger(__name__)

MODEL_QUERY_COMMAND = "awk -F'\"' '/^unique=/ {print $2}' /etc.defaults/synoinfo.conf"

DISK_LIST_COMMAND = (
    "for f in /sys/block/sd*/device/model /sys/block/sata*/device/model "
    "/sys/block/nvme*n*/device/model; do "
    '[ -f "$f" ] || continue; '
    'dev=${f#/sys/block/}; dev=${dev%%/*}; '
    "model=$(tr -d '\\000' < \"$f\" | sed 's/[[:space:]]*$//'); "
    "printf '%s: %s\\n' \"$dev\" \"$model\"; "
    "done 2>/dev/null"
)

# Block device names as they appear under /sys/block on DSM
_LABEL_RE = re.compile(
    r"^(?:/dev/)?(?P<device>sd[a-z]+|sata\d+|nvme\d+n\d+|hd[a-z]+|vd[a-z]+)\s*:\s*(?P<model>.*)$"
)

# A model identifier ends up in a file name, keep it tame
_MODEL_ID_RE = re.compile(r"^[A-Za-z0-9_.+-]+$")


@dataclass(frozen=True)
class DetectedDisk:
    """One line of disk enumeration output."""

    model: str
    device: str | None = None


def parse_model_output(output: str) -> str:
    """Extract the model identifier from the model query output.

    Raises:
        RemoteExecutionFailed: output is empty or not a plausible identifier.
    """
    lines = [line.strip() for line in output.splitlines() if line.strip()]
    if not lines:
        raise RemoteExecutionFailed(
            "NAS model query returned no output",
            stage=Stage.QUERY_MODEL,
        )
    model_id = lines[0]
    if len(lines) > 1:
        logger.warning("Model query returned %d lines, using the first: %s", len(lines), model_id)
    if not _MODEL_ID_RE.match(model_id):
        raise RemoteExecutionFailed(
            "NAS model query returned an unexpected identifier",
            stage=Stage.QUERY_MODEL,
            detail=repr(model_id),
        )
    return model_id


def parse_disk_line(line: str) -> DetectedDisk | None:
    """Parse one line of disk enumeration output, None for blank lines."""
    text = line.replace("\0", "").strip()
    if not text:
        return None

    match = _LABEL_RE.match(text)
    if match:
        model = match.group("model").strip()
        if not model:
            return None
        return DetectedDisk(model=model, device=match.group("device"))
    return DetectedDisk(model=text)


def parse_disk_output(output: str) -> list[DetectedDisk]:
    """Parse disk enumeration output, keeping order and duplicates."""
    disks = []
    for line in output.splitlines():
        disk = parse_disk_line(line)
        if disk is not None:
            disks.append(disk)
    return disks


def query_model(registry: AdapterRegistry, target: NasTarget) -> str:
    """Ask the NAS for its unique model identifier.

    Raises:
        RemoteExecutionFailed: ssh failed or the answer was empty.
    """
    action = Action(
        id="query-model",
        name="Query NAS model",
        adapter="ssh",
        params={"command": MODEL_QUERY_COMMAND},
    )
    receipt = registry.execute_action(action, target)
    if not receipt.ok:
        raise RemoteExecutionFailed(
            f"Failed to retrieve NAS model (exit code: {receipt.return_code})",
            stage=Stage.QUERY_MODEL,
            detail=receipt.error or "",
        )
    return parse_model_output(receipt.output)


def query_disks(registry: AdapterRegistry, target: NasTarget) -> list[DetectedDisk]:
    """List the models of all SATA and NVMe disks installed in the NAS.

    Raises:
        RemoteExecutionFailed: ssh failed.
    """
    action = Action(
        id="query-disks",
        name="List physical disk models",
        adapter="ssh",
        params={"command": DISK_LIST_COMMAND},
    )
    receipt = registry.execute_action(action, target)
    if not receipt.ok:
        raise RemoteExecutionFailed(
            f"Disk listing failed (exit code: {receipt.return_code})",
            stage=Stage.QUERY_DISKS,
            detail=receipt.error or "",
        )
    return parse_disk_output(receipt.output)
