"""
Privileged relocation — move the staged file into the root-owned DB directory.

Two modes:

    noninteractive   ``sudo -n``; needs a NOPASSWD sudoers rule on the NAS.
                     Checked up front with ``sudo -n true``.
    interactive      plain ``sudo`` over ``ssh -t``; the operator types the
                     password. Checked up front by requiring a terminal.

Either way the check runs before anything is uploaded, so a run that
cannot finish never leaves a file in the staging directory.
"""

from __future__ import annotations

import logging
import shlex
import sys
from collections.abc import Callable

from diskcompat.adapters.registry import AdapterRegistry
from diskcompat.core.errors import EscalationFailed
from diskcompat.core.models.action import Action, Receipt
from diskcompat.core.models.run import Stage
from diskcompat.core.models.target import NasTarget

logger = logging.getLogger(__name__)

ELEVATION_PROBE_COMMAND = "sudo -n true"


def remote_shell_path(path: str) -> str:
    """Quote a remote path for the remote shell, keeping ``~`` expandable."""
    if path == "~":
        return '"$HOME"'
    if path.startswith("~/"):
        return '"$HOME"/' + shlex.quote(path[2:])
    return shlex.quote(path)


def relocate_command(staging_path: str, final_path: str, mode: str) -> str:
    """Remote command that moves the staged file over the final one."""
    sudo = "sudo -n" if mode == "noninteractive" else "sudo"
    return f"{sudo} mv -f {remote_shell_path(staging_path)} {remote_shell_path(final_path)}"


def check_elevation(
    registry: AdapterRegistry,
    target: NasTarget,
    isatty: Callable[[], bool] | None = None,
) -> None:
    """Make sure the relocation step can run before anything is staged.

    Raises:
        EscalationFailed: elevation is not available in the configured mode.
    """
    if target.elevation == "interactive":
        isatty = isatty or sys.stdin.isatty
        if not isatty():
            raise EscalationFailed(
                "Interactive elevation needs a terminal for the sudo password prompt",
                stage=Stage.ELEVATION_CHECK,
                detail="run from a terminal or use --elevation noninteractive",
            )
        return

    action = Action(
        id="elevation-check",
        name="Check passwordless sudo",
        adapter="ssh",
        params={"command": ELEVATION_PROBE_COMMAND},
    )
    receipt = registry.execute_action(action, target)
    if not receipt.ok:
        raise EscalationFailed(
            f"'{ELEVATION_PROBE_COMMAND}' failed for {target.user}; "
            "add a NOPASSWD sudoers rule or use --elevation interactive",
            stage=Stage.ELEVATION_CHECK,
            detail=receipt.error or "",
        )


def relocate(
    registry: AdapterRegistry,
    target: NasTarget,
    staging_path: str,
    final_path: str,
    dry_run: bool = False,
) -> Receipt:
    """Move the staged file to its final location with sudo.

    The staged file is left in place on failure.

    Raises:
        EscalationFailed: carries ``staging_path`` for manual recovery.
    """
    interactive = target.elevation == "interactive"
    logger.info("Moving uploaded file on NAS using sudo: %s -> %s", staging_path, final_path)
    if interactive and not dry_run:
        logger.warning(">>> This step needs the sudo password for '%s' on %s. <<<", target.user, target.host)

    action = Action(
        id="relocate-db",
        name="Move staged database into place",
        adapter="ssh",
        params={
            "command": relocate_command(staging_path, final_path, target.elevation),
            "tty": interactive,
        },
    )
    receipt = registry.execute_action(action, target, dry_run=dry_run)
    if receipt.failed:
        raise EscalationFailed(
            f"Failed to move {staging_path} to {final_path} (exit code: {receipt.return_code}); "
            f"the uploaded file remains in {staging_path} on {target.host}",
            stage=Stage.ESCALATE,
            detail=receipt.error or "",
            staging_path=staging_path,
        )
    return receipt
