"""
SCP adapter — copy one file to or from the NAS with the system ``scp``.

Download and upload share one interface; only the order of source and
destination differs. Nothing is retried.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from pathlib import Path

from diskcompat.adapters.base import Adapter, ExecutionContext
from diskcompat.core.models.action import Receipt

logger = logging.getLogger(__name__)

DIRECTIONS = ("download", "upload")


class ScpTransferAdapter(Adapter):
    """Copy a file between the local filesystem and the remote host.

    Action params:
        direction (str): 'download' (remote -> local) or 'upload' (local -> remote).
        local_path (str): Local file.
        remote_path (str): Path on the NAS, relative paths are relative to
            the SSH user's home.
    """

    def __init__(self, executable: str = "scp"):
        self._executable = executable

    @property
    def name(self) -> str:
        return "scp"

    def is_available(self) -> bool:
        return shutil.which(self._executable) is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        params = context.params
        direction = params.get("direction", "")
        if direction not in DIRECTIONS:
            return False, f"Unknown direction '{direction}'. Valid: {', '.join(DIRECTIONS)}"

        for key in ("local_path", "remote_path"):
            if not params.get(key):
                return False, f"Missing required param: '{key}'"

        local = Path(params["local_path"])
        if direction == "upload" and not local.is_file():
            return False, f"Local file does not exist: {local}"
        if direction == "download" and not local.parent.is_dir():
            return False, f"Local directory does not exist: {local.parent}"

        return True, ""

    def build_argv(self, context: ExecutionContext) -> list[str]:
        """Full scp command line for an action."""
        params = context.params
        remote = context.remote_spec(params["remote_path"])
        local = str(params["local_path"])

        argv = [self._executable, "-T", "-o", f"ConnectTimeout={context.target.connect_timeout}"]
        if params["direction"] == "download":
            argv += [remote, local]
        else:
            argv += [local, remote]
        return argv

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.params
        direction = params["direction"]
        local = Path(params["local_path"])
        timeout = context.target.command_timeout
        argv = self.build_argv(context)
        meta = {
            "direction": direction,
            "local_path": str(local),
            "remote_path": params["remote_path"],
        }

        logger.debug("scp %s: %s", direction, " ".join(argv[-2:]))
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            self._discard_partial(direction, local)
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Copy timed out after {timeout}s",
                error_kind="timeout",
                metadata=meta,
            )
        except FileNotFoundError:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"'{self._executable}' executable not found",
                error_kind="tool-missing",
                metadata=meta,
            )
        except Exception as e:
            self._discard_partial(direction, local)
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Copy error: {e}",
                metadata=meta,
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        stderr = (result.stderr or "").strip()

        if result.returncode != 0:
            self._discard_partial(direction, local)
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=stderr or f"scp exited with code {result.returncode}",
                return_code=result.returncode,
                error_kind="exit",
                duration_ms=elapsed_ms,
                metadata=meta,
            )

        if direction == "download" and not local.is_file():
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"'{local}' not found locally after scp reported success",
                return_code=0,
                error_kind="missing-output",
                duration_ms=elapsed_ms,
                metadata=meta,
            )

        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output=f"{direction}ed {params['remote_path']}",
            return_code=0,
            duration_ms=elapsed_ms,
            metadata=meta,
        )

    @staticmethod
    def _discard_partial(direction: str, local: Path) -> None:
        """Remove a half-written download so nobody mistakes it for the real file."""
        if direction != "download":
            return
        try:
            local.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove partial download %s: %s", local, e)
