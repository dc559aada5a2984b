"""
SSH adapter — run one command on the NAS through the system ``ssh`` client.

Every call opens its own session; nothing is reused between calls.
Authentication, host keys and transport security are entirely ssh's
business.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time

from diskcompat.adapters.base import Adapter, ExecutionContext
from diskcompat.core.models.action import Receipt

logger = logging.getLogger(__name__)

# ssh reserves 255 for its own errors (connect, auth, host key)
SSH_ERROR_EXIT = 255


class SshCommandAdapter(Adapter):
    """Execute a command string on the remote host and capture its output.

    Action params:
        command (str): Shell fragment for the remote login shell.
        tty (bool): Allocate a terminal and attach it to ours (default: False).
            Used for commands that may prompt, like an interactive sudo.
            Output is not captured in this mode.
        timeout (int): Overall timeout in seconds (default: target.command_timeout).
    """

    def __init__(self, executable: str = "ssh"):
        self._executable = executable

    @property
    def name(self) -> str:
        return "ssh"

    def is_available(self) -> bool:
        return shutil.which(self._executable) is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        command = context.params.get("command", "")
        if not isinstance(command, str) or not command.strip():
            return False, "Missing required param: 'command'"
        return True, ""

    def build_argv(self, context: ExecutionContext) -> list[str]:
        """Full ssh command line for an action."""
        params = context.params
        tty = bool(params.get("tty", False))

        argv = [self._executable, "-t" if tty else "-T"]
        argv += ["-o", f"ConnectTimeout={context.target.connect_timeout}"]
        if not tty:
            # never wait for a password prompt nobody can answer
            argv += ["-o", "BatchMode=yes"]
        argv += [context.destination, params["command"]]
        return argv

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.params
        command = params["command"]
        tty = bool(params.get("tty", False))
        timeout = params.get("timeout", context.target.command_timeout)
        argv = self.build_argv(context)

        logger.debug("Executing on %s: %s", context.destination, command)
        start = time.monotonic()

        try:
            if tty:
                # a human may be typing a sudo password; only ConnectTimeout applies
                result = subprocess.run(argv)
            else:
                result = subprocess.run(
                    argv,
                    stdin=subprocess.DEVNULL,
                    capture_output=True,
                    text=True,
                    timeout=timeout,
                )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command timed out after {timeout}s",
                error_kind="timeout",
                metadata={"command": command, "timeout": timeout},
            )
        except FileNotFoundError:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"'{self._executable}' executable not found",
                error_kind="tool-missing",
                metadata={"command": command},
            )
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command execution error: {e}",
                metadata={"command": command},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = (result.stdout or "").strip()
        stderr = (result.stderr or "").strip()

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=output,
                return_code=0,
                duration_ms=elapsed_ms,
                metadata={"command": command, "stderr": stderr},
            )

        if result.returncode == SSH_ERROR_EXIT:
            error_kind = "connection"
        else:
            error_kind = "exit"
        return Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error=stderr or f"Command exited with code {result.returncode}",
            return_code=result.returncode,
            error_kind=error_kind,
            duration_ms=elapsed_ms,
            metadata={"command": command, "stdout": output},
        )
