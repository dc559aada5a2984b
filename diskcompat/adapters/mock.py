"""
Mock adapter — scripted stand-in for ssh or scp in tests.

Register it under the real adapter's name and script answers per
action ID. Unscripted actions succeed with ``default_output``. Every
context received is kept in ``call_log`` for assertions.
"""

from __future__ import annotations

from typing import Callable

from diskcompat.adapters.base import Adapter, ExecutionContext
from diskcompat.core.models.action import Receipt

Handler = Callable[[ExecutionContext], Receipt]


class MockAdapter(Adapter):
    """Adapter whose answers are set up by the test."""

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_output: str = "[mock] executed",
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._script: dict[str, Handler] = {}
        self.call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_count(self) -> int:
        return len(self.call_log)

    def called_ids(self) -> list[str]:
        """Action IDs in the order they were executed."""
        return [ctx.action.id for ctx in self.call_log]

    def is_available(self) -> bool:
        return self._available

    # ── Scripting ────────────────────────────────────────────────────

    def set_handler(self, action_id: str, handler: Handler) -> None:
        """Answer ``action_id`` by calling ``handler(context)``."""
        self._script[action_id] = handler

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        """Answer ``action_id`` with a fixed receipt."""
        self._script[action_id] = lambda _ctx: receipt

    def set_output(self, action_id: str, output: str) -> None:
        """Answer ``action_id`` with success and the given stdout."""
        self.set_response(
            action_id,
            Receipt.success(adapter=self._name, action_id=action_id, output=output, return_code=0),
        )

    def set_failure(
        self,
        action_id: str,
        error: str = "Mock failure",
        return_code: int | None = 1,
    ) -> None:
        """Answer ``action_id`` like a command that exited non-zero."""
        self.set_response(
            action_id,
            Receipt.failure(
                adapter=self._name,
                action_id=action_id,
                error=error,
                return_code=return_code,
                error_kind="exit",
            ),
        )

    def reset(self) -> None:
        """Forget the script and the call log."""
        self._script.clear()
        self.call_log.clear()

    # ── Adapter protocol ─────────────────────────────────────────────

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self.call_log.append(context)
        handler = self._script.get(context.action.id)
        if handler is not None:
            return handler(context)
        return Receipt.success(
            adapter=self._name,
            action_id=context.action.id,
            output=self._default_output,
            return_code=0,
            metadata={"mock": True},
        )
