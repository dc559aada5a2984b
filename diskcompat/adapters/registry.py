"""
Adapter registry — the one place services send their Actions.

Dispatch for one action:

    resolve adapter  →  validate params  →  dry run? skip  →  execute  →  time it

Every step answers with a Receipt; nothing here raises on behalf of an
adapter. The production registry holds exactly two adapters, ``ssh``
and ``scp``; tests swap in MockAdapters under the same names.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from diskcompat.adapters.base import Adapter, ExecutionContext
from diskcompat.core.models.action import Action, Receipt
from diskcompat.core.models.target import NasTarget

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Adapters by name, plus action dispatch."""

    def __init__(self) -> None:
        self._adapters: dict[str, Adapter] = {}

    def register(self, adapter: Adapter) -> None:
        """Add ``adapter``; an adapter already registered under its name is replaced."""
        if adapter.name in self._adapters:
            logger.warning("Replacing adapter %r", adapter.name)
        self._adapters[adapter.name] = adapter
        logger.debug("Registered %r", adapter)

    def unregister(self, name: str) -> None:
        self._adapters.pop(name, None)

    def get(self, name: str) -> Adapter | None:
        return self._adapters.get(name)

    def list_adapters(self) -> list[str]:
        return list(self._adapters)

    def adapter_status(self) -> dict[str, dict[str, Any]]:
        """Availability of each registered tool, keyed by adapter name."""
        return {
            name: {
                "name": name,
                "available": _probe(adapter),
                "type": type(adapter).__name__,
            }
            for name, adapter in self._adapters.items()
        }

    def missing(self) -> list[str]:
        """Names of registered adapters whose tool is not installed."""
        return [name for name, adapter in self._adapters.items() if not _probe(adapter)]

    def execute_action(
        self,
        action: Action,
        target: NasTarget,
        dry_run: bool = False,
    ) -> Receipt:
        """Run ``action`` against ``target`` through its adapter.

        With ``dry_run`` the action is validated and answered with a
        skipped receipt instead of being run.
        """
        adapter = self._adapters.get(action.adapter)
        if adapter is None:
            return _rejected(action, f"No adapter registered for '{action.adapter}'", "no-adapter")

        context = ExecutionContext(action=action, target=target, dry_run=dry_run)

        try:
            valid, reason = adapter.validate(context)
        except Exception as e:
            valid, reason = False, f"validator raised {e!r}"
        if not valid:
            return _rejected(action, f"Validation failed: {reason}", "invalid")

        if dry_run:
            return Receipt.skip(
                adapter=action.adapter,
                action_id=action.id,
                reason=f"[dry-run] Would execute {action.adapter}:{action.id}",
                metadata={"dry_run": True},
            )

        logger.debug("%s → %s via %s", action.label, target.destination, action.adapter)
        start = time.monotonic()
        try:
            receipt = adapter.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised while running %s: %s", action.adapter, action.id, e)
            receipt = Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Unexpected error: {e}",
            )
        receipt.duration_ms = int((time.monotonic() - start) * 1000)

        if receipt.failed:
            logger.debug("%s failed (%s): %s", action.id, receipt.error_kind or "error", receipt.error)
        return receipt


def _probe(adapter: Adapter) -> bool:
    try:
        return adapter.is_available()
    except Exception:
        return False


def _rejected(action: Action, error: str, kind: str) -> Receipt:
    return Receipt.failure(adapter=action.adapter, action_id=action.id, error=error, error_kind=kind)


def default_registry() -> AdapterRegistry:
    """Registry wired to the system ssh and scp clients."""
    from diskcompat.adapters.remote.scp import ScpTransferAdapter
    from diskcompat.adapters.remote.ssh import SshCommandAdapter

    registry = AdapterRegistry()
    registry.register(SshCommandAdapter())
    registry.register(ScpTransferAdapter())
    return registry
