"""
Adapter base — how services reach the NAS.

A service never spawns ssh or scp itself. It describes the operation as
an Action and the registry hands it, wrapped in an ExecutionContext, to
the adapter registered under ``action.adapter``. What comes back is
always a Receipt, even when the tool is missing or the host is down.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from diskcompat.core.models.action import Action, Receipt
from diskcompat.core.models.target import NasTarget


class ExecutionContext(BaseModel):
    """One action bound to the NAS it runs against."""

    action: Action
    target: NasTarget
    dry_run: bool = False

    @property
    def params(self) -> dict[str, Any]:
        return self.action.params

    @property
    def destination(self) -> str:
        """``user@host`` for the ssh/scp command line."""
        return self.target.destination

    def remote_spec(self, path: str) -> str:
        """scp's ``user@host:path`` notation."""
        return f"{self.destination}:{path}"


class Adapter(ABC):
    """A binding to one external tool.

    Implementations turn every outcome into a Receipt: a non-zero exit,
    a timeout, a missing executable. Only the registry decides what a
    failed receipt means for the run.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key, matched against ``Action.adapter``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the tool can be found on this machine."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Check the action's params before anything is spawned.

        Returns:
            (is_valid, reason); reason is empty when valid.
        """

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Run the action. Must not raise."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
