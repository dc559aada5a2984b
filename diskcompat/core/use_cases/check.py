"""
Check use case — are the external tools we delegate to installed?
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from diskcompat.adapters.registry import AdapterRegistry, default_registry
from diskcompat.core.errors import PrerequisiteMissing


@dataclass
class CheckResult:
    """Availability of each required tool."""

    tools: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def missing(self) -> list[str]:
        return [name for name, info in self.tools.items() if not info["available"]]

    @property
    def ok(self) -> bool:
        return not self.missing

    def to_dict(self) -> dict:
        return {"ok": self.ok, "missing": self.missing, "tools": self.tools}


def check_prerequisites(registry: AdapterRegistry | None = None) -> CheckResult:
    """Report which of the registered tools are available."""
    registry = registry or default_registry()
    return CheckResult(tools=registry.adapter_status())


def ensure_prerequisites(registry: AdapterRegistry) -> None:
    """Fail fast when a required tool is absent.

    Raises:
        PrerequisiteMissing: naming every missing tool.
    """
    missing = registry.missing()
    if missing:
        raise PrerequisiteMissing(
            f"Required command(s) not found: {', '.join(missing)}. "
            "Install an OpenSSH client."
        )
