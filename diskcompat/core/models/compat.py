"""
Compatibility document model — the ``<model>_host_v7.db`` file.

The file is JSON. Only two top-level fields mean anything to us:

    disk_compatbility_info   disk model -> compatibility rule (sic, DSM's spelling)
    nas_model                appliance model name, optional, kept as found

Everything else is carried through untouched, in its original order.
Rule objects of existing entries are opaque: we look at their keys,
never inside them.
"""

from __future__ import annotations

import copy
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

# Wire names, DSM's own spelling, do not "fix"
ENTRIES_FIELD = "disk_compatbility_info"
MODEL_FIELD = "nas_model"

_DEFAULT_RULE: dict[str, Any] = {
    "default": {
        "compatibility_interval": [
            {"compatibility": "support"},
        ],
    },
}


def default_rule() -> dict[str, Any]:
    """Rule inserted for a newly detected disk: supported on every firmware."""
    return copy.deepcopy(_DEFAULT_RULE)


class CompatibilityDocument(BaseModel):
    """In-memory view of a downloaded compatibility database."""

    model_config = ConfigDict(extra="allow")

    entries: dict[str, Any] = Field(alias=ENTRIES_FIELD)
    nas_model: Any = None           # opaque; only its presence is ever checked

    _key_order: list[str] = PrivateAttr(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CompatibilityDocument:
        doc = cls.model_validate(data)
        doc._key_order = list(data.keys())
        return doc

    @property
    def extra_fields(self) -> dict[str, Any]:
        """Top-level fields we do not model, as found in the file."""
        return dict(self.model_extra or {})

    def has_entry(self, disk_model: str) -> bool:
        return disk_model in self.entries

    def add_entry(self, disk_model: str, rule: dict[str, Any] | None = None) -> None:
        """Insert a new entry. Existing entries are never replaced."""
        if disk_model in self.entries:
            raise KeyError(f"Entry already present: {disk_model!r}")
        self.entries[disk_model] = rule if rule is not None else default_rule()

    def to_dict(self) -> dict[str, Any]:
        """Top-level mapping ready for JSON encoding, original key order first."""
        data: dict[str, Any] = {ENTRIES_FIELD: self.entries}
        if MODEL_FIELD in self.model_fields_set:
            data[MODEL_FIELD] = self.nas_model
        data.update(self.model_extra or {})

        ordered = {key: data[key] for key in self._key_order if key in data}
        for key, value in data.items():
            ordered.setdefault(key, value)
        return ordered
