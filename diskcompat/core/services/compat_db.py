"""
Compatibility database handling — load, reconcile, serialize.

``reconcile`` is the heart of the tool: it makes the database's entry
set a superset of the detected disk models by adding each missing model
with the default "support" rule. It only ever adds; existing entries
keep their exact value and nothing is removed.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError

from diskcompat.core.errors import ParseFailed
from diskcompat.core.models.compat import (
    ENTRIES_FIELD,
    MODEL_FIELD,
    CompatibilityDocument,
    default_rule,
)
from diskcompat.core.models.run import Stage

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of reconciling a document against detected disks."""

    document: CompatibilityDocument
    added: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added)


def load_document(raw: bytes, require_model: bool = False) -> CompatibilityDocument:
    """Parse a downloaded database file.

    Args:
        raw: File contents.
        require_model: Also insist on the ``nas_model`` field.

    Raises:
        ParseFailed: not UTF-8 JSON, or the entries mapping is missing.
    """
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ParseFailed("Database file is not valid UTF-8", stage=Stage.PARSE, detail=str(e)) from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseFailed("Database file is not valid JSON", stage=Stage.PARSE, detail=str(e)) from e

    if not isinstance(data, dict):
        raise ParseFailed(
            f"Expected a JSON object at top level, got {type(data).__name__}",
            stage=Stage.PARSE,
        )

    if not isinstance(data.get(ENTRIES_FIELD), dict):
        raise ParseFailed(
            f"Database has no '{ENTRIES_FIELD}' mapping",
            stage=Stage.PARSE,
        )

    if require_model and MODEL_FIELD not in data:
        raise ParseFailed(f"Database has no '{MODEL_FIELD}' field", stage=Stage.PARSE)

    try:
        return CompatibilityDocument.from_dict(data)
    except ValidationError as e:
        raise ParseFailed("Database does not match the expected layout", stage=Stage.PARSE, detail=str(e)) from e


def read_document(path: Path, require_model: bool = False) -> CompatibilityDocument:
    """Load a database file from disk."""
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ParseFailed(f"Cannot read {path}", stage=Stage.PARSE, detail=str(e)) from e
    return load_document(raw, require_model=require_model)


def serialize_document(doc: CompatibilityDocument) -> bytes:
    """Encode a document as stable, diffable UTF-8 JSON."""
    text = json.dumps(doc.to_dict(), indent=2, ensure_ascii=False)
    return (text + "\n").encode("utf-8")


def write_document(doc: CompatibilityDocument, path: Path) -> Path:
    """Write a document to disk and return the path."""
    path.write_bytes(serialize_document(doc))
    logger.debug("Wrote %d entries to %s", len(doc.entries), path)
    return path


def normalize_models(detected: Iterable[str]) -> list[str]:
    """Trim, drop blanks and deduplicate, keeping first-seen order."""
    seen: set[str] = set()
    models = []
    for raw in detected:
        model = raw.replace("\0", "").strip()
        if not model or model in seen:
            continue
        seen.add(model)
        models.append(model)
    return models


def missing_models(doc: CompatibilityDocument, detected: Iterable[str]) -> list[str]:
    """Detected models the database does not know yet."""
    return [m for m in normalize_models(detected) if not doc.has_entry(m)]


def reconcile(doc: CompatibilityDocument, detected: Iterable[str]) -> ReconcileResult:
    """Add every detected model missing from ``doc`` with the default rule.

    ``doc`` is modified in place and returned inside the result.
    Membership is exact string equality after trimming.
    """
    result = ReconcileResult(document=doc)
    for model in missing_models(doc, detected):
        logger.info("Adding missing disk model to DB: '%s'", model)
        doc.add_entry(model, default_rule())
        result.added.append(model)
    return result
