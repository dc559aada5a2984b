"""
Domain models — Pydantic types for diskcompat.

All models are re-exported here for convenient access:

    from diskcompat.core.models import Action, Receipt, NasTarget, CompatibilityDocument
"""

from diskcompat.core.models.action import Action, Receipt
from diskcompat.core.models.compat import (
    ENTRIES_FIELD,
    MODEL_FIELD,
    CompatibilityDocument,
    default_rule,
)
from diskcompat.core.models.target import ElevationMode, NasTarget

__all__ = [
    # action.py
    "Action",
    "Receipt",
    # compat.py
    "CompatibilityDocument",
    "ENTRIES_FIELD",
    "MODEL_FIELD",
    "default_rule",
    # target.py
    "ElevationMode",
    "NasTarget",
]
