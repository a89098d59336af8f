"""
Shared value types: structural fingerprints, StructuralMap and Instant.
"""

from .instant import Instant
from .structural_hash import (
    ABSENT,
    Fingerprint,
    KeyForm,
    SupportsPrimitive,
    SupportsSimpleValue,
    fingerprint,
    key_forms,
    key_shape,
)
from .structural_map import Entry, StructuralMap

__all__ = [
    "ABSENT",
    "Entry",
    "Fingerprint",
    "Instant",
    "KeyForm",
    "StructuralMap",
    "SupportsPrimitive",
    "SupportsSimpleValue",
    "fingerprint",
    "key_forms",
    "key_shape",
]
