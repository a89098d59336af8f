"""
Structural fingerprints for using composite values as map keys.

Python dictionaries hash by ``__hash__``/``__eq__``, which rules out lists,
dicts and most mutable records as keys, and gives identity semantics to
plain objects. A fingerprint is a canonical string derived from a value's
shape and content, so two values are "map-equal" exactly when their
fingerprints match.

Supported shapes:
    - ``None`` and the ``ABSENT`` marker (never equal to each other or to ``""``)
    - ``bool``, ``int``, ``float``, ``str``
    - ``tuple`` (fixed arity, arity is part of the shape) and ``list``
    - records: ``dict`` with ``str`` keys, dataclass instances, and objects
      with instance attributes (``__dict__`` or ``__slots__``)

A record can override its structural identity through one of two
capabilities, resolved once per type:
    - ``to_primitive()``: explicit primitive coercion (takes precedence)
    - ``simple_value()``: implicit fallback; ``Enum`` members use ``.value``

If the capability returns ``None`` or ``ABSENT`` the next form is tried,
ending with the structural field encoding.
"""

from __future__ import annotations

import dataclasses
import json
import math
import types
from collections.abc import Iterator
from enum import Enum
from functools import lru_cache
from typing import Any, Final, NewType, Protocol, runtime_checkable

from retrocal.infra.exceptions import KeyShapeError

Fingerprint = NewType("Fingerprint", str)

Primitive = bool | int | float | str


class _Absent:
    """Marker for a value that is not present at all (unlike ``None``)."""

    _instance: _Absent | None = None

    def __new__(cls) -> _Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT: Final = _Absent()


@runtime_checkable
class SupportsPrimitive(Protocol):
    """Record that designates a primitive to stand for its identity."""

    def to_primitive(self) -> Primitive | None: ...


@runtime_checkable
class SupportsSimpleValue(Protocol):
    """Record with an implicit simple value used when no primitive is designated."""

    def simple_value(self) -> Primitive | None: ...


class KeyForm(str, Enum):
    """How a record type contributes to its fingerprint, in precedence order."""

    PRIMITIVE = "primitive"
    SIMPLE_VALUE = "simple_value"
    STRUCTURAL = "structural"


class _Kind(Enum):
    NULL = "null"
    ABSENT = "absent"
    BOOLEAN = "boolean"
    NUMBER = "number"
    TEXT = "text"
    TUPLE = "tuple"
    LIST = "list"
    MAPPING = "mapping"
    RECORD = "record"


_NULL_FP: Final = "null"
_ABSENT_FP: Final = "absent"

_REJECTED_TYPES: Final = (
    set,
    frozenset,
    bytes,
    bytearray,
    memoryview,
    type,
    types.ModuleType,
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    types.GeneratorType,
)


@lru_cache(maxsize=None)
def _kind_of(cls: type) -> _Kind:
    if cls is type(None):
        return _Kind.NULL
    if cls is _Absent:
        return _Kind.ABSENT
    # Enum members are records whose simple value is their ``.value``,
    # even when they also subclass str or int.
    if issubclass(cls, Enum):
        return _Kind.RECORD
    if issubclass(cls, bool):
        return _Kind.BOOLEAN
    if issubclass(cls, (int, float)):
        return _Kind.NUMBER
    if issubclass(cls, str):
        return _Kind.TEXT
    if issubclass(cls, tuple):
        return _Kind.TUPLE
    if issubclass(cls, list):
        return _Kind.LIST
    if issubclass(cls, dict):
        return _Kind.MAPPING
    if issubclass(cls, _REJECTED_TYPES):
        raise KeyShapeError(f"{cls.__name__} values cannot be used as structural keys")
    # Instances carry fields when some class in the MRO provides an instance
    # ``__dict__`` descriptor or declares ``__slots__``.
    has_fields = dataclasses.is_dataclass(cls) or any(
        "__dict__" in vars(base) or "__slots__" in vars(base) for base in cls.__mro__[:-1]
    )
    if not has_fields and key_forms(cls) == (KeyForm.STRUCTURAL,):
        raise KeyShapeError(
            f"{cls.__name__} values cannot be used as structural keys "
            "(no primitive coercion and no visible fields)"
        )
    return _Kind.RECORD


@lru_cache(maxsize=None)
def key_forms(cls: type) -> tuple[KeyForm, ...]:
    """Resolve, once per record type, which identity forms apply and in what order."""
    forms: list[KeyForm] = []
    if issubclass(cls, SupportsPrimitive):
        forms.append(KeyForm.PRIMITIVE)
    if issubclass(cls, (Enum, SupportsSimpleValue)):
        forms.append(KeyForm.SIMPLE_VALUE)
    forms.append(KeyForm.STRUCTURAL)
    return tuple(forms)


def _invoke(value: Any, form: KeyForm) -> Any:
    if form is KeyForm.PRIMITIVE:
        return value.to_primitive()
    if isinstance(value, Enum) and not isinstance(value, SupportsSimpleValue):
        return value.value
    return value.simple_value()


def _coerced(value: Any) -> Primitive | None:
    """Return the primitive a record stands for, or None to fall back to its fields."""
    for form in key_forms(type(value)):
        if form is KeyForm.STRUCTURAL:
            return None
        result = _invoke(value, form)
        if result is None or result is ABSENT:
            continue
        if _kind_of(type(result)) not in (_Kind.BOOLEAN, _Kind.NUMBER, _Kind.TEXT):
            raise KeyShapeError(
                f"{type(value).__name__}.{form.value} returned a non-primitive "
                f"{type(result).__name__}"
            )
        return result
    return None


def record_fields(value: Any) -> Iterator[tuple[str, Any]]:
    """Yield a record's public fields in natural order, skipping absent values."""
    if isinstance(value, dict):
        items: Iterator[tuple[Any, Any]] = iter(value.items())
    elif dataclasses.is_dataclass(value):
        items = ((f.name, getattr(value, f.name, ABSENT)) for f in dataclasses.fields(value))
    elif hasattr(value, "__dict__"):
        items = iter(vars(value).items())
    else:
        names: list[str] = []
        for base in reversed(type(value).__mro__):
            slots = vars(base).get("__slots__", ())
            names.extend([slots] if isinstance(slots, str) else slots)
        items = ((name, getattr(value, name, ABSENT)) for name in names)

    for name, field_value in items:
        if not isinstance(name, str):
            raise KeyShapeError(
                f"Record field names must be str, got {type(name).__name__}: {name!r}"
            )
        if name.startswith("_") or field_value is ABSENT:
            continue
        yield name, field_value


def _number_fp(value: int | float) -> str:
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return json.dumps(value)
    return str(value)


def fingerprint(value: Any) -> Fingerprint:
    """
    Compute the structural fingerprint of a value.

    Args:
        value: Any supported structural value (see module docstring)

    Returns:
        Canonical string, equal for two values iff they are structurally equal

    Raises:
        KeyShapeError: If the value (or a nested value) has an unsupported shape
    """
    return Fingerprint(_encode(value))


def _encode(value: Any) -> str:
    kind = _kind_of(type(value))
    if kind is _Kind.NULL:
        return _NULL_FP
    if kind is _Kind.ABSENT:
        return _ABSENT_FP
    if kind is _Kind.BOOLEAN:
        return "true" if value else "false"
    if kind is _Kind.NUMBER:
        return _number_fp(value)
    if kind is _Kind.TEXT:
        return json.dumps(str(value))
    if kind is _Kind.TUPLE:
        return f"T{len(value)}(" + ",".join(_encode(item) for item in value) + ")"
    if kind is _Kind.LIST:
        return f"L{len(value)}[" + ",".join(_encode(item) for item in value) + "]"

    if kind is _Kind.RECORD:
        primitive = _coerced(value)
        if primitive is not None:
            return _encode(primitive)
    return "{" + ",".join(
        f"{json.dumps(name)}:{_encode(field_value)}"
        for name, field_value in record_fields(value)
    ) + "}"


def key_shape(value: Any) -> str:
    """
    Describe the shape of a key without its content.

    Tuples report the shape of each position, lists only that they are lists,
    and records their public field names with field shapes. Coerced records
    report the shape of their primitive.
    """
    kind = _kind_of(type(value))
    if kind is _Kind.TUPLE:
        return "tuple[" + ",".join(key_shape(item) for item in value) + "]"
    if kind in (_Kind.MAPPING, _Kind.RECORD):
        if kind is _Kind.RECORD:
            primitive = _coerced(value)
            if primitive is not None:
                return key_shape(primitive)
        return "{" + ",".join(
            f"{name}:{key_shape(field_value)}" for name, field_value in record_fields(value)
        ) + "}"
    return kind.value
