"""
Ordered mapping keyed by structural fingerprints.

StructuralMap behaves like an insertion-ordered ``dict`` whose keys compare by
content instead of by ``__eq__``/``__hash__``: lists, dicts, dataclasses and
Instants can all be used as keys, and two distinct objects with the same
structure address the same entry.

Each entry keeps the original key object alongside the value, so iteration
yields the keys as they were first given, not their fingerprints.

Not thread-safe: a map is owned by the code that builds it.
"""

from __future__ import annotations

from collections.abc import (
    Callable,
    ItemsView,
    Iterable,
    Iterator,
    MutableMapping,
    ValuesView,
)
from typing import Any, Generic, NamedTuple, TypeVar

from retrocal.infra.exceptions import KeyShapeError
from retrocal.shared.structural_hash import ABSENT, Fingerprint, fingerprint, key_shape

K = TypeVar("K")
V = TypeVar("V")

_REPR_WIDTH = 80


class Entry(NamedTuple, Generic[K, V]):
    """A stored key-value pair; ``key`` is the original key object."""

    key: K
    value: V


class StructuralMap(MutableMapping[K, V]):
    """
    Insertion-ordered map with structural key equality.

    Re-setting an existing key replaces the value (and the stored key object)
    but keeps the entry's original position.

    Args:
        entries: Optional iterable of ``(key, value)`` pairs, applied with
            :meth:`set` in order
        uniform_keys: When True, every key must have the same
            :func:`key_shape` as the first key stored; mismatches raise
            :class:`KeyShapeError` at insertion time
    """

    def __init__(
        self,
        entries: Iterable[tuple[K, V]] | None = None,
        *,
        uniform_keys: bool = False,
    ) -> None:
        # dict keeps the insertion order of fingerprints
        self._entries: dict[Fingerprint, Entry[K, V]] = {}
        self._uniform_keys = uniform_keys
        self._key_shape: str | None = None
        if entries is not None:
            for key, value in entries:
                self.set(key, value)

    def _fingerprint(self, key: Any) -> Fingerprint:
        return fingerprint(key)

    def _check_shape(self, key: K) -> None:
        if not self._uniform_keys:
            return
        shape = key_shape(key)
        if self._key_shape is None:
            self._key_shape = shape
        elif shape != self._key_shape:
            raise KeyShapeError(
                f"Key {key!r} has shape {shape}, expected {self._key_shape}"
            )

    def _reset_shape_if_empty(self) -> None:
        # an emptied map accepts a new key shape, as after clear()
        if not self._entries:
            self._key_shape = None

    # -- core operations -------------------------------------------------

    def set(self, key: K, value: V) -> StructuralMap[K, V]:
        """Insert or overwrite the entry for ``key``; returns the map for chaining."""
        self._check_shape(key)
        self._entries[self._fingerprint(key)] = Entry(key, value)
        return self

    def has(self, key: Any) -> bool:
        return self._fingerprint(key) in self._entries

    def delete(self, key: Any) -> bool:
        """Remove the entry for ``key``. Returns True iff an entry was removed."""
        removed = self._entries.pop(self._fingerprint(key), None) is not None
        self._reset_shape_if_empty()
        return removed

    def update_with(self, key: K, fn: Callable[[Any], Any]) -> StructuralMap[K, V]:
        """
        Replace the value under ``key`` with ``fn(current)``.

        ``current`` is ``ABSENT`` when the key is missing. Returning ``ABSENT``
        deletes the entry; any other result is stored.
        """
        fp = self._fingerprint(key)
        entry = self._entries.get(fp)
        result = fn(entry.value if entry is not None else ABSENT)
        if result is ABSENT:
            self._entries.pop(fp, None)
            self._reset_shape_if_empty()
        else:
            self._check_shape(key)
            self._entries[fp] = Entry(key, result)
        return self

    def fingerprints(self) -> Iterator[Fingerprint]:
        """Iterate the internal fingerprints in insertion order."""
        return iter(self._entries)

    # -- MutableMapping protocol -----------------------------------------

    def __getitem__(self, key: Any) -> V:
        entry = self._entries.get(self._fingerprint(key))
        if entry is None:
            raise KeyError(key)
        return entry.value

    def __setitem__(self, key: K, value: V) -> None:
        self.set(key, value)

    def __delitem__(self, key: Any) -> None:
        if not self.delete(key):
            raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        return self.has(key)

    def __iter__(self) -> Iterator[K]:
        for entry in self._entries.values():
            yield entry.key

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self._key_shape = None

    def values(self) -> ValuesView[V]:
        return _ValuesView(self)

    def items(self) -> ItemsView[K, V]:
        return _ItemsView(self)

    def entries(self) -> ItemsView[K, V]:
        """Alias of :meth:`items`: ``(original_key, value)`` pairs in insertion order."""
        return self.items()

    def copy(self) -> StructuralMap[K, V]:
        clone: StructuralMap[K, V] = StructuralMap(uniform_keys=self._uniform_keys)
        clone._entries = dict(self._entries)
        clone._key_shape = self._key_shape
        return clone

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StructuralMap):
            return NotImplemented
        return list(self._entries) == list(other._entries) and all(
            a.value == b.value for a, b in zip(self._entries.values(), other._entries.values())
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        pairs = [f"{fp}: {entry.value!r}" for fp, entry in self._entries.items()]
        single = "StructuralMap({" + ", ".join(pairs) + "})"
        if len(single) <= _REPR_WIDTH or not pairs:
            return single
        return "StructuralMap({\n  " + ",\n  ".join(pairs) + "\n})"


class _ValuesView(ValuesView):
    """Restartable view over the values of a StructuralMap."""

    def __repr__(self) -> str:
        return f"StructuralMap.values({list(self)!r})"


class _ItemsView(ItemsView):
    """Restartable view over ``(original_key, value)`` pairs of a StructuralMap."""

    def __repr__(self) -> str:
        return f"StructuralMap.items({list(self)!r})"
