"""
Tests for structural fingerprints.

Verifies:
- Equal structures fingerprint equally; different shapes never collide
- Tuple arity and tuple-vs-list are part of the shape
- None, ABSENT and "" stay distinct; ABSENT fields are omitted
- to_primitive() takes precedence over simple_value(), falling back in order
- Unsupported shapes raise KeyShapeError instead of comparing equal
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import pytest

from retrocal.infra.exceptions import KeyShapeError
from retrocal.shared.instant import Instant
from retrocal.shared.structural_hash import (
    ABSENT,
    KeyForm,
    SupportsPrimitive,
    SupportsSimpleValue,
    fingerprint,
    key_forms,
    key_shape,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@dataclass
class Coerced:
    """Record exposing both identity capabilities."""

    primitive: object
    simple: object

    def to_primitive(self):
        return self.primitive

    def simple_value(self):
        return self.simple


class OnlySimple:
    def __init__(self, simple):
        self.simple = simple

    def simple_value(self):
        return self.simple


class One:
    """Distinct instances that all stand for the number 1."""

    def __init__(self, label: str) -> None:
        self.label = label

    def to_primitive(self) -> int:
        return 1


@dataclass
class User:
    name: str
    age: int
    created: Instant
    _cache: dict = field(default_factory=dict)


class Slotted:
    __slots__ = ("name", "_hidden")

    def __init__(self, name: str) -> None:
        self.name = name
        self._hidden = object()


class Color(Enum):
    RED = "red"
    BLUE = "blue"


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestDeterminism:
    def test_same_empty_record(self):
        assert fingerprint({}) == fingerprint({})

    def test_same_empty_tuple(self):
        assert fingerprint(()) == fingerprint(())

    def test_same_string(self):
        assert fingerprint("") == fingerprint("")

    def test_distinct_literals_differ(self):
        assert fingerprint("A") != fingerprint("B")

    def test_nested_structures_match_by_content(self):
        def make():
            return {"id": "1", "users": [{"name": "a", "age": 1, "created": Instant(1)}]}

        assert make() is not make()
        assert fingerprint(make()) == fingerprint(make())

    def test_nested_difference_detected(self):
        a1 = {"id": "1", "people": [{"name": "a", "age": 1, "created": Instant(1)}]}
        a2 = {"id": "1", "people": [{"name": "a", "age": 2, "created": Instant(1)}]}
        assert fingerprint(a1) != fingerprint(a2)

    def test_field_order_is_part_of_identity(self):
        assert fingerprint({"a": 1, "b": 2}) != fingerprint({"b": 2, "a": 1})


class TestPrimitives:
    def test_string_and_number_do_not_collide(self):
        assert fingerprint("99") != fingerprint(99)

    def test_boolean_and_number_do_not_collide(self):
        assert fingerprint(True) != fingerprint(1)
        assert fingerprint(False) != fingerprint(0)

    def test_equal_numbers_share_fingerprint(self):
        assert fingerprint(1) == fingerprint(1.0)
        assert fingerprint(0.5) != fingerprint(1)

    def test_string_escaping_keeps_delimiters_apart(self):
        assert fingerprint(("a,b",)) != fingerprint(("a", "b"))
        assert fingerprint('a"') != fingerprint("a")


class TestSequences:
    def test_different_arity_tuples_never_collide(self):
        assert fingerprint(("a", 1)) != fingerprint(("b",))
        assert fingerprint(("a", 1, "c")) != fingerprint(("b", 2))
        assert fingerprint(("a", 1)) != fingerprint(("b", 2, "c"))

    def test_shared_prefix_does_not_collide(self):
        assert fingerprint(("a",)) != fingerprint(("a", 1))
        assert fingerprint(["a"]) != fingerprint(["a", "a"])

    def test_tuple_and_list_are_distinct_shapes(self):
        assert fingerprint((1, 2)) != fingerprint([1, 2])

    def test_nesting_is_unambiguous(self):
        assert fingerprint(((1, 2), 3)) != fingerprint((1, (2, 3)))


class TestNullAndAbsence:
    def test_null_absent_and_empty_string_are_distinct(self):
        fps = {fingerprint(None), fingerprint(ABSENT), fingerprint("")}
        assert len(fps) == 3

    def test_absent_field_is_omitted(self):
        assert fingerprint({"a": 1, "b": ABSENT}) == fingerprint({"a": 1})

    def test_null_field_is_kept(self):
        assert fingerprint({"a": 1, "b": None}) != fingerprint({"a": 1})
        assert fingerprint({"a": None}) != fingerprint({"a": ""})

    def test_absent_is_falsy_singleton(self):
        assert not ABSENT
        assert type(ABSENT)() is ABSENT


class TestRecords:
    def test_private_dataclass_fields_are_ignored(self):
        u1 = User("a", 1, Instant(1))
        u2 = User("a", 1, Instant(1), _cache={"warm": True})
        assert fingerprint(u1) == fingerprint(u2)

    def test_dataclass_matches_equivalent_dict(self):
        assert fingerprint(User("a", 1, Instant(1))) == fingerprint(
            {"name": "a", "age": 1, "created": Instant(1)}
        )

    def test_slotted_record_uses_public_slots(self):
        assert fingerprint(Slotted("x")) == fingerprint({"name": "x"})

    def test_plain_object_uses_instance_attributes(self):
        assert fingerprint(OnlySimple(None)) == fingerprint({"simple": None})

    def test_non_string_field_names_rejected(self):
        with pytest.raises(KeyShapeError):
            fingerprint({1: "a"})


class TestCoercion:
    def test_primitive_takes_precedence(self):
        assert fingerprint(Coerced(primitive=1, simple=2)) == fingerprint(1)

    def test_simple_value_used_when_primitive_is_none(self):
        assert fingerprint(Coerced(primitive=None, simple=2)) == fingerprint(2)

    def test_simple_value_used_when_primitive_is_absent(self):
        assert fingerprint(Coerced(primitive=ABSENT, simple="x")) == fingerprint("x")

    def test_structural_fallback_when_both_yield_nothing(self):
        assert fingerprint(Coerced(primitive=None, simple=None)) == fingerprint(
            {"primitive": None, "simple": None}
        )

    def test_simple_value_alone(self):
        assert fingerprint(OnlySimple("s")) == fingerprint("s")

    def test_coerced_nested_structure_is_ignored(self):
        assert fingerprint(One("first")) == fingerprint(One("second"))
        assert fingerprint(One("first")) == fingerprint(1)

    def test_instant_coerces_to_epoch_ms(self):
        assert Instant(1) is not Instant(1)
        assert fingerprint(Instant(1)) == fingerprint(Instant(1))
        assert fingerprint(Instant(1)) == fingerprint(1)
        assert fingerprint(Instant(1)) != fingerprint(Instant(2))

    def test_enum_members_use_their_value(self):
        assert fingerprint(Color.RED) == fingerprint("red")
        assert fingerprint(Color.RED) != fingerprint(Color.BLUE)

    def test_non_primitive_coercion_rejected(self):
        with pytest.raises(KeyShapeError):
            fingerprint(Coerced(primitive=[1, 2], simple=None))

    def test_key_forms_resolved_per_type(self):
        assert key_forms(Coerced) == (
            KeyForm.PRIMITIVE,
            KeyForm.SIMPLE_VALUE,
            KeyForm.STRUCTURAL,
        )
        assert key_forms(OnlySimple) == (KeyForm.SIMPLE_VALUE, KeyForm.STRUCTURAL)
        assert key_forms(User) == (KeyForm.STRUCTURAL,)

    def test_capabilities_follow_the_protocols(self):
        assert isinstance(Instant(1), SupportsPrimitive)
        assert isinstance(OnlySimple("s"), SupportsSimpleValue)
        assert not isinstance(OnlySimple("s"), SupportsPrimitive)

    def test_attribute_named_like_capability_but_unset_is_ignored(self):
        class Disabled:
            to_primitive = None

            def __init__(self, name: str) -> None:
                self.name = name

        assert key_forms(Disabled) == (KeyForm.STRUCTURAL,)
        assert fingerprint(Disabled("x")) == fingerprint({"name": "x"})


class TestUnsupportedShapes:
    @pytest.mark.parametrize("value", [{1, 2}, frozenset(), b"bytes", bytearray(b"x")])
    def test_rejected(self, value):
        with pytest.raises(KeyShapeError):
            fingerprint(value)

    def test_rejected_inside_structure(self):
        with pytest.raises(KeyShapeError):
            fingerprint({"tags": {"a", "b"}})

    def test_key_shape_error_is_type_error(self):
        with pytest.raises(TypeError):
            fingerprint(len)


class TestKeyShape:
    def test_tuple_shape_includes_positions(self):
        assert key_shape(("a", 1)) == "tuple[text,number]"
        assert key_shape(("a", 1)) != key_shape(("a",))

    def test_record_shape_lists_public_fields(self):
        assert key_shape({"name": "a", "age": None}) == "{name:text,age:null}"

    def test_coerced_record_reports_primitive_shape(self):
        assert key_shape(Instant(5)) == "number"
