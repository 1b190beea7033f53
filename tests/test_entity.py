"""Tests for entityrepo.entity (identity equality, hashing, display)."""

from __future__ import annotations

import uuid

import pytest

from entityrepo.entity import (
    Entity,
    IdEntity,
    display_template,
    register_display,
    register_id_default,
)

from _support.entities import Tag, Widget


class Item(IdEntity):
    def __init__(self, id=None, name=""):
        self.id = id
        self.name = name


class OtherItem(IdEntity):
    def __init__(self, id=None):
        self.id = id


class SpecialItem(Item):
    pass


# =============================================================================
# Equality
# =============================================================================


class TestEquality:
    """Equality from (concrete type, id)."""

    def test_same_type_same_id_equal(self):
        assert Item(1, "a") == Item(1, "b")

    def test_same_type_different_id_not_equal(self):
        assert Item(1) != Item(2)

    def test_equal_entities_hash_equal(self):
        a, b = Item(42), Item(42)
        assert a == b
        assert hash(a) == hash(b)

    def test_unset_ids_never_equal(self):
        assert Item() != Item()
        assert Item(0) != Item(0)

    def test_unset_id_not_equal_to_itself(self):
        item = Item()
        assert not (item == item)
        # containment checks identity first
        assert item in [item]

    def test_unset_and_set_not_equal(self):
        assert Item() != Item(1)
        assert Item(1) != Item()

    def test_different_types_same_id_not_equal(self):
        assert Item(1) != OtherItem(1)

    def test_subclass_not_equal_to_base(self):
        assert Item(1) != SpecialItem(1)
        assert SpecialItem(1) != Item(1)

    def test_non_entity_not_equal(self):
        assert Item(1) != 1
        assert Item(1) != None  # noqa: E711

    def test_symmetric_and_transitive(self):
        a, b, c = Item(7), Item(7), Item(7)
        assert a == b and b == a
        assert b == c and a == c

    def test_string_ids(self):
        assert Item("x") == Item("x")
        assert Item("") != Item("")

    def test_uuid_ids(self):
        key = uuid.uuid4()
        assert Item(key) == Item(key)
        assert Item(uuid.UUID(int=0)) != Item(uuid.UUID(int=0))

    def test_mapped_entities(self):
        assert Widget(id=3) == Widget(id=3)
        assert Widget() != Widget()
        assert Tag(id="a") != Widget(id=3)


# =============================================================================
# Hashing
# =============================================================================


class TestHashing:
    """Hash from the id value, 0 when unset."""

    def test_hash_is_id_hash(self):
        assert hash(Item(5)) == hash(5)
        assert hash(Item("k")) == hash("k")

    def test_unset_hash_is_zero(self):
        assert hash(Item()) == 0
        assert hash(Item(0)) == 0
        assert hash(Item("")) == 0

    def test_unsaved_entities_kept_in_set(self):
        items = {Item(), Item(), Item()}
        assert len(items) == 3

    def test_saved_entities_collapse_in_set(self):
        assert len({Item(1), Item(1), Item(2)}) == 2

    def test_hash_follows_id_changes(self):
        item = Item()
        assert hash(item) == 0
        item.id = 9
        assert hash(item) == hash(9)


class TestUnsetIds:
    """Per-type unset sentinels."""

    @pytest.mark.parametrize("value", [None, 0, "", uuid.UUID(int=0)])
    def test_unset_values(self, value):
        assert IdEntity.id_is_unset(value)

    @pytest.mark.parametrize("value", [1, -1, "a", uuid.UUID(int=1), False])
    def test_set_values(self, value):
        assert not IdEntity.id_is_unset(value)

    def test_register_id_default(self):
        class Code(str):
            pass

        register_id_default(Code, Code("none"))
        assert IdEntity.id_is_unset(Code("none"))
        assert Item(Code("none")) != Item(Code("none"))
        assert Item(Code("abc")) == Item(Code("abc"))


# =============================================================================
# Display
# =============================================================================


class TestDisplay:
    """Diagnostic __str__ with template priority and safe fallback."""

    def test_default_debug_display(self):
        assert str(Item(3)) == "Item #3"

    def test_class_debug_display(self):
        class Named(IdEntity):
            __debug_display__ = "{name} ({id})"

            def __init__(self, id, name):
                self.id = id
                self.name = name

        assert str(Named(2, "bolt")) == "bolt (2)"

    def test_display_name_beats_debug_display(self):
        class Labelled(IdEntity):
            __display_name__ = "Labelled:{id}"
            __debug_display__ = "debug {id}"

            def __init__(self, id):
                self.id = id

        assert str(Labelled(4)) == "Labelled:4"

    def test_registered_template_beats_class_attributes(self):
        class Registered(IdEntity):
            __display_name__ = "class {id}"

            def __init__(self, id):
                self.id = id

        register_display(Registered, "registered {id}")
        assert str(Registered(1)) == "registered 1"
        assert display_template(Registered) == "registered {id}"

    def test_template_cached_per_type(self):
        class Cached(IdEntity):
            __debug_display__ = "first {id}"

            def __init__(self, id):
                self.id = id

        assert str(Cached(1)) == "first 1"
        Cached.__debug_display__ = "second {id}"
        assert str(Cached(1)) == "first 1"

    def test_subclass_inherits_template(self):
        class Base(IdEntity):
            __debug_display__ = "<{type_name} {id}>"

            def __init__(self, id):
                self.id = id

        class Derived(Base):
            pass

        assert str(Derived(8)) == "<Derived 8>"

    def test_missing_field_falls_back(self):
        class Broken(IdEntity):
            __debug_display__ = "{missing}"

            def __init__(self, id):
                self.id = id

        text = str(Broken(1))
        assert "Broken" in text
        assert text.startswith("<")

    def test_malformed_template_falls_back(self):
        class Malformed(IdEntity):
            __debug_display__ = "{id"

            def __init__(self, id):
                self.id = id

        assert "Malformed" in str(Malformed(1))

    def test_raising_property_falls_back(self):
        class Exploding(IdEntity):
            __debug_display__ = "{boom}"

            def __init__(self, id):
                self.id = id

            @property
            def boom(self):
                raise RuntimeError("no")

        assert "Exploding" in str(Exploding(1))

    def test_plain_entity_uses_default_description(self):
        class Bare(Entity):
            pass

        text = str(Bare())
        assert "Bare object at" in text

    def test_mapped_entity_display(self):
        assert str(Widget(id=2, name="bolt")) == "bolt #2"
