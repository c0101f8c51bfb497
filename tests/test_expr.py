"""Tests for expression tree nodes and the declarative builder."""

import numbers

import pytest

from temporalflow.errors import ExpressionBuildError, MalformedFilterError
from temporalflow.expr import (
    NO_PRIORITY,
    Group,
    Leaf,
    Ordering,
    Placeholder,
    Polarity,
    Slot,
    action,
    all_of,
    any_of,
    as_node,
    build_expression,
    either,
    future,
    past,
    resolve_type,
)


# =============================================================================
# Node Tests
# =============================================================================


class TestLeaf:
    """Tests for Leaf nodes."""

    def test_equality_compares_values(self):
        """Test leaves with equal values are equal."""
        assert Leaf("x") == Leaf("x")
        assert Leaf(1) != Leaf(2)

    def test_equality_distinguishes_types(self):
        """Test 1, 1.0 and True are different leaves."""
        assert Leaf(1) != Leaf(1.0)
        assert Leaf(1) != Leaf(True)

    def test_clone_is_independent(self):
        """Test clone produces an equal but distinct leaf."""
        original = Leaf([1, 2])
        copy = original.clone()
        assert copy == original
        assert copy is not original

    def test_type_tag_debug_string(self):
        """Test a class value renders by name."""
        assert Leaf(int).to_debug_string() == "int"
        assert Leaf("a").to_debug_string() == "'a'"

    def test_leaf_is_never_empty(self):
        """Test a leaf always carries something."""
        assert not Leaf(None).is_empty()


class TestGroup:
    """Tests for Group nodes."""

    def test_empty_group(self):
        """Test group without children is empty."""
        assert Group().is_empty()
        assert not Group(children=[Leaf(1)]).is_empty()

    def test_or_group_needs_two_children(self):
        """Test only OR groups with 2+ children are branch points."""
        assert not Group(Ordering.OR, [Leaf(1)]).is_or_group()
        assert Group(Ordering.OR, [Leaf(1), Leaf(2)]).is_or_group()
        assert not Group(Ordering.AND, [Leaf(1), Leaf(2)]).is_or_group()

    def test_structural_equality(self):
        """Test groups compare ordering and children position by position."""
        assert all_of(1, 2) == all_of(1, 2)
        assert all_of(1, 2) != all_of(2, 1)
        assert all_of(1, 2) != any_of(1, 2)

    def test_clone_is_deep(self):
        """Test mutating a clone leaves the original alone."""
        original = all_of(1, all_of(2))
        copy = original.clone()
        copy.children[1].children.append(Leaf(3))
        assert original == all_of(1, all_of(2))

    def test_live_children_skip_empty(self):
        """Test empty children are not live."""
        group = Group(children=[Group(), Leaf(1), Placeholder()])
        assert group.live_children() == [Leaf(1)]

    def test_debug_string(self):
        """Test AND and OR rendering."""
        assert all_of(1, 2).to_debug_string() == "(1, 2)"
        assert any_of(1, 2).to_debug_string() == "(1 or 2)"


class TestAction:
    """Tests for Action nodes."""

    def test_equality_includes_priority_and_verb(self):
        """Test actions differing only in priority or verb are different."""
        assert action("do", 1) == action("do", 1)
        assert action("do", 1) != action("do", 2)
        assert action("do", 1) != action("say", 1)

    def test_clone_is_deep(self):
        """Test clone copies every slot."""
        original = action("say", 3, argument=all_of("a"))
        copy = original.clone()
        copy.argument.children.append(Leaf("b"))
        assert original.argument == all_of("a")

    def test_debug_string_skips_empty_slots(self):
        """Test empty source/output are omitted."""
        assert action("say", argument="hi").to_debug_string() == "say(arg: 'hi')"

    def test_debug_string_shows_open_placeholders(self):
        """Test unfilled placeholders stay visible."""
        assert action("say", 5, argument=future()).to_debug_string() == "say!5(arg: ??)"

    def test_debug_string_no_priority(self):
        """Test the catch-all priority renders as none."""
        assert action("say", NO_PRIORITY).to_debug_string() == "say!none()"


class TestPlaceholder:
    """Tests for Placeholder nodes."""

    def test_bare_type_filter_is_normalized(self):
        """Test a single class is accepted as a filter."""
        node = Placeholder(Polarity.FUTURE, int)
        assert node.filter == (int,)

    def test_malformed_filter_raises(self):
        """Test non-type filter entries are rejected."""
        with pytest.raises(MalformedFilterError):
            Placeholder(Polarity.FUTURE, ("int",))

    def test_malformed_filter_is_type_error(self):
        """Test the filter error is also a TypeError."""
        with pytest.raises(TypeError):
            Placeholder(Polarity.FUTURE, 42)

    def test_empty_without_filter_or_content(self):
        """Test emptiness depends on filter and content."""
        assert Placeholder().is_empty()
        assert not Placeholder(filter=(int,)).is_empty()
        assert not Placeholder(content=all_of(1)).is_empty()

    def test_debug_marks(self):
        """Test polarity marks and content rendering."""
        assert past(str).to_debug_string() == "str?"
        assert future().to_debug_string() == "??"
        assert either(int, float).to_debug_string() == "int,float???"
        assert future(int, content=[1, 2]).to_debug_string() == "int??[1, 2]"

    def test_equality(self):
        """Test polarity, filter and content take part in equality."""
        assert future(int) == future(int)
        assert future(int) != past(int)
        assert future(int) != future(str)
        assert future(content=1) != future(content=2)


class TestVisit:
    """Tests for depth-first visiting."""

    def test_pre_order(self):
        """Test nodes are visited parent first."""
        tree = action("say", source=1, argument=all_of(2, 3))
        seen = []

        def record(node):
            if isinstance(node, Leaf):
                seen.append(node.value)
            return True

        assert tree.visit(record) is True
        assert seen == [1, 2, 3]

    def test_early_exit(self):
        """Test returning False stops the walk."""
        tree = all_of(1, 2, 3)
        seen = []

        def stop_at_two(node):
            if isinstance(node, Leaf):
                seen.append(node.value)
                return node.value != 2
            return True

        assert tree.visit(stop_at_two) is False
        assert seen == [1, 2]

    def test_iter_leaves(self):
        """Test all leaves are found, including placeholder content."""
        tree = all_of(1, future(content=[2, 3]))
        assert [leaf.value for leaf in tree.iter_leaves()] == [1, 2, 3]


class TestSlot:
    """Tests for Slot handles."""

    def test_index_slot(self):
        """Test get/set through a group index."""
        group = all_of(1, 2)
        slot = Slot(group, 1)
        assert slot.get() == Leaf(2)
        slot.set(Leaf(5))
        assert group == all_of(1, 5)

    def test_attribute_slot(self):
        """Test get/set through an attribute name."""
        act = action("say")
        Slot(act, "argument").set(Leaf("hi"))
        assert act.argument == Leaf("hi")

    def test_holding(self):
        """Test a detached node can be addressed and replaced."""
        slot = Slot.holding(Leaf(1))
        slot.set(Leaf(2))
        assert slot.get() == Leaf(2)

    def test_append_extends_and_group(self):
        """Test appending to an AND group extends it in place."""
        group = all_of(1)
        slot = Slot.holding(group)
        slot.append([Leaf(2)])
        assert slot.get() is group
        assert group == all_of(1, 2)

    def test_append_replaces_empty(self):
        """Test appending to an empty node replaces it."""
        slot = Slot.holding(Group(Ordering.OR))
        slot.append([Leaf(1)])
        assert slot.get() == all_of(1)

    def test_append_wraps_other_nodes(self):
        """Test appending to an action wraps both in an AND group."""
        act = action("say")
        slot = Slot.holding(act)
        slot.append([Leaf(1)])
        assert slot.get() == Group(Ordering.AND, [act, Leaf(1)])


# =============================================================================
# Builder Tests
# =============================================================================


class TestHelpers:
    """Tests for construction helpers."""

    def test_as_node(self):
        """Test raw values are wrapped."""
        assert as_node(None) == Group()
        assert as_node([1, 2]) == all_of(1, 2)
        assert as_node("x") == Leaf("x")
        node = Leaf(1)
        assert as_node(node) is node

    def test_placeholder_helpers(self):
        """Test polarity helpers."""
        assert future(int).polarity is Polarity.FUTURE
        assert past().polarity is Polarity.PAST
        assert either().polarity is Polarity.EITHER

    def test_placeholder_content_is_and_group(self):
        """Test helper content is wrapped in an AND group."""
        assert future(content="x").content == all_of("x")
        assert future(content=["x", "y"]).content == all_of("x", "y")

    def test_resolve_type(self):
        """Test type names resolve to classes."""
        assert resolve_type("text") is str
        assert resolve_type("number") is numbers.Number

    def test_resolve_unknown_type(self):
        """Test unknown type names raise."""
        with pytest.raises(ExpressionBuildError, match="Unknown type name"):
            resolve_type("matrix")


class TestBuildExpression:
    """Tests for declarative expression building."""

    def test_scalars_and_lists(self):
        """Test scalars become leaves and lists AND groups."""
        assert build_expression(5) == Leaf(5)
        assert build_expression(None) == Group()
        assert build_expression([1, "a"]) == all_of(1, "a")

    def test_groups(self):
        """Test and/or mappings."""
        assert build_expression({"or": [1, 2]}) == any_of(1, 2)
        assert build_expression({"and": [1]}) == all_of(1)

    def test_action(self):
        """Test a full action mapping."""
        tree = build_expression({
            "action": "say",
            "priority": 5,
            "source": "me",
            "argument": {"missing": "future", "filter": ["text"]},
        })
        assert tree == action("say", 5, source="me", argument=future(str))

    def test_action_no_priority(self):
        """Test 'none' priority maps to the catch-all."""
        tree = build_expression({"action": "say", "priority": "none"})
        assert tree.priority == NO_PRIORITY

    def test_missing_with_content(self):
        """Test placeholder content is wrapped in an AND group."""
        tree = build_expression({"missing": "either", "filter": "int", "content": 3})
        assert tree == either(int, content=3)

    def test_type_and_value_forms(self):
        """Test type tags and literal escapes."""
        assert build_expression({"type": "int"}) == Leaf(int)
        assert build_expression({"value": {"or": 1}}) == Leaf({"or": 1})

    def test_invalid_forms(self):
        """Test invalid data raises ExpressionBuildError."""
        with pytest.raises(ExpressionBuildError):
            build_expression({"or": 1})
        with pytest.raises(ExpressionBuildError):
            build_expression({"action": ""})
        with pytest.raises(ExpressionBuildError):
            build_expression({"action": "say", "verb": "x"})
        with pytest.raises(ExpressionBuildError):
            build_expression({"missing": "sideways"})
        with pytest.raises(ExpressionBuildError):
            build_expression({"action": "say", "priority": "high"})
        with pytest.raises(ExpressionBuildError):
            build_expression({"unknown": 1})

    def test_build_error_is_value_error(self):
        """Test build errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            build_expression({"type": "nope"})
