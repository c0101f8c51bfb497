"""Tests for placeholder refs, discovery, the push engine and preparation."""

import pytest

from temporalflow.errors import ForkMisuseError
from temporalflow.expr import (
    NO_PRIORITY,
    Group,
    Leaf,
    Ordering,
    Polarity,
    Slot,
    action,
    all_of,
    any_of,
    either,
    future,
    past,
)
from temporalflow.flow import (
    PAST_PRIORITY,
    PlaceholderRef,
    find_future_points,
    find_past_points,
    inner_push,
    prepare_for_execution,
    would_accept,
)
from temporalflow.observability import MemorySink, ObservabilityHub, TraceLevel


def points_of(node):
    """Discover future points of a detached tree, plus its holder slot."""
    holder = Slot.holding(node)
    points, _ = find_future_points(holder)
    return holder, points


# =============================================================================
# PlaceholderRef Tests
# =============================================================================


class TestPlaceholderRef:
    """Tests for PlaceholderRef."""

    def test_placeholder_filter(self):
        """Test filter comes from the referenced placeholder."""
        ref = PlaceholderRef(5, Slot.holding(future(int)))
        assert ref.filter == (int,)
        assert ref.accepts(Leaf(3))
        assert not ref.accepts(Leaf("x"))
        assert not ref.accepts(action("say"))

    def test_filter_uses_is_a_matching(self):
        """Test subclasses of a filter tag are accepted."""
        ref = PlaceholderRef(5, Slot.holding(future(int)))
        assert ref.accepts(Leaf(True))

    def test_non_placeholder_target(self):
        """Test a plain node has no filter and is its own content."""
        node = all_of(1)
        ref = PlaceholderRef(NO_PRIORITY, Slot.holding(node))
        assert ref.filter == ()
        assert ref.content is node
        assert ref.accepts(action("say"))

    def test_add_content_splices_and_group(self):
        """Test AND content is added element by element, cloned."""
        item = Leaf(1)
        holder = Slot.holding(future())
        ref = PlaceholderRef(0, holder)
        ref.add_content(Group(Ordering.AND, [item, Leaf(2)]))
        assert holder.get().content == all_of(1, 2)
        assert holder.get().content.children[0] is not item

    def test_add_content_to_plain_node(self):
        """Test content is appended after a non-placeholder target."""
        holder = Slot.holding(Leaf(1))
        PlaceholderRef(NO_PRIORITY, holder).add_content(Leaf(2))
        assert holder.get() == all_of(1, 2)

    def test_collapse_future_keeps_filter(self):
        """Test collapsing a future placeholder clears content only."""
        holder = Slot.holding(future(int, content=1))
        PlaceholderRef(5, holder).collapse()
        assert holder.get() == future(int)

    def test_collapse_past_empties_slot(self):
        """Test collapsing a past placeholder removes it."""
        holder = Slot.holding(past(int, content=1))
        PlaceholderRef(PAST_PRIORITY, holder).collapse()
        assert holder.get() == Group()

    def test_has_relevant_content(self):
        """Test relevance requires a filter and matching content."""
        assert PlaceholderRef(0, Slot.holding(future(int, content=1))).has_relevant_content()
        assert not PlaceholderRef(0, Slot.holding(future(int, content="a"))).has_relevant_content()
        assert not PlaceholderRef(0, Slot.holding(future(content=1))).has_relevant_content()

    def test_fork_rejects_point_operations(self):
        """Test filter/content/add_content on a fork raise."""
        ref = PlaceholderRef(5, Slot.holding(future(int)))
        ref.promote_to_fork()
        with pytest.raises(ForkMisuseError):
            ref.filter
        with pytest.raises(ForkMisuseError):
            ref.add_content(Leaf(1))
        with pytest.raises(ForkMisuseError):
            ref.collapse()

    def test_add_branch_clones_identity(self):
        """Test each branch gets its own copy of the original content."""
        holder = Slot.holding(future(int, content=1))
        ref = PlaceholderRef(5, holder)
        first = ref.add_branch()
        second = ref.add_branch()

        assert ref.is_fork
        root = holder.get()
        assert root.ordering is Ordering.OR
        assert root.children == [future(int, content=1), future(int, content=1)]

        first[0].add_content(Leaf(2))
        assert root.children[0] == future(int, content=[1, 2])
        assert root.children[1] == future(int, content=1)
        assert ref.fork.identity == future(int, content=1)
        assert second[0].priority == 5

    def test_promote_is_idempotent(self):
        """Test promoting twice returns the same fork."""
        ref = PlaceholderRef(5, Slot.holding(future()))
        assert ref.promote_to_fork() is ref.promote_to_fork()

    def test_debug_string(self):
        """Test point and fork rendering."""
        ref = PlaceholderRef(5, Slot.holding(future(int)))
        assert ref.to_debug_string() == "POINT (priority 5): int??"
        ref.add_branch()
        assert ref.to_debug_string().startswith("FORK (priority 5):\n  branch 0:")


# =============================================================================
# Discovery Tests
# =============================================================================


class TestFindFuturePoints:
    """Tests for future point discovery."""

    def test_action_argument(self):
        """Test the point inherits the enclosing action's priority."""
        tree = action("say", 5, argument=future(int))
        _, points = points_of(tree)
        assert len(points) == 1
        assert points[0].priority == 5
        assert points[0].node is tree.argument

    def test_and_group_right_to_left(self):
        """Test the most recent requirement comes first."""
        tree = all_of(future(int), future(str))
        _, points = points_of(tree)
        assert [p.node.filter for p in points] == [(str,), (int,)]

    def test_past_placeholders_ignored(self):
        """Test past placeholders are not future points."""
        tree = all_of(past(int), either(str))
        _, points = points_of(tree)
        assert [p.node.polarity for p in points] == [Polarity.EITHER]

    def test_filled_placeholder_stays_open(self):
        """Test future placeholders remain points once filled."""
        tree = action("say", 5, argument=future(content="x"))
        _, points = points_of(tree)
        assert [p.node for p in points] == [tree.argument]

    def test_innermost_action_priority(self):
        """Test nested actions override the outer priority."""
        tree = action("outer", 2, argument=action("inner", 7, argument=future()))
        _, points = points_of(tree)
        assert [p.priority for p in points] == [7]

    def test_or_group_becomes_fork(self):
        """Test an OR group yields a single fork with one branch per child."""
        tree = any_of(
            action("a", 5, argument=future(int)),
            action("b", 3, argument=future(str)),
        )
        _, points = points_of(tree)
        assert len(points) == 1
        fork = points[0].fork
        assert fork is not None
        assert fork.root is tree
        assert not fork.identity_is_dedicated
        assert [[p.priority for p in branch] for branch in fork.branches] == [[5], [3]]

    def test_closed_branch_is_registered_whole(self):
        """Test a branch without open points still gets a ref."""
        tree = any_of(1, action("a", argument=future()))
        _, points = points_of(tree)
        first_branch = points[0].fork.branches[0]
        assert len(first_branch) == 1
        assert first_branch[0].node == Leaf(1)

    def test_priority_fence(self):
        """Test a priority drop at the end of an AND scope is a point."""
        tree = action("outer", 5, argument=all_of(action("inner", 2, argument=future())))
        _, points = points_of(tree)
        assert [p.priority for p in points] == [2, 5]
        assert points[1].node is tree.argument

    def test_closed_tree_has_no_points(self):
        """Test fully resolved trees have nothing open."""
        _, points = points_of(all_of(1, action("say", argument="hi")))
        assert points == []


class TestFindPastPoints:
    """Tests for past point discovery."""

    def test_action_search_order(self):
        """Test output, argument, then source are searched."""
        tree = action("say", source=past(str), argument=either(int), output=future())
        points = find_past_points(Slot.holding(tree))
        assert [p.node for p in points] == [tree.argument, tree.source]
        assert all(p.priority == PAST_PRIORITY for p in points)

    def test_nested_placeholders(self):
        """Test placeholders inside placeholder content are found first."""
        inner = past(int)
        outer = either(content=[inner])
        points = find_past_points(Slot.holding(outer))
        assert [p.node for p in points] == [inner, outer]


# =============================================================================
# Push Engine Tests
# =============================================================================


class TestInnerPush:
    """Tests for the push/fill engine."""

    def test_fill_filtered_point(self):
        """Test matching content fills the point."""
        holder, points = points_of(action("say", 5, argument=future(int)))
        assert inner_push(points, Leaf(3))
        assert holder.get().argument.content == all_of(3)

    def test_filter_rejection(self):
        """Test non-matching content is refused."""
        holder, points = points_of(action("say", 5, argument=future(int)))
        assert not inner_push(points, Leaf("x"))
        assert holder.get().argument.content is None

    def test_attempt_does_not_mutate(self):
        """Test attempt mode only predicts."""
        holder, points = points_of(action("say", 5, argument=future(int)))
        assert inner_push(points, Leaf(3), attempt=True)
        assert holder.get().argument.content is None

    def test_empty_content(self):
        """Test empty content places nothing."""
        _, points = points_of(action("say", 5, argument=future()))
        assert not inner_push(points, Group())

    def test_higher_priority_action_skips_point(self):
        """Test an action is never placed below its own priority."""
        holder, points = points_of(action("say", 5, argument=future()))
        assert not inner_push(points, action("shout", 10))
        assert inner_push(points, action("whisper", 3))
        assert holder.get().argument.content == all_of(action("whisper", 3))

    def test_and_content_split_across_points(self):
        """Test each element goes to the first point that takes it."""
        tree = all_of(future(int), future(str))
        _, points = points_of(tree)
        assert inner_push(points, all_of(1, "a"))
        assert tree.children[0].content == all_of(1)
        assert tree.children[1].content == all_of("a")

    def test_multicast_into_fork(self):
        """Test every branch receives its own copy."""
        tree = any_of(
            action("a", 5, argument=future()),
            action("b", 5, argument=future()),
        )
        _, points = points_of(tree)
        assert inner_push(points, Leaf("x"))
        first = tree.children[0].argument.content
        second = tree.children[1].argument.content
        assert first == all_of("x")
        assert second == all_of("x")
        assert first.children[0] is not second.children[0]

    def test_ambiguous_content_branches(self):
        """Test two fitting alternatives fork the point."""
        holder, points = points_of(action("say", 5, argument=future(int)))
        assert inner_push(points, any_of(1, 2))
        argument = holder.get().argument
        assert argument == any_of(future(int, content=1), future(int, content=2))

    def test_single_viable_alternative_does_not_branch(self):
        """Test an alternative nobody accepts is dropped silently."""
        holder, points = points_of(action("say", 5, argument=future(int)))
        assert inner_push(points, any_of(1, "x"))
        assert holder.get().argument == future(int, content=1)

    def test_no_viable_alternative(self):
        """Test OR content with no acceptable alternative is refused."""
        holder, points = points_of(action("say", 5, argument=future(int)))
        assert not inner_push(points, any_of("x", "y"))
        assert holder.get().argument == future(int)

    def test_branching_into_existing_fork(self):
        """Test a second ambiguous push adds more branches."""
        holder, points = points_of(action("say", 5, argument=future(int)))
        inner_push(points, any_of(1, 2))
        inner_push(points, any_of(3, 4))
        assert len(holder.get().argument.children) == 4

    def test_past_integration_consumes_context(self):
        """Test past placeholders are filled from what the point holds."""
        holder = Slot.holding(all_of("hello"))
        point = PlaceholderRef(NO_PRIORITY, holder)
        assert inner_push([point], action("shout", argument=past(str)))
        assert holder.get() == all_of(action("shout", argument=past(str, content="hello")))

    def test_past_integration_without_context(self):
        """Test past placeholders with nothing to look up are refused."""
        holder = Slot.holding(Group())
        point = PlaceholderRef(NO_PRIORITY, holder)
        assert not inner_push([point], action("shout", argument=past(str)))
        assert holder.get() == Group()

    def test_past_integration_in_every_branch(self):
        """Test each fork branch consumes its own context."""
        tree = any_of(future(content="hello"), future(content="bye"))
        _, points = points_of(tree)
        assert inner_push(points, action("shout", argument=past(str)))
        assert tree == any_of(
            future(content=action("shout", argument=past(str, content="hello"))),
            future(content=action("shout", argument=past(str, content="bye"))),
        )

    def test_multicast_matches_plain_fill(self):
        """Test a fork branch ends up like the same point without a fork."""
        plain = future(content="hello")
        _, plain_points = points_of(plain)
        inner_push(plain_points, action("shout", argument=past(str)))

        tree = any_of(future(content="hello"), future(content="hello"))
        _, points = points_of(tree)
        inner_push(points, action("shout", argument=past(str)))

        assert tree.children[0] == plain
        assert tree.children[1] == plain

    def test_branches_integrate_past_independently(self):
        """Test ambiguous actions each consume the context of their branch."""
        holder, points = points_of(action("say", 5, argument=future(content="hello")))
        assert inner_push(points, any_of(
            action("shout", argument=past(str)),
            action("whisper", argument=past(str)),
        ))
        assert holder.get().argument == any_of(
            future(content=action("shout", argument=past(str, content="hello"))),
            future(content=action("whisper", argument=past(str, content="hello"))),
        )

    def test_single_alternative_respects_clone(self):
        """Test cloning leaves a lone viable alternative untouched."""
        holder = Slot.holding(future(content="hello"))
        point = PlaceholderRef(5, holder)
        shout = action("shout", argument=past(str))

        assert inner_push([point], any_of(shout, action("loud", 10)), clone=True)
        assert shout.argument.content is None
        assert holder.get() == future(content=action("shout", argument=past(str, content="hello")))

    def test_branch_record_emitted(self):
        """Test branching is traced when observability is on."""
        ObservabilityHub.reset_instance()
        sink = MemorySink()
        ObservabilityHub.get_instance().configure(level=TraceLevel.NORMAL, sinks=[sink])
        try:
            _, points = points_of(action("say", 5, argument=future(int)))
            inner_push(points, any_of(1, 2))
            records = sink.get_records("branch")
            assert len(records) == 1
            assert records[0].priority == 5
            assert records[0].branch_count == 2
            assert records[0].added == 2
        finally:
            ObservabilityHub.reset_instance()


class TestWouldAccept:
    """Tests for dry-run fills."""

    def test_plain_point(self):
        """Test dry run respects the filter."""
        ref = PlaceholderRef(5, Slot.holding(future(int)))
        assert would_accept(ref, Leaf(1))
        assert not would_accept(ref, Leaf("x"))
        assert ref.node.content is None

    def test_fork_is_probed_through_identity(self):
        """Test forks answer for their identity."""
        ref = PlaceholderRef(5, Slot.holding(future(int)))
        ref.add_branch()
        assert would_accept(ref, Leaf(1))
        assert not would_accept(ref, Leaf("x"))


# =============================================================================
# Preparation Tests
# =============================================================================


class TestPrepareForExecution:
    """Tests for placeholder stripping."""

    def test_unfilled_placeholder_disappears(self):
        """Test open placeholders become empty groups."""
        prepared = prepare_for_execution(action("say", argument=future(int)))
        assert prepared == action("say")

    def test_content_replaces_placeholder(self):
        """Test gathered content takes the placeholder's place."""
        assert prepare_for_execution(future(content="x")) == Leaf("x")
        assert prepare_for_execution(future(content=["x", "y"])) == all_of("x", "y")

    def test_input_not_modified(self):
        """Test the pending tree keeps its placeholders."""
        tree = action("say", argument=future(content="x"))
        prepare_for_execution(tree)
        assert tree == action("say", argument=future(content="x"))

    def test_conversion_to_single_tag(self):
        """Test best-effort conversion to a single filter tag."""
        assert prepare_for_execution(future(int, content="42")) == Leaf(42)
        assert prepare_for_execution(future(str, content=[1, 2])) == Leaf("12")
        assert prepare_for_execution(future(int, content=3)) == Leaf(3)

    def test_failed_conversion_keeps_content(self):
        """Test content that cannot be converted is left as-is."""
        assert prepare_for_execution(future(int, content="abc")) == Leaf("abc")
        assert prepare_for_execution(future(int, content=[1, 2])) == all_of(1, 2)

    def test_nested_placeholders(self):
        """Test placeholders inside content are prepared too."""
        tree = future(content=action("echo", argument=past(str, content="x")))
        assert prepare_for_execution(tree) == action("echo", argument="x")

    def test_forked_argument(self):
        """Test each branch is prepared independently."""
        tree = action("say", argument=any_of(future(int, content=1), future(int)))
        assert prepare_for_execution(tree) == action("say", argument=any_of(1, Group()))
