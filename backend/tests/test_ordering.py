# tests/test_ordering.py — Ordering engine unit tests
import pytest

from ordering import (
    Card, OrderingError, clamp_index, column, move, next_order,
    plan_drag, plan_relocation, renumber, reorder,
)


def _cards(status, *ids):
    return [Card(id=i, status=status, order=n) for n, i in enumerate(ids)]


def _orders(placements, status):
    return {p.id: p.order for p in placements if p.status == status}


class TestNextOrder:
    def test_empty_column_starts_at_zero(self):
        assert next_order(None) == 0

    def test_appends_after_current_max(self):
        assert next_order(0) == 1
        assert next_order(7) == 8


class TestReorder:
    def test_swap_two_issues(self):
        todo = _cards("TODO", "a", "b")
        placements = reorder(todo, 0, 1)
        assert _orders(placements, "TODO") == {"b": 0, "a": 1}

    def test_reorder_leaves_track_alone(self):
        todo = [
            Card(id="a", status="TODO", order=0, track=["PURCHASE", "TODO"]),
            Card(id="b", status="TODO", order=1),
        ]
        placements = reorder(todo, 1, 0)
        by_id = {p.id: p for p in placements}
        assert by_id["a"].track == ["PURCHASE", "TODO"]
        assert by_id["b"].track == []

    def test_gapped_orders_become_dense(self):
        todo = [Card(id="a", status="TODO", order=3), Card(id="b", status="TODO", order=9),
                Card(id="c", status="TODO", order=40)]
        placements = reorder(todo, 2, 0)
        assert sorted(p.order for p in placements) == [0, 1, 2]
        assert [p.id for p in sorted(placements, key=lambda p: p.order)] == ["c", "a", "b"]

    def test_empty_column_writes_nothing(self):
        assert reorder([], 0, 0) == []
        assert renumber([]) == []

    def test_source_out_of_range(self):
        with pytest.raises(OrderingError):
            reorder(_cards("TODO", "a"), 3, 0)


class TestMove:
    def test_move_to_empty_column(self):
        todo = _cards("TODO", "a", "b")
        placements = move(todo, [], 0, 0, "PURCHASE")

        assert _orders(placements, "TODO") == {"b": 0}
        assert _orders(placements, "PURCHASE") == {"a": 0}
        moved = next(p for p in placements if p.id == "a")
        assert moved.track == ["PURCHASE"]

    def test_both_columns_renumbered_independently(self):
        todo = _cards("TODO", "a", "b", "c")
        store = _cards("STORE", "x", "y")
        placements = move(todo, store, 1, 1, "STORE")

        assert _orders(placements, "TODO") == {"a": 0, "c": 1}
        assert _orders(placements, "STORE") == {"x": 0, "b": 1, "y": 2}

    def test_move_onto_same_status_is_rejected(self):
        with pytest.raises(OrderingError):
            move(_cards("TODO", "a"), [], 0, 0, "TODO")

    def test_input_cards_not_mutated(self):
        todo = _cards("TODO", "a")
        move(todo, [], 0, 0, "SALES")
        assert todo[0].status == "TODO"
        assert todo[0].track == []


class TestPlanDrag:
    def test_drop_on_origin_is_noop(self):
        cards = _cards("TODO", "a", "b")
        assert plan_drag(cards, "TODO", 1, "TODO", 1) == []

    def test_columns_built_from_mixed_board(self):
        cards = [
            Card(id="p1", status="PAINTING", order=0),
            Card(id="t2", status="TODO", order=1),
            Card(id="t1", status="TODO", order=0),
        ]
        placements = plan_drag(cards, "TODO", 0, "PAINTING", 1)
        assert _orders(placements, "TODO") == {"t2": 0}
        assert _orders(placements, "PAINTING") == {"p1": 0, "t1": 1}

    def test_every_affected_column_is_dense(self):
        cards = _cards("TODO", *"abcdef") + _cards("WINDING", *"uvw")
        placements = plan_drag(cards, "TODO", 4, "WINDING", 0)
        for status, size in (("TODO", 5), ("WINDING", 4)):
            assert sorted(_orders(placements, status).values()) == list(range(size))

    def test_ties_keep_insertion_order(self):
        cards = [Card(id="first", status="TODO", order=0), Card(id="second", status="TODO", order=0)]
        assert [c.id for c in column(cards, "TODO")] == ["first", "second"]


class TestRelocation:
    def test_index_past_end_appends(self):
        assert clamp_index(_cards("TODO", "a", "b"), 10) == 2

    def test_negative_index_rejected(self):
        with pytest.raises(OrderingError):
            clamp_index([], -1)

    def test_relocation_cross_column(self):
        source = _cards("TODO", "a", "b")
        placements = plan_relocation(source, [], "a", "PURCHASE", 0)
        assert _orders(placements, "TODO") == {"b": 0}
        assert _orders(placements, "PURCHASE") == {"a": 0}
        assert next(p for p in placements if p.id == "a").track == ["PURCHASE"]

    def test_relocation_same_column(self):
        source = _cards("TODO", "a", "b", "c")
        placements = plan_relocation(source, source, "c", "TODO", 0)
        assert _orders(placements, "TODO") == {"c": 0, "a": 1, "b": 2}
        assert all(p.track == [] for p in placements)

    def test_relocation_same_column_to_end(self):
        source = _cards("TODO", "a", "b", "c")
        placements = plan_relocation(source, source, "a", "TODO", 99)
        assert _orders(placements, "TODO") == {"b": 0, "c": 1, "a": 2}

    def test_relocation_unknown_issue(self):
        with pytest.raises(OrderingError):
            plan_relocation(_cards("TODO", "a"), [], "zzz", "SALES", 0)
