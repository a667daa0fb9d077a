# tests/test_workflow.py — Master sequence and track history
import pytest

from models import IssueStatus
from workflow import (
    STATUS_SEQUENCE, append_transition, describe_track, extends_track,
    is_repeat_visit, normalize_track, phase_number, status_rank,
)


def test_master_sequence_order():
    assert [s.value for s in STATUS_SEQUENCE] == [
        "TODO", "PURCHASE", "STORE", "BUFFING", "PAINTING",
        "WINDING", "ASSEMBLY", "PACKING", "SALES",
    ]


def test_phase_numbers_are_one_based():
    assert phase_number(IssueStatus.TODO) == 1
    assert phase_number("PAINTING") == 5
    assert phase_number("SALES") == 9
    assert status_rank("STORE") < status_rank("BUFFING")


def test_unknown_status_rejected():
    with pytest.raises(ValueError):
        phase_number("DONE")


def test_null_track_is_empty():
    assert normalize_track(None) == []
    assert append_transition(None, "PURCHASE") == ["PURCHASE"]


def test_append_keeps_repeats_and_does_not_mutate():
    track = ["PURCHASE", "PAINTING", "ASSEMBLY"]
    new_track = append_transition(track, IssueStatus.PAINTING)
    assert new_track == ["PURCHASE", "PAINTING", "ASSEMBLY", "PAINTING"]
    assert track == ["PURCHASE", "PAINTING", "ASSEMBLY"]


def test_successive_moves_grow_by_one():
    track = []
    for status in ("PURCHASE", "STORE", "PURCHASE", "STORE"):
        before = len(track)
        track = append_transition(track, status)
        assert len(track) == before + 1
        assert track[-1] == status


def test_repeat_visit_detection():
    track = ["PURCHASE", "PAINTING", "ASSEMBLY", "PAINTING"]
    assert not is_repeat_visit(track, 1)
    assert is_repeat_visit(track, 3)
    with pytest.raises(IndexError):
        is_repeat_visit(track, 4)


def test_describe_track():
    entries = describe_track(["STORE", "BUFFING", "STORE"])
    assert [e["phase"] for e in entries] == [3, 4, 3]
    assert [e["is_repeat"] for e in entries] == [False, False, True]
    assert [e["is_current"] for e in entries] == [False, False, True]
    assert entries[1]["name"] == "Buffing"


def test_extends_track():
    assert extends_track(None, ["TODO"])
    assert extends_track(["PURCHASE"], ["PURCHASE", "STORE"])
    assert not extends_track(["PURCHASE", "STORE"], ["STORE"])
