from __future__ import annotations

import pytest

from quiz_core.router import PhaseRouter, PhaseTransitionError


def test_forward_path_with_tie_break():
    r = PhaseRouter()
    for phase in ("B", "C", "D", "E", "Archetype", "Summary"):
        assert r.transition(phase) == phase
    assert r.history() == ["A", "B", "C", "D", "E", "Archetype", "Summary"]


def test_auto_anchor_skips_e():
    r = PhaseRouter()
    for phase in ("B", "C", "D", "Archetype"):
        r.transition(phase)
    assert not r.can_transition("E")


def test_rejects_skips_and_reentry():
    r = PhaseRouter()
    with pytest.raises(PhaseTransitionError, match="Invalid transition A -> C"):
        r.transition("C")
    r.transition("B")
    assert not r.can_transition("A")
    assert not r.can_transition("B")


def test_listeners_and_unsubscribe():
    r = PhaseRouter()
    seen = []
    unsubscribe = r.on_change(lambda prev, to: seen.append((prev, to)))
    r.transition("B")
    unsubscribe()
    r.transition("C")
    assert seen == [("A", "B")]


def test_restore_and_reset():
    r = PhaseRouter()
    r.restore(["A", "B", "C"])
    assert r.current == "C"
    assert r.can_transition("D")
    r.reset()
    assert r.history() == ["A"]
