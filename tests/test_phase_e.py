from __future__ import annotations

import pytest

from quiz_core.phase_e import CommitStatus, LineResult, PhaseEEngine, build_candidates


def _a(line, purity):
    return LineResult(line=line, is_a_line=True, face_purity=purity)


def _m(line, purity):
    return LineResult(line=line, is_a_line=False, module_purity=purity)


def test_a26_lines_take_priority():
    lines = [_a("Control", 2.6), _a("Truth", 2.2), _m("Pace", 3.6)]
    assert build_candidates(lines) == ["Control"]


def test_top_purity_tie_without_a26():
    lines = [_a("Control", 1.6), _a("Truth", 2.2), _m("Pace", 3.6), _m("Bonding", 3.6), _m("Stress", 1.6)]
    assert build_candidates(lines) == ["Pace", "Bonding"]


def test_single_candidate_auto_commits():
    eng = PhaseEEngine()
    st = eng.enter([_a("Control", 2.6), _a("Truth", 1.8)])
    assert st.anchor == "Control"
    assert st.source == "E:AutoAnchor"
    assert st.status is CommitStatus.COMMITTED
    assert not eng.needs_tie_break()


def test_tie_offers_self_installed_lines():
    lines = [_a("Control", 2.6), _a("Truth", 2.6), _m("Pace", 1.6), _m("Bonding", 3.6)]
    eng = PhaseEEngine()
    eng.enter(lines, ["Pace:Navigator", "Control:Sovereign", "Bonding:Partner", "Pace:Visionary"])
    assert eng.needs_tie_break()
    assert eng.options() == ["Control", "Truth", "Pace", "Bonding"]

    assert eng.select_anchor("Pace") == "Pace"
    assert eng.state.source == "E:SelfInstalled"
    # a second submit is ignored
    assert eng.select_anchor("Truth") == "Pace"
    assert eng.get_state()["status"] == "COMMITTED"


def test_tie_break_source():
    eng = PhaseEEngine()
    eng.enter([_a("Control", 2.6), _a("Truth", 2.6)])
    eng.select_anchor("Truth")
    assert eng.get_anchor() == "Truth"
    assert eng.state.source == "E:TieBreak"
    assert eng.state.decided_at


def test_invalid_selection_leaves_engine_idle():
    eng = PhaseEEngine()
    eng.enter([_a("Control", 2.6), _a("Truth", 2.6)])
    with pytest.raises(ValueError, match="Invalid selection: Stress not in candidates"):
        eng.select_anchor("Stress")
    assert eng.state.status is CommitStatus.IDLE
    assert not eng.has_anchor()


def test_enter_is_built_once():
    eng = PhaseEEngine()
    eng.enter([_a("Control", 2.6), _a("Truth", 2.6)])
    st = eng.enter([_a("Stress", 2.6)])
    assert st.candidates == ["Control", "Truth"]
    eng.reset()
    assert eng.enter([_a("Stress", 2.6)]).anchor == "Stress"
