from __future__ import annotations

import pytest

from quiz_core import storage
from quiz_core.engine import QuestionUnavailable, QuizEngine
from quiz_core.phase_c import PhaseCState
from tests.conftest import build_synthetic_bank

A_LINES = ("Control", "Truth", "Stress")


def _start(bank=None) -> QuizEngine:
    eng = QuizEngine(bank or build_synthetic_bank())
    for line in A_LINES:
        assert eng.toggle_line(line)
    eng.start_phase_b()
    return eng


def _play_bc(eng: QuizEngine, choice: str = "A", severity: str = "A") -> None:
    while eng.state.phase in ("B", "C"):
        st = eng.current_question()
        if isinstance(st, PhaseCState) and st.awaiting_severity:
            eng.answer(severity)
        else:
            eng.answer(choice)


def test_phase_a_rules(synthetic_bank):
    eng = QuizEngine(synthetic_bank)
    assert eng.progress() == (0, 3)
    for line in A_LINES:
        eng.toggle_line(line)
    assert eng.toggle_line("Pace") is False
    assert eng.progress() == (3, 3)
    eng.toggle_line("Stress")
    with pytest.raises(ValueError):
        eng.start_phase_b()
    eng.toggle_line("Stress")
    eng.start_phase_b()
    with pytest.raises(RuntimeError):
        eng.toggle_line("Pace")


def test_clean_run_end_to_end():
    eng = _start()
    st = eng.current_question()
    assert st.question.id == "B-Control-CO1"
    _play_bc(eng)

    assert eng.state.phase == "D"
    assert all(ln.B.C_evidence == pytest.approx(2.6) for ln in eng.state.a_lines())
    assert eng.state.family_verdicts == {ln: "C" for ln in eng.state.family_verdicts}
    assert len(eng.state.family_verdicts) == 7
    assert eng.state.sif_shortlist == [
        "Pace:Navigator", "Stress:Catalyst", "Bonding:Partner", "Boundary:Guardian",
    ]
    assert [s["face_id"] for s in eng.installed_statements] == eng.state.sif_shortlist

    with pytest.raises(ValueError):
        eng.choose_installed("Truth:Seeker")
    assert eng.choose_installed("Bonding:Partner") is None
    assert eng.state.phase == "E"
    assert eng.anchor_options() == [
        "Control", "Truth", "Stress", "Pace", "Bonding", "Boundary",
    ]

    eng.select_anchor("Control")
    assert eng.state.anchor_source == "E:TieBreak"
    assert eng.state.phase == "Archetype"
    q = eng.current_question()
    assert q.id == "ARCH-Control"

    out = eng.answer("B")
    assert out["archetype"] == "Sovereign"
    res = eng.state.sif_result
    assert eng.state.phase == "Summary"
    assert res.primary.face == "Control:Sovereign"
    assert res.secondary.face == "Bonding:Partner"
    assert res.prize == "Boundary:Equalizer"
    assert res.badge == "Not yet aligned"
    assert res.context["collision"] is False
    assert eng.router.history() == ["A", "B", "C", "D", "E", "Archetype", "Summary"]


def test_installed_choice_collision_is_resolved():
    eng = _start()
    _play_bc(eng)
    eng.choose_installed("Pace:Navigator")
    eng.select_anchor("Pace")
    assert eng.state.anchor_source == "E:SelfInstalled"
    eng.answer("B")
    res = eng.state.sif_result
    assert res.primary.face == "Pace:Navigator"
    assert res.secondary.face == "Stress:Catalyst"
    assert res.context["collision"] is True


def test_failing_run_gates_and_ties():
    eng = _start()
    _play_bc(eng, choice="B", severity="A")
    assert eng.state.phase == "D"
    verdicts = eng.state.family_verdicts
    assert {verdicts[ln] for ln in A_LINES} == {"O"}
    assert {verdicts[ln] for ln in ("Pace", "Boundary", "Recognition", "Bonding")} == {"F"}
    assert eng.sif.counters.sevF["Pace"] == 1.0
    assert eng.state.sif_shortlist == [
        "Control:Rebel", "Stress:Artisan", "Truth:Seeker", "Bonding:Provider",
    ]

    eng.choose_installed("Truth:Seeker")
    assert eng.state.phase == "E"
    assert eng.anchor_options()[:3] == list(A_LINES)


def test_mid_severity_downgrades_to_open():
    eng = _start()
    _play_bc(eng, choice="B", severity="B")
    assert eng.state.line("Pace").fSeverity == "mid"
    assert eng.state.family_verdicts["Pace"] == "O"


def test_auto_anchor_and_default_archetype():
    eng = _start()
    # Control duels clean, the other two A-lines open up
    for choice in ("A", "A", "B", "B", "B", "B"):
        eng.answer(choice)
    _play_bc(eng, choice="B", severity="C")
    eng.choose_installed(eng.state.sif_shortlist[0])
    assert eng.state.phase == "Archetype"
    assert eng.state.anchor == "Control"
    assert eng.state.anchor_source == "E:AutoAnchor"
    assert eng.router.history()[-2:] == ["D", "Archetype"]

    res = eng.finalize_archetype()
    assert eng.state.final_archetype == "Rebel"
    assert res.primary.face == "Control:Rebel"


def test_go_back_stays_inside_phase():
    eng = _start()
    assert eng.go_back() is False
    eng.answer("A")
    assert eng.progress() == (1, 6)
    assert eng.go_back() is True
    assert eng.progress() == (0, 6)
    ln = eng.state.line("Control")
    assert ln.B.picks == [] and ln.B.C_evidence == pytest.approx(0.6)
    assert eng.current_question().question.id == "B-Control-CO1"
    assert "B-Control-CO1" not in eng.state.used_questions

    for _ in range(6):
        eng.answer("A")
    assert eng.state.phase == "C"
    # phase B answers are committed once phase C starts
    assert eng.go_back() is False


def test_go_back_undoes_severity():
    eng = _start()
    for _ in range(6):
        eng.answer("A")
    for choice in ("B", "B", "B", "A"):
        eng.answer(choice)
    assert eng.state.line("Pace").fSeverity == "high"
    assert eng.go_back() is True
    assert eng.state.line("Pace").fSeverity is None
    assert eng.current_question().awaiting_severity
    assert eng.go_back() is True
    assert eng.current_question().question.id == "C-Pace-CF3"


def test_reanswered_severity_uses_latest_choice():
    eng = _start()
    for _ in range(6):
        eng.answer("A")
    for choice in ("B", "B", "B", "B"):
        eng.answer(choice)
    assert eng.state.line("Pace").fSeverity == "mid"
    assert eng.go_back() is True
    assert eng.sif.counters.sevF["Pace"] == 0.0
    eng.answer("B")
    _play_bc(eng)
    assert eng.sif.counters.sevF["Pace"] == 0.5
    assert eng.state.family_verdicts["Pace"] == "O"


def test_answer_outside_question_phases():
    eng = QuizEngine(build_synthetic_bank())
    with pytest.raises(RuntimeError):
        eng.answer("A")


def test_missing_bank_question_blocks_answers():
    eng = _start(build_synthetic_bank(drop=[("Control", "B", "CO", 1)]))
    st = eng.current_question()
    assert st.error == "Missing question for Control Round 1; fix bank or restart."
    with pytest.raises(QuestionUnavailable):
        eng.answer("A")


def test_snapshot_replay_mid_session():
    bank = build_synthetic_bank()
    eng = _start(bank)
    for choice in ("A", "B", "B", "A", "A", "A", "A", "B"):
        eng.answer(choice)
    snap = eng.snapshot()
    assert snap["phase"] == "C"

    again = QuizEngine.from_snapshot(snap, bank)
    assert again.session_id == eng.session_id
    assert again.state.phase == "C"
    assert [ln.to_dict() for ln in again.state.lines] == [ln.to_dict() for ln in eng.state.lines]
    assert again.state.used_questions == eng.state.used_questions
    assert again.current_question().question.id == eng.current_question().question.id


def test_save_and_resume_finished_session():
    bank = build_synthetic_bank()
    eng = _start(bank)
    _play_bc(eng)
    eng.choose_installed("Bonding:Partner")
    eng.select_anchor("Truth")
    eng.answer("A")
    eng.save()

    assert eng.session_id in storage.list_sessions()
    back = QuizEngine.resume(eng.session_id, bank)
    assert back is not None
    assert back.state.phase == "Summary"
    assert back.state.sif_result.to_dict()["secondary"] == eng.state.sif_result.to_dict()["secondary"]
    assert back.state.anchor == "Truth"
    assert QuizEngine.resume("quiz_missing", bank) is None


def test_telemetry_flows_through_engine():
    eng = _start()
    _play_bc(eng)
    types = [e["type"] for e in eng.telemetry()]
    assert types.count("phase_complete") == 2
    assert types.count("compute_verdict") == 4
    assert types.count("pick_option") == 6 + 12
    # current_question() is polled before every answer; each question is viewed once
    assert types.count("view_question") == 6 + 12


def test_state_container_helpers(synthetic_bank):
    eng = QuizEngine(synthetic_bank)
    ln = eng.update_line("Pace", {"fSeverity": "low", "fSeverityScore": 0.0})
    assert ln.fSeverityScore == 0.0
    with pytest.raises(AttributeError):
        eng.update_line("Pace", {"nope": 1})

    eng.add_used_question("C-Pace-CO1")
    assert eng.selector.select_module_question("Pace", "CO", 1) is None
    eng.remove_used_question("C-Pace-CO1")
    assert eng.selector.select_module_question("Pace", "CO", 1).id == "C-Pace-CO1"
    assert eng.state.used_questions == set()

    eng.set_anchor("Truth", "E:TieBreak")
    eng.reset_quiz()
    assert eng.state.anchor is None
    assert eng.state.phase == "A"
