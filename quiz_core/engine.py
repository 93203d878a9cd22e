# quiz_core/engine.py
from __future__ import annotations
from dataclasses import asdict
from typing import Dict, List, Optional, Union
import logging

from . import config, storage
from .config import MAX_A_LINES, DEBUG_TRACE, TRACE_FIELDS
from .faces import LINES, FACE_TO_FAMILY, FAMILY_TO_FACES, FACE_ANCHOR, anchor_face_for
from .phase_b import PhaseBEngine, PhaseBState
from .phase_c import PhaseCEngine, PhaseCState
from .phase_d import PhaseDEngine, VerdictResult
from .phase_e import PhaseEEngine, LineResult
from .question_bank import load_bank
from .router import PhaseRouter
from .selector import QuestionSelector
from .sif import SIFEngine
from .types import Decision, HistoryEntry, LineState, Option, Question, QuizState, SIFResult
from .verdict import compute_module_purity


log = logging.getLogger(__name__)


class QuestionUnavailable(RuntimeError):
    """Raised when answering while the current phase is in a bank error state."""


def _emit_trace(**values: object) -> None:
    if not DEBUG_TRACE:
        return
    ordered = []
    for key in TRACE_FIELDS:
        if key in values:
            ordered.append(f"{key}={values[key]}")
    if ordered:
        log.info("trace %s", " ".join(str(val) for val in ordered))


def _pick_of(option: Option, question: Question) -> str:
    if option.pick not in ("C", "O", "F"):
        raise ValueError(f"option {option.key} of {question.id} carries no pick")
    return option.pick  # type: ignore[return-value]


class QuizEngine:
    """Owns the QuizState and drives every phase engine in order.

    All calls are synchronous.  Out-of-order calls (answering in the wrong
    phase, picking past completion) raise instead of being silently ignored.
    """

    def __init__(self, bank: Optional[List[Question]] = None, *, session_id: Optional[str] = None):
        self.bank = bank if bank is not None else load_bank()
        self.session_id = session_id or storage.new_session_id()
        self.reset_quiz()

    # ---- state container ----
    def reset_quiz(self) -> None:
        self.sif = SIFEngine()
        self.state = QuizState(lines=[LineState(id=ln) for ln in LINES], sif_counters=self.sif.counters)
        self.selector = QuestionSelector(self.bank)
        self.router = PhaseRouter()
        self.phase_b: Optional[PhaseBEngine] = None
        self.phase_c: Optional[PhaseCEngine] = None
        self.phase_d = PhaseDEngine()
        self.phase_e = PhaseEEngine()
        self.verdicts: List[VerdictResult] = []
        self.installed_statements: List[Dict[str, object]] = []
        log.debug("quiz reset session=%s", self.session_id)

    def update_line(self, line_id: str, update: Dict[str, object]) -> LineState:
        ln = self.state.line(line_id)
        for key, val in update.items():
            if not hasattr(ln, key):
                raise AttributeError(f"LineState has no field {key!r}")
            setattr(ln, key, val)
        return ln

    def update_phase(self, phase: str) -> None:
        self.router.transition(phase)
        self.state.phase = phase  # type: ignore[assignment]

    def set_anchor(self, anchor: Optional[str], source: Optional[str] = None) -> None:
        self.state.anchor = anchor
        self.state.anchor_source = source

    def add_used_question(self, question_id: str) -> None:
        self.state.used_questions.add(question_id)
        self.selector.mark_used(question_id)

    def remove_used_question(self, question_id: str) -> None:
        self.state.used_questions.discard(question_id)
        self.selector.unmark_used(question_id)

    def add_question_to_history(self, phase: str, line_id: str, question_id: str, choice: str,
                                pick: Optional[str] = None) -> HistoryEntry:
        entry = HistoryEntry(phase=phase, line_id=line_id, question_id=question_id, choice=choice,  # type: ignore[arg-type]
                             pick=pick, t=storage.utcnow_iso())
        self.state.question_history.append(entry)
        return entry

    def record_answer_with_effects(self, question: Question, choice: str, family: Optional[str] = None) -> Option:
        return self.sif.record_answer_with_effects(question, choice, family)

    def set_family_verdicts(self, verdicts: Dict[str, str]) -> None:
        self.state.family_verdicts = dict(verdicts)  # type: ignore[assignment]

    def set_sif_shortlist(self, shortlist: List[str]) -> None:
        self.state.sif_shortlist = list(shortlist)

    def set_installed_choice(self, face: Optional[str]) -> None:
        self.state.installed_choice = face

    def add_archetype_answer(self, line_id: str, archetype: str) -> None:
        self.state.archetype_answers[line_id] = archetype

    def set_final_archetype(self, archetype: Optional[str]) -> None:
        self.state.final_archetype = archetype

    def calculate_sif(self, primary_family: str, primary_face: str, prize_face: Optional[str] = None) -> SIFResult:
        verdicts = dict(self.state.family_verdicts)
        if not verdicts:
            verdicts = {ln.id: ln.verdict for ln in self.state.lines if ln.verdict}
        result = self.sif.calculate_sif(primary_family, primary_face, verdicts, prize_face)
        self.state.sif_result = result
        return result

    def finalize_sif_with_install(self, anchor_face: str) -> SIFResult:
        result = self.sif.finalize_sif_with_install(
            anchor_face, self.state.installed_choice or "", self.state.sif_shortlist, self.sif.faces_by_il()
        )
        self.state.sif_result = result
        return result

    # ---- phase A ----
    def toggle_line(self, line_id: str) -> bool:
        if self.state.phase != "A":
            raise RuntimeError("A-lines can only change during phase A")
        ln = self.state.line(line_id)
        if not ln.selectedA and len(self.state.a_lines()) >= MAX_A_LINES:
            return False
        ln.selectedA = not ln.selectedA
        return True

    def start_phase_b(self) -> PhaseBState:
        a_lines = [ln.id for ln in self.state.a_lines()]
        if len(a_lines) != MAX_A_LINES:
            raise ValueError(f"exactly {MAX_A_LINES} A-lines required, got {len(a_lines)}")
        for ln in self.state.a_lines():
            ln.B.picks = []
            ln.B.C_evidence = config.FACE_PURITY_SEED
        self.phase_b = PhaseBEngine(self.selector, a_lines)
        self.update_phase("B")
        return self.phase_b.get_current_state()

    # ---- driving ----
    def current_question(self) -> Union[PhaseBState, PhaseCState, Question, None]:
        phase = self.state.phase
        if phase == "B" and self.phase_b is not None:
            return self.phase_b.get_current_state()
        if phase == "C" and self.phase_c is not None:
            return self.phase_c.get_current_state()
        if phase == "Archetype" and self.state.anchor:
            return self.selector.get_archetype_question(self.state.anchor)
        return None

    def answer(self, choice: str) -> Dict[str, object]:
        phase = self.state.phase
        if phase == "B":
            return self._answer_b(choice)
        if phase == "C":
            return self._answer_c(choice)
        if phase == "Archetype":
            return self._answer_archetype(choice)
        raise RuntimeError(f"no question to answer in phase {phase}")

    def _answer_b(self, choice: str) -> Dict[str, object]:
        assert self.phase_b is not None
        st = self.phase_b.get_current_state()
        if st.error or st.question is None:
            raise QuestionUnavailable(st.error or "phase B complete")
        q, line = st.question, st.current_line
        option = self.record_answer_with_effects(q, choice, line)
        pick = _pick_of(option, q)
        self.phase_b.record_pick(line, pick, q.id)
        ln = self.state.line(line)
        ln.B.picks.append(pick)  # type: ignore[arg-type]
        if pick == "C":
            ln.B.C_evidence = round(ln.B.C_evidence + 1.0, 6)
        self.state.used_questions.add(q.id)
        self.add_question_to_history("B", line, q.id, choice, pick)
        _emit_trace(phase="B", line=line, question_id=q.id, decision=st.current_round, pick=pick,
                    purity=self.phase_b.get_face_purity(line))
        out: Dict[str, object] = {"line": line, "pick": pick, "purity": self.phase_b.get_face_purity(line)}
        if self.phase_b.is_complete():
            self.start_phase_c()
        return out

    def start_phase_c(self) -> PhaseCState:
        self.phase_c = PhaseCEngine(self.selector, [ln.id for ln in self.state.non_a_lines()])
        self.update_phase("C")
        return self.phase_c.get_current_state()

    def _answer_c(self, choice: str) -> Dict[str, object]:
        assert self.phase_c is not None
        st = self.phase_c.get_current_state()
        if st.error or st.question is None:
            raise QuestionUnavailable(st.error or "phase C complete")
        q, line = st.question, st.current_line
        if st.awaiting_severity:
            option = q.option(choice)
            if option is None or option.level is None:
                raise ValueError(f"Unknown severity option {choice!r} for {q.id}")
            self.record_severity(option.level, question_id=q.id, choice=choice)
            return {"line": line, "severity": option.level}
        option = self.record_answer_with_effects(q, choice, line)
        pick = _pick_of(option, q)
        slot = st.current_decision
        verdict = self.phase_c.record_pick(line, pick, q.id)
        ln = self.state.line(line)
        ln.mod.decisions.append(Decision(type=slot, pick=pick))  # type: ignore[arg-type]
        if verdict is not None:
            ln.verdict = verdict  # type: ignore[assignment]
        self.state.used_questions.add(q.id)
        self.add_question_to_history("C", line, q.id, choice, pick)
        _emit_trace(phase="C", line=line, question_id=q.id, decision=slot, pick=pick, verdict=verdict)
        if self.phase_c.is_complete():
            self.enter_phase_d()
        return {"line": line, "decision": slot, "pick": pick, "verdict": verdict}

    def record_severity(self, level: str, *, question_id: Optional[str] = None, choice: Optional[str] = None) -> str:
        if self.phase_c is None:
            raise RuntimeError("severity can only be recorded during phase C")
        line = self.phase_c.record_severity(level)
        sev = self.phase_c.get_severity(line) or {}
        score = float(sev.get("score", 0.0))
        ln = self.state.line(line)
        ln.fSeverity = level  # type: ignore[assignment]
        ln.fSeverityScore = score
        self.sif.record_severity_probe(line, score)
        probe = self.selector.get_severity_probe(line)
        qid = question_id or (probe.id if probe else f"{line}-severity")
        if choice is None and probe is not None:
            choice = next((o.key for o in probe.options if o.level == level), None)
        self.state.used_questions.add(qid)
        self.add_question_to_history("C", line, qid, choice or level)
        _emit_trace(phase="C", line=line, question_id=qid, severity=level)
        if self.phase_c.is_complete():
            self.enter_phase_d()
        return line

    # ---- phase D ----
    def enter_phase_d(self) -> List[str]:
        self.update_phase("D")
        self.verdicts = self.phase_d.compute_verdicts(self.state.lines, self.sif.counters.sevF)
        for v in self.verdicts:
            self.state.line(v.line_id).verdict = v.verdict  # type: ignore[assignment]
        self.set_family_verdicts(self.phase_d.verdict_map())
        shortlist = self.sif.build_phase_d_install_shortlist(self.state.lines)
        self.set_sif_shortlist(shortlist)
        self.installed_statements = self.sif.get_installed_statements(shortlist)
        log.debug("phase_d verdicts=%s shortlist=%s", self.state.family_verdicts, shortlist)
        return shortlist

    def choose_installed(self, face: str) -> Optional[str]:
        if self.state.phase != "D":
            raise RuntimeError("install choice belongs to phase D")
        if face not in self.state.sif_shortlist:
            raise ValueError(f"{face} is not on the install shortlist")
        self.set_installed_choice(face)
        self.sif.record_user_installed(face)
        self.add_question_to_history("D", FACE_TO_FAMILY[face], "install-choice", face)
        return self.resolve_anchor()

    # ---- phase E ----
    def line_results(self) -> List[LineResult]:
        return [
            LineResult(
                line=ln.id,
                is_a_line=ln.selectedA,
                face_purity=ln.B.C_evidence if ln.selectedA else 0.0,
                module_purity=0.0 if ln.selectedA else compute_module_purity(ln.mod.decisions),
            )
            for ln in self.state.lines
        ]

    def resolve_anchor(self) -> Optional[str]:
        """Auto-commit a lone candidate; otherwise move to phase E for a tie-break."""
        st = self.phase_e.enter(self.line_results(), self.state.sif_shortlist)
        if self.phase_e.has_anchor():
            self.set_anchor(st.anchor, st.source)
            self.update_phase("Archetype")
            return st.anchor
        self.update_phase("E")
        return None

    def anchor_options(self) -> List[str]:
        return self.phase_e.options()

    def select_anchor(self, line_id: str) -> str:
        if self.state.phase != "E":
            raise RuntimeError("anchor tie-break belongs to phase E")
        anchor = self.phase_e.select_anchor(line_id)
        self.set_anchor(anchor, self.phase_e.state.source)
        self.add_question_to_history("E", anchor, "anchor-tiebreak", anchor)
        self.update_phase("Archetype")
        return anchor

    # ---- archetype / summary ----
    def default_archetype(self, line_id: str) -> str:
        ln = self.state.line(line_id)
        if ln.selectedA:
            return str(FACE_ANCHOR[line_id]["CO1"])
        best_face, best = anchor_face_for(line_id), 0.0
        for face in FAMILY_TO_FACES[line_id]:
            count = self.sif.counters.faceC.get(face, 0)
            if count > best:
                best_face, best = face, count
        return best_face.split(":", 1)[1]

    def _answer_archetype(self, choice: str) -> Dict[str, object]:
        anchor = self.state.anchor
        q = self.selector.get_archetype_question(anchor) if anchor else None
        if q is None:
            raise QuestionUnavailable(f"Missing archetype question for {anchor}")
        option = q.option(choice)
        if option is None or not option.archetype:
            raise ValueError(f"Unknown archetype option {choice!r} for {q.id}")
        self.add_archetype_answer(anchor, option.archetype)  # type: ignore[arg-type]
        self.add_used_question(q.id)
        self.add_question_to_history("Archetype", anchor, q.id, choice)  # type: ignore[arg-type]
        result = self.finalize_archetype()
        return {"line": anchor, "archetype": option.archetype, "result": result.to_dict()}

    def finalize_archetype(self) -> SIFResult:
        if self.state.phase != "Archetype" or not self.state.anchor:
            raise RuntimeError("anchor must be committed before the archetype step")
        anchor = self.state.anchor
        archetype = self.state.archetype_answers.get(anchor) or self.default_archetype(anchor)
        self.set_final_archetype(archetype)
        primary_face = f"{anchor}:{archetype}"
        if self.state.installed_choice and self.state.sif_shortlist:
            result = self.finalize_sif_with_install(primary_face)
        else:
            result = self.calculate_sif(anchor, primary_face)
        self.selector.record_phase_complete("Archetype")
        self.update_phase("Summary")
        log.debug("quiz summary primary=%s secondary=%s badge=%s", primary_face, result.secondary.face, result.badge)
        return result

    # ---- navigation ----
    def go_back(self) -> bool:
        """Undo the last answer of the current phase; earlier phases stay committed."""
        hist = self.state.question_history
        if not hist or hist[-1].phase != self.state.phase:
            return False
        entry = hist.pop()
        ln = self.state.line(entry.line_id)
        if entry.phase == "B" and self.phase_b is not None:
            pick = self.phase_b.undo_last_pick(entry.line_id)
            if ln.B.picks:
                ln.B.picks.pop()
            if pick == "C":
                ln.B.C_evidence = round(ln.B.C_evidence - 1.0, 6)
        elif entry.phase == "C" and self.phase_c is not None:
            if entry.pick is None:
                self.phase_c.undo_severity(entry.line_id)
                if ln.fSeverityScore is not None:
                    self.sif.undo_severity_probe(entry.line_id, ln.fSeverityScore)
                ln.fSeverity = None
                ln.fSeverityScore = None
            else:
                self.phase_c.undo_last_pick(entry.line_id)
                if ln.mod.decisions:
                    ln.mod.decisions.pop()
                ln.verdict = None
        else:
            hist.append(entry)
            return False
        self.state.used_questions.discard(entry.question_id)
        log.debug("go_back phase=%s line=%s question=%s", entry.phase, entry.line_id, entry.question_id)
        return True

    def progress(self) -> tuple[int, int]:
        phase = self.state.phase
        if phase == "A":
            return len(self.state.a_lines()), MAX_A_LINES
        if phase == "B" and self.phase_b is not None:
            p = self.phase_b.get_progress()
            return p["completed"], p["total"]
        if phase == "C" and self.phase_c is not None:
            p = self.phase_c.get_progress()
            return p["completed"], p["total"]
        if phase == "D":
            return (1 if self.state.installed_choice else 0), 1
        if phase == "E":
            return (1 if self.state.anchor else 0), 1
        if phase == "Archetype":
            return (1 if self.state.final_archetype else 0), 1
        return 1, 1

    # ---- persistence ----
    def snapshot(self) -> Dict[str, object]:
        return {
            "sessionId": self.session_id,
            "phase": self.state.phase,
            "selectedALines": [ln.id for ln in self.state.a_lines()],
            "nonALines": [ln.id for ln in self.state.non_a_lines()],
            "usedQuestions": sorted(self.state.used_questions),
            "questionHistory": [asdict(h) for h in self.state.question_history],
            "phaseBState": self.phase_b.get_debug_info() if self.phase_b else {},
            "phaseCState": self.phase_c.get_debug_info() if self.phase_c else {},
            "lines": [ln.to_dict() for ln in self.state.lines],
            "anchor": self.state.anchor,
            "installedChoice": self.state.installed_choice,
            "sifShortlist": list(self.state.sif_shortlist),
        }

    @classmethod
    def from_snapshot(cls, snap: Dict[str, object], bank: Optional[List[Question]] = None) -> "QuizEngine":
        """Rebuild a session by replaying its answer log against a fresh engine."""
        eng = cls(bank, session_id=str(snap["sessionId"]))
        for line_id in snap.get("selectedALines", []):  # type: ignore[union-attr]
            eng.toggle_line(line_id)
        history = list(snap.get("questionHistory", []))  # type: ignore[arg-type]
        if snap.get("phase") != "A":
            eng.start_phase_b()
        for h in history:
            phase = h["phase"]
            if phase in ("B", "C", "Archetype"):
                eng.answer(h["choice"])
            elif phase == "D":
                eng.choose_installed(h["choice"])
            elif phase == "E":
                eng.select_anchor(h["choice"])
        log.debug("session resumed session=%s phase=%s replayed=%d", eng.session_id, eng.state.phase, len(history))
        return eng

    def save(self) -> Dict[str, object]:
        return storage.save_snapshot(self.session_id, self.snapshot())

    @classmethod
    def resume(cls, session_id: str, bank: Optional[List[Question]] = None) -> Optional["QuizEngine"]:
        snap = storage.load_snapshot(session_id)
        if snap is None:
            return None
        return cls.from_snapshot(snap, bank)

    def telemetry(self) -> List[Dict[str, object]]:
        return [evt.to_dict() for evt in self.selector.get_telemetry_events()]
