# quiz_core/phase_b.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging

from .selector import QuestionSelector
from .types import Question
from .verdict import compute_face_purity

log = logging.getLogger(__name__)


@dataclass
class PhaseBState:
    is_complete: bool
    current_line: Optional[str] = None
    current_round: Optional[int] = None
    current_type: Optional[str] = None
    current_order: Optional[int] = None
    question: Optional[Question] = None
    error: Optional[str] = None


@dataclass
class DuelRecord:
    picks: List[str] = field(default_factory=list)
    question_ids: List[str] = field(default_factory=list)
    purity: Optional[float] = None


def round_two_key(pick1: str) -> tuple[str, int]:
    """Round 2 is a CF question after an O opener, otherwise the second CO."""
    return ("CF", 1) if pick1 == "O" else ("CO", 2)


class PhaseBEngine:
    """Two-pick duel flow over the A-lines, one line at a time."""

    def __init__(self, selector: QuestionSelector, a_lines: List[str]):
        self.selector = selector
        self.a_lines = list(a_lines)
        self.records: Dict[str, DuelRecord] = {ln: DuelRecord() for ln in self.a_lines}
        self._idx = 0

    def _advance(self) -> None:
        while self._idx < len(self.a_lines) and len(self.records[self.a_lines[self._idx]].picks) >= 2:
            self._idx += 1

    def current_line(self) -> Optional[str]:
        self._advance()
        if self._idx >= len(self.a_lines):
            return None
        return self.a_lines[self._idx]

    def get_current_state(self) -> PhaseBState:
        line = self.current_line()
        if line is None:
            return PhaseBState(is_complete=True)
        rec = self.records[line]
        if not rec.picks:
            q = self.selector.select_duel_question(line, "CO", 1)
            if q is None:
                return PhaseBState(is_complete=False, current_line=line, current_round=1,
                                   error=f"Missing question for {line} Round 1; fix bank or restart.")
            return PhaseBState(is_complete=False, current_line=line, current_round=1,
                               current_type="CO", current_order=1, question=q)
        qtype, order = round_two_key(rec.picks[0])
        q = self.selector.select_duel_question(line, qtype, order)
        if q is None:
            return PhaseBState(is_complete=False, current_line=line, current_round=2,
                               error=f"Missing question for {line} Round 2; fix bank or restart.")
        return PhaseBState(is_complete=False, current_line=line, current_round=2,
                           current_type=qtype, current_order=order, question=q)

    def record_pick(self, line: str, pick: str, question_id: str) -> None:
        rec = self.records[line]
        rec.picks.append(pick)
        rec.question_ids.append(question_id)
        self.selector.record_pick("B", line, question_id, pick)
        if len(rec.picks) == 2:
            rec.purity = compute_face_purity(rec.picks[0], rec.picks[1])
            log.debug("phase_b complete line=%s picks=%s purity=%.2f", line, "".join(rec.picks), rec.purity)
        else:
            log.debug("phase_b pick line=%s round=%d pick=%s", line, len(rec.picks), pick)
        if self.is_complete():
            self.selector.record_phase_complete("B")

    def undo_last_pick(self, line: str) -> Optional[str]:
        rec = self.records.get(line)
        if rec is None or not rec.picks:
            return None
        pick = rec.picks.pop()
        qid = rec.question_ids.pop()
        rec.purity = None
        self.selector.unmark_used(qid)
        self._idx = min(self._idx, self.a_lines.index(line))
        return pick

    def get_face_purity(self, line: str) -> Optional[float]:
        rec = self.records.get(line)
        return rec.purity if rec else None

    def get_all_face_purities(self) -> Dict[str, float]:
        return {ln: rec.purity for ln, rec in self.records.items() if rec.purity is not None}

    def get_picks(self, line: str) -> List[str]:
        return list(self.records[line].picks)

    def is_complete(self) -> bool:
        return all(len(rec.picks) >= 2 for rec in self.records.values())

    def get_progress(self) -> Dict[str, int]:
        return {
            "completed": sum(len(rec.picks) for rec in self.records.values()),
            "total": 2 * len(self.a_lines),
        }

    def get_debug_info(self) -> Dict[str, object]:
        return {
            "current_line": self.current_line(),
            "lines": {
                ln: {"picks": list(rec.picks), "purity": rec.purity}
                for ln, rec in self.records.items()
            },
        }
