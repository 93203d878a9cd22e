# quiz_core/phase_c.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union
import logging

from . import config
from .selector import QuestionSelector
from .types import Question, Decision
from .verdict import compute_verdict, compute_module_purity

log = logging.getLogger(__name__)

# decision slot -> (question type, order)
DECISION_FLOW: tuple[tuple[str, str, int], ...] = (
    ("CO1", "CO", 1),
    ("CO2", "CO", 2),
    ("CF", "CF", 3),
)


class SequencingError(RuntimeError):
    pass


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class AwaitingSeverity:
    line: str


@dataclass(frozen=True)
class Complete:
    pass


GateState = Union[Idle, AwaitingSeverity, Complete]


@dataclass
class PhaseCState:
    is_complete: bool
    current_line: Optional[str] = None
    current_decision: Optional[str] = None
    current_type: Optional[str] = None
    current_order: Optional[int] = None
    question: Optional[Question] = None
    awaiting_severity: bool = False
    error: Optional[str] = None


@dataclass
class ModuleRecord:
    decisions: List[Decision] = field(default_factory=list)
    question_ids: List[str] = field(default_factory=list)
    verdict: Optional[str] = None
    severity: Optional[str] = None
    severity_score: Optional[float] = None

    def done(self) -> bool:
        if len(self.decisions) < 3:
            return False
        return self.verdict != "F" or self.severity is not None


class PhaseCEngine:
    """Fixed CO1 -> CO2 -> CF flow over the non-A lines.

    A line whose verdict is F holds the whole phase in ``AwaitingSeverity``
    until ``record_severity`` is called for it.
    """

    def __init__(self, selector: QuestionSelector, lines: List[str]):
        self.selector = selector
        self.lines = list(lines)
        self.records: Dict[str, ModuleRecord] = {ln: ModuleRecord() for ln in self.lines}
        self.gate: GateState = Idle() if self.lines else Complete()

    def current_line(self) -> Optional[str]:
        if isinstance(self.gate, AwaitingSeverity):
            return self.gate.line
        for ln in self.lines:
            if not self.records[ln].done():
                return ln
        return None

    def get_current_state(self) -> PhaseCState:
        if isinstance(self.gate, AwaitingSeverity):
            line = self.gate.line
            probe = self.selector.get_severity_probe(line)
            if probe is None:
                return PhaseCState(is_complete=False, current_line=line, awaiting_severity=True,
                                   error=f"Missing severity probe for {line}; fix bank.")
            return PhaseCState(is_complete=False, current_line=line, awaiting_severity=True,
                               current_type="SEVERITY", question=probe)
        line = self.current_line()
        if line is None:
            return PhaseCState(is_complete=True)
        slot, qtype, order = DECISION_FLOW[len(self.records[line].decisions)]
        q = self.selector.select_module_question(line, qtype, order)
        if q is None:
            return PhaseCState(is_complete=False, current_line=line, current_decision=slot,
                               error=f"Missing question for {line} {slot}; fix bank or restart.")
        return PhaseCState(is_complete=False, current_line=line, current_decision=slot,
                           current_type=qtype, current_order=order, question=q)

    def record_pick(self, line: str, pick: str, question_id: str) -> Optional[str]:
        """Record the next decision for ``line``; returns the verdict once the third lands."""
        if isinstance(self.gate, AwaitingSeverity):
            raise SequencingError(f"Severity pending for {self.gate.line}")
        rec = self.records[line]
        if len(rec.decisions) >= 3:
            raise SequencingError(f"{line} already has three decisions")
        slot = DECISION_FLOW[len(rec.decisions)][0]
        rec.decisions.append(Decision(type=slot, pick=pick))  # type: ignore[arg-type]
        rec.question_ids.append(question_id)
        self.selector.record_pick("C", line, question_id, pick, decision_type=slot)
        log.debug("phase_c pick line=%s decision=%s pick=%s", line, slot, pick)
        if len(rec.decisions) < 3:
            return None
        co1, co2, cf = (d.pick for d in rec.decisions)
        rec.verdict = compute_verdict(co1, co2, cf)
        self.selector.record_verdict("C", line, rec.verdict)
        log.debug("phase_c verdict line=%s key=%s%s%s verdict=%s", line, co1, co2, cf, rec.verdict)
        if rec.verdict == "F":
            self.gate = AwaitingSeverity(line)
        else:
            self._settle()
        return rec.verdict

    def record_severity(self, level: str, score: Optional[float] = None) -> str:
        if not isinstance(self.gate, AwaitingSeverity):
            raise SequencingError("No pending severity selection")
        line = self.gate.line
        rec = self.records[line]
        rec.severity = level
        rec.severity_score = config.SEVERITY_SCORES[level] if score is None else score
        probe = self.selector.get_severity_probe(line)
        if probe is not None:
            self.selector.mark_used(probe.id)
        self.selector.record_severity_select(line, level, rec.severity_score)
        log.debug("phase_c severity line=%s level=%s score=%.1f", line, level, rec.severity_score)
        self.gate = Idle()
        self._settle()
        return line

    def _settle(self) -> None:
        if all(rec.done() for rec in self.records.values()):
            self.gate = Complete()
            self.selector.record_phase_complete("C")

    def undo_last_pick(self, line: str) -> Optional[Decision]:
        rec = self.records.get(line)
        if rec is None or not rec.decisions:
            return None
        dec = rec.decisions.pop()
        self.selector.unmark_used(rec.question_ids.pop())
        rec.verdict = None
        rec.severity = None
        rec.severity_score = None
        self.gate = Idle()
        return dec

    def undo_severity(self, line: str) -> None:
        rec = self.records[line]
        if rec.severity is None:
            return
        rec.severity = None
        rec.severity_score = None
        probe = self.selector.get_severity_probe(line)
        if probe is not None:
            self.selector.unmark_used(probe.id)
        self.gate = AwaitingSeverity(line)

    def pending_severity(self) -> Optional[str]:
        return self.gate.line if isinstance(self.gate, AwaitingSeverity) else None

    def is_complete(self) -> bool:
        return isinstance(self.gate, Complete)

    def get_verdict(self, line: str) -> Optional[str]:
        return self.records[line].verdict

    def get_severity(self, line: str) -> Optional[Dict[str, object]]:
        rec = self.records[line]
        if rec.severity is None:
            return None
        return {"level": rec.severity, "score": rec.severity_score}

    def get_all_verdicts(self) -> Dict[str, str]:
        return {ln: rec.verdict for ln, rec in self.records.items() if rec.verdict is not None}

    def get_module_purity(self, line: str) -> float:
        return compute_module_purity(self.records[line].decisions)

    def get_progress(self) -> Dict[str, int]:
        return {
            "completed": sum(1 for rec in self.records.values() if rec.done()),
            "total": len(self.lines),
        }

    def get_debug_info(self) -> Dict[str, object]:
        return {
            "current_line": self.current_line(),
            "completed_lines": [ln for ln, rec in self.records.items() if rec.done()],
            "line_decisions": [
                {
                    "line": ln,
                    "decisions": "".join(d.pick for d in rec.decisions),
                    "verdict": rec.verdict,
                    "severity": self.get_severity(ln),
                }
                for ln, rec in self.records.items()
            ],
            "pending_severity": self.pending_severity(),
        }
