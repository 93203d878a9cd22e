# quiz_core/selector.py
from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

from . import config
from .types import Question

log = logging.getLogger(__name__)


@dataclass
class TelemetryEvent:
    type: str
    phase: str
    line_id: str
    question_id: Optional[str] = None
    decision_type: Optional[str] = None
    pick: Optional[str] = None
    verdict: Optional[str] = None
    level: Optional[str] = None
    score: Optional[float] = None
    ts: str = ""

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


class QuestionSelector:
    """Exact-key question lookup with a no-repeat guard and no fallbacks.

    Buckets are keyed by ``(line, type, order)``.  When a bucket is empty or
    every question in it has been used, the selector returns ``None`` and the
    caller must surface a hard error instead of substituting anything.
    """

    def __init__(self, questions: List[Question]):
        self.module_index: Dict[str, Dict[str, Dict[int, List[Question]]]] = {}
        self.duel_index: Dict[str, Dict[str, Dict[int, List[Question]]]] = {}
        self.severity_index: Dict[str, Question] = {}
        self.archetype_index: Dict[str, List[Question]] = {}
        self.used: set = set()
        self._viewed: set = set()
        self._events: List[TelemetryEvent] = []
        for q in questions:
            if q.type == "SEVERITY":
                if q.phase == "C":
                    self.severity_index.setdefault(q.line, q)
            elif q.type == "ARCHETYPE":
                self.archetype_index.setdefault(q.line, []).append(q)
            elif q.phase == "B":
                self.duel_index.setdefault(q.line, {}).setdefault(q.type, {}).setdefault(q.order, []).append(q)
            elif q.phase == "C":
                self.module_index.setdefault(q.line, {}).setdefault(q.type, {}).setdefault(q.order, []).append(q)
        log.debug(
            "selector built duel_lines=%d module_lines=%d severity=%d",
            len(self.duel_index), len(self.module_index), len(self.severity_index),
        )

    def _first_unused(self, bucket: List[Question]) -> Optional[Question]:
        for q in bucket:
            if q.id not in self.used:
                return q
        return None

    def select_module_question(self, line_id: str, qtype: str, order: int) -> Optional[Question]:
        bucket = self.module_index.get(line_id, {}).get(qtype, {}).get(order, [])
        q = self._first_unused(bucket)
        if q is None:
            log.debug("module bucket exhausted line=%s type=%s order=%s", line_id, qtype, order)
            return None
        self._view("C", line_id, q)
        return q

    def select_duel_question(self, line_id: str, qtype: str, order: int) -> Optional[Question]:
        bucket = self.duel_index.get(line_id, {}).get(qtype, {}).get(order, [])
        q = self._first_unused(bucket)
        if q is None:
            log.debug("duel bucket exhausted line=%s type=%s order=%s", line_id, qtype, order)
            return None
        self._view("B", line_id, q)
        return q

    def get_severity_probe(self, line_id: str) -> Optional[Question]:
        return self.severity_index.get(line_id)

    def get_archetype_question(self, line_id: str) -> Optional[Question]:
        bucket = self.archetype_index.get(line_id, [])
        return self._first_unused(bucket)

    def mark_used(self, question_id: str) -> None:
        self.used.add(question_id)

    def unmark_used(self, question_id: str) -> None:
        self.used.discard(question_id)
        self._viewed.discard(question_id)

    def get_used_questions(self) -> List[str]:
        return sorted(self.used)

    # ---- telemetry side channel ----
    def _view(self, phase: str, line_id: str, q: Question) -> None:
        # one view per question until it is unmarked again
        if q.id in self._viewed:
            return
        self._viewed.add(q.id)
        self._emit(TelemetryEvent(type="view_question", phase=phase, line_id=line_id, question_id=q.id))

    def _emit(self, event: TelemetryEvent) -> None:
        if not config.TELEMETRY_ENABLED:
            return
        event.ts = datetime.now(timezone.utc).isoformat()
        self._events.append(event)

    def record_pick(self, phase: str, line_id: str, question_id: str, pick: str,
                    decision_type: Optional[str] = None) -> None:
        self.mark_used(question_id)
        self._emit(TelemetryEvent(type="pick_option", phase=phase, line_id=line_id,
                                  question_id=question_id, pick=pick, decision_type=decision_type))

    def record_verdict(self, phase: str, line_id: str, verdict: str) -> None:
        self._emit(TelemetryEvent(type="compute_verdict", phase=phase, line_id=line_id, verdict=verdict))

    def record_severity_select(self, line_id: str, level: str, score: float) -> None:
        self._emit(TelemetryEvent(type="severity_select", phase="C", line_id=line_id, level=level, score=score))

    def record_phase_complete(self, phase: str) -> None:
        self._emit(TelemetryEvent(type="phase_complete", phase=phase, line_id=""))

    def get_telemetry_events(self) -> List[TelemetryEvent]:
        return list(self._events)

    def clear_telemetry(self) -> None:
        self._events.clear()
