# quiz_core/phase_d.py
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Dict, List, Optional
import logging

from .types import LineState
from .verdict import compute_verdict, compute_face_purity, compute_module_purity

log = logging.getLogger(__name__)


@dataclass
class VerdictResult:
    line_id: str
    verdict: str
    raw_verdict: str
    face_purity: Optional[float] = None
    module_purity: Optional[float] = None
    needs_severity: bool = False
    severity_score: Optional[float] = None

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def _severity_override(raw: str, score: Optional[float]) -> str:
    if raw != "F" or score is None:
        return raw
    return "F" if score >= 1.0 else "O"


class PhaseDEngine:
    """One-shot recomputation of every line verdict from collected picks."""

    def __init__(self) -> None:
        self._verdicts: List[VerdictResult] = []
        self._computed = False

    def compute_verdicts(self, lines: List[LineState], sev_f: Optional[Dict[str, float]] = None) -> List[VerdictResult]:
        if self._computed:
            return list(self._verdicts)
        sev_f = sev_f or {}
        out: List[VerdictResult] = []
        for line in lines:
            if line.selectedA:
                picks = line.B.picks
                if len(picks) < 2:
                    continue
                p1, p2 = ("O" if p == "F" else p for p in picks[:2])
                verdict = "C" if p1 == "C" and p2 == "C" else "O"
                out.append(VerdictResult(line_id=line.id, verdict=verdict, raw_verdict=verdict,
                                         face_purity=compute_face_purity(p1, p2)))
            else:
                decisions = line.mod.decisions
                if len(decisions) < 3:
                    continue
                by = {d.type: d.pick for d in decisions}
                raw = compute_verdict(by.get("CO1", ""), by.get("CO2", ""), by.get("CF", ""))
                score = line.fSeverityScore
                if score is None:
                    score = sev_f.get(line.id)
                verdict = _severity_override(raw, score)
                out.append(VerdictResult(
                    line_id=line.id,
                    verdict=verdict,
                    raw_verdict=raw,
                    module_purity=compute_module_purity(decisions),
                    needs_severity=raw == "F",
                    severity_score=score if raw == "F" else None,
                ))
            log.debug("phase_d line=%s verdict=%s", line.id, out[-1].verdict)
        self._verdicts = out
        self._computed = True
        return list(out)

    def get_verdicts(self) -> List[VerdictResult]:
        return list(self._verdicts)

    def verdict_map(self) -> Dict[str, str]:
        return {v.line_id: v.verdict for v in self._verdicts}

    def is_computed(self) -> bool:
        return self._computed

    def get_severity_verdicts(self) -> List[VerdictResult]:
        return [v for v in self._verdicts if v.needs_severity]

    def get_verdict_count(self) -> int:
        return len(self._verdicts)

    def reset(self) -> None:
        self._verdicts = []
        self._computed = False
