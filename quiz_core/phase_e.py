# quiz_core/phase_e.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional
import logging

from .config import A26_PURITY, PURITY_EPS
from .faces import FACE_TO_FAMILY

log = logging.getLogger(__name__)


class CommitStatus(str, Enum):
    IDLE = "IDLE"
    PROCESSING = "PROCESSING"
    COMMITTED = "COMMITTED"


@dataclass
class LineResult:
    line: str
    is_a_line: bool
    face_purity: float = 0.0
    module_purity: float = 0.0

    @property
    def purity(self) -> float:
        return self.face_purity if self.is_a_line else self.module_purity


@dataclass
class PhaseEState:
    candidates: List[str] = field(default_factory=list)
    self_installed: List[str] = field(default_factory=list)
    built: bool = False
    anchor: Optional[str] = None
    decided_at: Optional[str] = None
    source: Optional[str] = None
    status: CommitStatus = CommitStatus.IDLE


def build_candidates(lines: List[LineResult]) -> List[str]:
    """Anchor candidates: A-lines at 2.6 first, else every line tied at the top purity."""
    a26 = [r.line for r in lines if r.is_a_line and abs(r.face_purity - A26_PURITY) < PURITY_EPS]
    if a26:
        return a26
    if not lines:
        return []
    top = max(r.purity for r in lines)
    return [r.line for r in lines if abs(r.purity - top) < PURITY_EPS]


class PhaseEEngine:
    def __init__(self) -> None:
        self.state = PhaseEState()

    def enter(self, lines: List[LineResult], sif_shortlist: Optional[List[str]] = None) -> PhaseEState:
        if self.state.built:
            return self.state
        candidates = build_candidates(lines)
        self.state.candidates = candidates
        self.state.built = True
        if len(candidates) == 1:
            self._commit(candidates[0], "E:AutoAnchor")
            log.debug("phase_e auto anchor=%s", candidates[0])
        elif candidates:
            known = {r.line for r in lines}
            extra: List[str] = []
            for face in sif_shortlist or []:
                fam = FACE_TO_FAMILY.get(face)
                if fam and fam in known and fam not in candidates and fam not in extra:
                    extra.append(fam)
            self.state.self_installed = extra
            log.debug("phase_e tie candidates=%s self_installed=%s", candidates, extra)
        else:
            log.warning("phase_e no anchor candidates")
        return self.state

    def options(self) -> List[str]:
        return list(self.state.candidates) + list(self.state.self_installed)

    def select_anchor(self, line: str) -> str:
        if self.state.status is CommitStatus.COMMITTED:
            return self.state.anchor  # type: ignore[return-value]
        if self.state.status is CommitStatus.PROCESSING:
            raise RuntimeError("anchor selection already in progress")
        self.state.status = CommitStatus.PROCESSING
        if line in self.state.candidates:
            source = "E:TieBreak"
        elif line in self.state.self_installed:
            source = "E:SelfInstalled"
        else:
            self.state.status = CommitStatus.IDLE
            raise ValueError(f"Invalid selection: {line} not in candidates")
        self._commit(line, source)
        log.debug("phase_e selected anchor=%s source=%s", line, source)
        return line

    def _commit(self, line: str, source: str) -> None:
        self.state.anchor = line
        self.state.source = source
        self.state.decided_at = datetime.now(timezone.utc).isoformat()
        self.state.status = CommitStatus.COMMITTED

    def needs_tie_break(self) -> bool:
        return len(self.state.candidates) > 1 and self.state.anchor is None

    def has_anchor(self) -> bool:
        return self.state.anchor is not None

    def get_anchor(self) -> Optional[str]:
        return self.state.anchor

    def get_state(self) -> Dict[str, object]:
        return {
            "candidates": list(self.state.candidates),
            "self_installed": list(self.state.self_installed),
            "anchor": self.state.anchor,
            "source": self.state.source,
            "decided_at": self.state.decided_at,
            "status": self.state.status.value,
        }

    def reset(self) -> None:
        self.state = PhaseEState()
