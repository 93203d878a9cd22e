from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Literal
Pick = Literal["C","O","F"]
Verdict = Literal["C","O","F"]
LineId = Literal["Control","Pace","Boundary","Truth","Recognition","Bonding","Stress"]
Phase = Literal["A","B","C","D","E","Archetype","Summary"]
QuestionType = Literal["CO","CF","SEVERITY","ARCHETYPE"]
DecisionType = Literal["CO1","CO2","CF"]
SeverityLevel = Literal["high","mid","low"]
Badge = Literal["Aligned","Installed from outside","Not yet aligned"]
EFFECT_KEYS: tuple[str, ...] = ("famC", "famO", "famF", "faceC", "faceO", "faceF", "sevF")
@dataclass
class Option:
    key: str; label: str
    pick: Optional[Pick] = None
    level: Optional[SeverityLevel] = None
    archetype: Optional[str] = None
    effects: Dict[str, List[str]] = field(default_factory=dict)
@dataclass
class Question:
    id: str; phase: str; line: str; type: QuestionType; order: int; prompt: str
    options: List[Option] = field(default_factory=list)
    def option(self, key: str) -> Optional[Option]:
        for opt in self.options:
            if opt.key == key:
                return opt
        return None
@dataclass
class Decision:
    type: DecisionType; pick: Pick
@dataclass
class BState:
    picks: List[Pick] = field(default_factory=list)
    C_evidence: float = 0.0
@dataclass
class ModState:
    decisions: List[Decision] = field(default_factory=list)
@dataclass
class LineState:
    id: str
    selectedA: bool = False
    B: BState = field(default_factory=BState)
    mod: ModState = field(default_factory=ModState)
    verdict: Optional[Verdict] = None
    fSeverity: Optional[SeverityLevel] = None
    fSeverityScore: Optional[float] = None
    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "selectedA": self.selectedA,
            "B": {"picks": list(self.B.picks), "C_evidence": self.B.C_evidence},
            "mod": {"decisions": [{"type": d.type, "pick": d.pick} for d in self.mod.decisions]},
            "verdict": self.verdict,
            "fSeverity": self.fSeverity,
            "fSeverityScore": self.fSeverityScore,
        }
    @classmethod
    def from_dict(cls, raw: Dict[str, object]) -> "LineState":
        b = raw.get("B") or {}
        mod = raw.get("mod") or {}
        return cls(
            id=str(raw["id"]),
            selectedA=bool(raw.get("selectedA", False)),
            B=BState(picks=list(b.get("picks", [])), C_evidence=float(b.get("C_evidence", 0.0))),
            mod=ModState(decisions=[Decision(type=d["type"], pick=d["pick"]) for d in mod.get("decisions", [])]),
            verdict=raw.get("verdict"),
            fSeverity=raw.get("fSeverity"),
            fSeverityScore=raw.get("fSeverityScore"),
        )
@dataclass
class SIFCounters:
    famC: Dict[str, float] = field(default_factory=dict)
    famO: Dict[str, float] = field(default_factory=dict)
    famF: Dict[str, float] = field(default_factory=dict)
    sevF: Dict[str, float] = field(default_factory=dict)
    faceC: Dict[str, float] = field(default_factory=dict)
    faceO: Dict[str, float] = field(default_factory=dict)
    faceF: Dict[str, float] = field(default_factory=dict)
    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {k: dict(getattr(self, k)) for k in EFFECT_KEYS}
@dataclass
class FaceRef:
    family: str; face: str
@dataclass
class SIFResult:
    primary: FaceRef
    secondary: FaceRef
    prize: str
    badge: Badge
    context: Dict[str, object] = field(default_factory=dict)
    def to_dict(self) -> Dict[str, object]:
        return {
            "primary": {"family": self.primary.family, "face": self.primary.face},
            "secondary": {"family": self.secondary.family, "face": self.secondary.face},
            "prize": self.prize,
            "badge": self.badge,
            "context": dict(self.context),
        }
@dataclass
class HistoryEntry:
    phase: Phase; line_id: str; question_id: str; choice: str
    pick: Optional[str] = None
    t: str = ""
@dataclass
class QuizState:
    phase: Phase = "A"
    lines: List[LineState] = field(default_factory=list)
    anchor: Optional[str] = None
    anchor_source: Optional[str] = None
    final_archetype: Optional[str] = None
    used_questions: set = field(default_factory=set)
    question_history: List[HistoryEntry] = field(default_factory=list)
    archetype_answers: Dict[str, str] = field(default_factory=dict)
    sif_counters: SIFCounters = field(default_factory=SIFCounters)
    family_verdicts: Dict[str, Verdict] = field(default_factory=dict)
    sif_shortlist: List[str] = field(default_factory=list)
    installed_choice: Optional[str] = None
    sif_result: Optional[SIFResult] = None
    def line(self, line_id: str) -> LineState:
        for ln in self.lines:
            if ln.id == line_id:
                return ln
        raise KeyError(line_id)
    def a_lines(self) -> List[LineState]:
        return [ln for ln in self.lines if ln.selectedA]
    def non_a_lines(self) -> List[LineState]:
        return [ln for ln in self.lines if not ln.selectedA]
