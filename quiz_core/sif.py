# quiz_core/sif.py
"""Secondary Identity Face (SIF) scoring.

Counters are filled while phases B and C run, strictly through the
declarative ``effects`` attached to each answer option.  Phase D turns the
per-line answer paths into candidate faces, scores them with the Installed
Likelihood (IL) model and builds the install shortlist; finalization then
resolves Primary, Secondary, prize and badge.  ``calculate_sif`` keeps the
older NI/SI/II face score for sessions that never made an install choice.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple
import logging

from . import config
from .faces import (
    LINES,
    FACE_TO_FAMILY,
    CLEAN_OFFSET_FACES,
    INSTALLED_STATEMENTS,
    FAMILY_TO_PRIZE,
    get_prize_mirror,
    canonical_prize,
    split_face,
)
from .types import EFFECT_KEYS, LineState, Option, Question, SIFCounters, SIFResult, FaceRef
from .verdict import compute_face_purity, compute_module_purity, face_purity_from_b

log = logging.getLogger(__name__)


def inc(counter: Dict[str, float], key: str, by: float = 1) -> None:
    """Single mutation primitive for SIF counters."""
    counter[key] = counter.get(key, 0) + by


@dataclass
class FaceCandidate:
    face: str
    source: str  # "A" (duel path) or "M" (module path)
    path: List[str] = field(default_factory=list)


@dataclass
class ILScore:
    face: str
    family: str
    source: str
    base: float
    sibling_bonus: float
    prize_bonus: float
    il: float
    f_touch: int = 0
    ended_f: int = 0
    components: Dict[str, float] = field(default_factory=dict)


@dataclass
class LegacyScore:
    face: str
    family: str
    raw_ni: float
    ni: float
    si: float
    ii: float
    score: float


class SIFEngine:
    def __init__(self) -> None:
        self.counters = SIFCounters()
        self.user_installed: Optional[str] = None
        self.last_ranking: List[ILScore] = []
        self.initialize_counters()

    def initialize_counters(self) -> None:
        self.counters = SIFCounters()
        for fam in LINES:
            for name in ("famC", "famO", "famF"):
                getattr(self.counters, name)[fam] = 0
        for face in FACE_TO_FAMILY:
            self.counters.faceC[face] = 0
            self.counters.faceO[face] = 0
        self.user_installed = None
        self.last_ranking = []

    def reset(self) -> None:
        self.initialize_counters()

    def get_counters(self) -> Dict[str, Dict[str, float]]:
        return self.counters.to_dict()

    # ---- recording ----
    def record_answer_with_effects(self, question: Question, choice: str, family: Optional[str] = None) -> Option:
        option = question.option(choice)
        if option is None:
            raise ValueError(f"Unknown option {choice!r} for question {question.id}")
        for key in EFFECT_KEYS:
            target: Dict[str, float] = getattr(self.counters, key)
            for ident in option.effects.get(key, []):
                inc(target, ident)
        log.debug(
            "sif effects question=%s family=%s choice=%s effects=%s",
            question.id, family or question.line, choice, option.effects,
        )
        return option

    def record_severity_probe(self, family: str, score: float) -> None:
        inc(self.counters.sevF, family, score)
        log.debug("sif severity family=%s sevF=%.1f", family, self.counters.sevF[family])

    def undo_severity_probe(self, family: str, score: float) -> None:
        inc(self.counters.sevF, family, -score)

    def record_user_installed(self, face: str) -> None:
        self.user_installed = face

    # ---- faces from paths ----
    @staticmethod
    def _face_from_counts(family: str, path: List[str]) -> str:
        clean, offset = CLEAN_OFFSET_FACES[family]
        c = path.count("C")
        o = path.count("O")
        if c > o:
            return clean
        if o > c:
            return offset
        return offset if path and path[0] == "O" else clean

    def determine_face_from_b_path(self, family: str, b_path: List[str]) -> str:
        return self._face_from_counts(family, b_path)

    def determine_face_from_module_decisions(self, family: str, m_path: List[str]) -> str:
        return self._face_from_counts(family, m_path)

    def collect_faces(self, lines: Iterable[LineState]) -> List[FaceCandidate]:
        faces: List[FaceCandidate] = []
        for ln in lines:
            if ln.selectedA and ln.B.picks:
                faces.append(FaceCandidate(self.determine_face_from_b_path(ln.id, ln.B.picks), "A", list(ln.B.picks)))
        for ln in lines:
            if not ln.selectedA and ln.mod.decisions:
                path = [d.pick for d in ln.mod.decisions]
                faces.append(FaceCandidate(self.determine_face_from_module_decisions(ln.id, path), "M", path))
        return faces

    # ---- installed likelihood ----
    def compute_anchor_candidate_families(self, a26_faces: List[str], module_top_families: List[str]) -> Set[str]:
        if a26_faces:
            return {FACE_TO_FAMILY[f] for f in a26_faces}
        return set(module_top_families)

    def score_face(self, cand: FaceCandidate, a_cand_families: Set[str], a_cand_prize_faces: Set[str]) -> ILScore:
        path = cand.path
        comps: Dict[str, float] = {}
        f_touch = ended_f = 0
        base = 0.0
        if cand.source == "A" and len(path) >= 2:
            early_o = 1 if path[0] == "O" else 0
            f_touch = 1 if "F" in path else 0
            o_ratio = path.count("O") / 2
            purity = face_purity_from_b(path)
            purity_gap = max(0.0, min(1.0, (config.A26_PURITY - purity) / 2))
            base = (config.IL_W_EARLY_O * early_o + config.IL_W_F_TOUCH * f_touch
                    + config.IL_W_O_RATIO * o_ratio + config.IL_W_PURITY_GAP * purity_gap)
            comps = {"earlyO": early_o, "fTouch": f_touch, "oRatio": o_ratio, "purityGap": purity_gap}
        elif cand.source == "M" and len(path) >= 3:
            c = path.count("C")
            is_ccc = 1 if c == 3 else 0
            ended_f = 1 if path[2] == "F" else 0
            drift = (3 - c) / 3
            base = config.IL_W_CCC * is_ccc + config.IL_W_ENDED_F * ended_f + config.IL_W_DRIFT * drift
            comps = {"isCCC": is_ccc, "endedF": ended_f, "driftRatio": drift}
        base = min(config.IL_BASE_CAP, base)
        family = FACE_TO_FAMILY[cand.face]
        sib = config.IL_SIBLING_BONUS if family in a_cand_families else 0.0
        prize = config.IL_PRIZE_BONUS if cand.face in a_cand_prize_faces else 0.0
        il = round(min(config.IL_TOTAL_CAP, base + sib + prize), 6)
        return ILScore(face=cand.face, family=family, source=cand.source, base=round(base, 6),
                       sibling_bonus=sib, prize_bonus=prize, il=il, f_touch=f_touch,
                       ended_f=ended_f, components=comps)

    def installed_likelihood_for_face(self, cand: FaceCandidate, a_cand_families: Set[str],
                                      a_cand_prize_faces: Set[str]) -> float:
        return self.score_face(cand, a_cand_families, a_cand_prize_faces).il

    def rank_faces(self, all_faces: List[FaceCandidate], a_cand_families: Set[str],
                   a_cand_prize_faces: Set[str]) -> List[ILScore]:
        scored = [self.score_face(c, a_cand_families, a_cand_prize_faces) for c in all_faces]
        scored.sort(key=lambda s: (-s.il, -s.f_touch, -s.ended_f, s.face))
        return scored

    def build_install_shortlist(self, all_faces: List[FaceCandidate], a_cand_families: Set[str],
                                a_cand_prize_faces: Set[str]) -> List[str]:
        scored = self.rank_faces(all_faces, a_cand_families, a_cand_prize_faces)
        self.last_ranking = scored
        shortlist: List[str] = []
        for s in scored:
            if s.face not in shortlist:
                shortlist.append(s.face)
                if len(shortlist) == config.SHORTLIST_SIZE:
                    break
        if len(shortlist) == config.SHORTLIST_SIZE:
            fam0 = FACE_TO_FAMILY[shortlist[0]]
            if all(FACE_TO_FAMILY[f] == fam0 for f in shortlist):
                for s in scored:
                    if s.family != fam0 and s.face not in shortlist:
                        shortlist[-1] = s.face
                        break
        log.debug("sif shortlist=%s", shortlist)
        return shortlist

    def anchor_candidate_inputs(self, lines: List[LineState]) -> Tuple[List[str], List[str]]:
        """A-line faces at 2.6 purity, and the non-A families tied at top module purity."""
        a26: List[str] = []
        for ln in lines:
            if ln.selectedA and len(ln.B.picks) >= 2:
                if abs(compute_face_purity(ln.B.picks[0], ln.B.picks[1]) - config.A26_PURITY) < config.PURITY_EPS:
                    a26.append(self.determine_face_from_b_path(ln.id, ln.B.picks))
        mods = {ln.id: compute_module_purity(ln.mod.decisions) for ln in lines if not ln.selectedA and ln.mod.decisions}
        top: List[str] = []
        if mods:
            best = max(mods.values())
            top = [fam for fam, p in mods.items() if abs(p - best) < config.PURITY_EPS]
        return a26, top

    def build_phase_d_install_shortlist(self, lines: List[LineState]) -> List[str]:
        a26_faces, module_top = self.anchor_candidate_inputs(lines)
        a_cand_families = self.compute_anchor_candidate_families(a26_faces, module_top)
        if a26_faces:
            cand_faces = list(a26_faces)
        else:
            by_line = {ln.id: ln for ln in lines}
            cand_faces = [
                self.determine_face_from_module_decisions(fam, [d.pick for d in by_line[fam].mod.decisions])
                for fam in module_top
            ]
        a_cand_prize_faces = {get_prize_mirror(f) for f in cand_faces}
        log.debug("sif anchor candidates families=%s prize_faces=%s", sorted(a_cand_families), sorted(a_cand_prize_faces))
        return self.build_install_shortlist(self.collect_faces(lines), a_cand_families, a_cand_prize_faces)

    def faces_by_il(self) -> List[str]:
        return [s.face for s in self.last_ranking]

    def get_installed_statements(self, face_ids: List[str]) -> List[Dict[str, object]]:
        out: List[Dict[str, object]] = []
        for face in face_ids:
            fam, arch = split_face(face)
            data = INSTALLED_STATEMENTS.get(face)
            if data is None:
                log.warning("no installed statement for face=%s", face)
                data = {"statement": f"People expect me to **{arch or 'Unknown'}** role.",
                        "cues": ["Role-specific behavior"]}
            out.append({"face_id": face, "label": arch or "Unknown", "family": fam or "Unknown", **data})
        return out

    # ---- resolution ----
    def resolve_secondary(self, installed_choice: str, anchor_face: str, shortlist: List[str],
                          all_faces_by_il: List[str]) -> str:
        if installed_choice != anchor_face:
            return installed_choice
        for face in list(shortlist) + list(all_faces_by_il):
            if face != anchor_face:
                return face
        # nothing else to offer; the collision stands
        return installed_choice

    def _stability(self, family: str) -> Tuple[float, float]:
        fam_c = self.counters.famC.get(family, 0)
        fam_o = self.counters.famO.get(family, 0)
        ii = min(self.counters.famF.get(family, 0) + self.counters.sevF.get(family, 0), config.SIF_II_CAP)
        si = fam_c / (fam_c + fam_o) if (fam_c + fam_o) > 0 else 0.5
        return si, ii

    def badge_for(self, secondary_face: str) -> str:
        family = FACE_TO_FAMILY.get(secondary_face, split_face(secondary_face)[0])
        if family in FAMILY_TO_PRIZE and secondary_face == canonical_prize(family):
            return "Aligned"
        si, ii = self._stability(family)
        if ii >= 2 or si < 0.5:
            return "Installed from outside"
        return "Not yet aligned"

    def friction_context(self) -> Dict[str, float]:
        return {fam: n for fam, n in self.counters.famF.items() if n > 0}

    def finalize_sif_with_install(self, anchor_face: str, installed_choice: str, shortlist: List[str],
                                  all_faces_by_il: Optional[List[str]] = None) -> SIFResult:
        primary_family = FACE_TO_FAMILY.get(anchor_face, split_face(anchor_face)[0])
        ranked = all_faces_by_il if all_faces_by_il is not None else self.faces_by_il()
        secondary = self.resolve_secondary(installed_choice, anchor_face, shortlist, ranked)
        secondary_family = FACE_TO_FAMILY.get(secondary, split_face(secondary)[0])
        badge = self.badge_for(secondary)
        result = SIFResult(
            primary=FaceRef(primary_family, anchor_face),
            secondary=FaceRef(secondary_family, secondary),
            prize=get_prize_mirror(secondary),
            badge=badge,  # type: ignore[arg-type]
            context={"friction": self.friction_context(), "installed_choice": installed_choice,
                     "collision": installed_choice == anchor_face},
        )
        log.debug("sif final primary=%s secondary=%s prize=%s badge=%s", anchor_face, secondary, result.prize, badge)
        return result

    # ---- legacy face score ----
    def derive_family_verdicts(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for fam in LINES:
            c = self.counters.famC.get(fam, 0)
            o = self.counters.famO.get(fam, 0)
            if self.counters.famF.get(fam, 0) > 0:
                out[fam] = "F"
            elif c > o:
                out[fam] = "C"
            else:
                out[fam] = "O"
        return out

    def legacy_scores(self, primary_face: str, family_verdicts: Dict[str, str]) -> List[LegacyScore]:
        verdicts = family_verdicts or self.derive_family_verdicts()
        primary_family = split_face(primary_face)[0]
        pool = [f for f, fam in FACE_TO_FAMILY.items() if fam != primary_family and verdicts.get(fam) != "F"]
        if not pool:
            log.warning("legacy sif pool empty after F exclusion; ignoring verdicts")
            pool = [f for f, fam in FACE_TO_FAMILY.items() if fam != primary_family]
        rows = []
        for face in pool:
            fam = FACE_TO_FAMILY[face]
            raw_ni = max(0.0, self.counters.faceC.get(face, 0) - self.counters.faceO.get(face, 0))
            si, ii = self._stability(fam)
            rows.append((face, fam, raw_ni, si, ii))
        max_ni = max([0.0] + [r[2] for r in rows])
        scores: List[LegacyScore] = []
        for face, fam, raw_ni, si, ii in rows:
            ni = raw_ni / max_ni if max_ni > 0 else 0.0
            score = 0.5 * ni + 0.5 * si - 0.1 * ii
            scores.append(LegacyScore(face, fam, raw_ni, ni, si, ii, round(score, 9)))
        scores.sort(key=lambda s: (-s.score, -s.ni, -s.si, s.ii))
        return scores

    def calculate_sif(self, primary_family: str, primary_face: str, family_verdicts: Dict[str, str],
                      prize_face: Optional[str] = None) -> SIFResult:
        prize = prize_face or get_prize_mirror(primary_face) or canonical_prize(primary_family)
        ranking = self.legacy_scores(primary_face, family_verdicts)
        top = ranking[0]
        if top.face == prize:
            badge = "Aligned"
        elif top.ii >= 2 or top.si < 0.5:
            badge = "Installed from outside"
        else:
            badge = "Not yet aligned"
        log.debug("sif legacy secondary=%s score=%.3f badge=%s", top.face, top.score, badge)
        return SIFResult(
            primary=FaceRef(primary_family, primary_face),
            secondary=FaceRef(top.family, top.face),
            prize=prize,
            badge=badge,  # type: ignore[arg-type]
            context={"friction": self.friction_context()},
        )
