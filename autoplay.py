# autoplay.py
from __future__ import annotations
import argparse, json, logging, random
from typing import Any, List, Optional
from quiz_core.engine import QuizEngine
from quiz_core.faces import LINES
from quiz_core.question_bank import load_bank
from quiz_core.reporting import build_result_card, render_text, write_result
from quiz_core import config, storage

PROFILES = ("clean", "drift", "fail", "random")

def _choice_for(question: Any, profile: str, step: int, rng: random.Random) -> str:
    opts = list(getattr(question, "options", []) or [])
    keys = [o.key for o in opts]
    if not keys: raise RuntimeError(f"question {getattr(question, 'id', '?')} has no options")
    if getattr(question, "type", "") == "SEVERITY":
        wanted = {"clean": "low", "drift": "mid", "fail": "high"}.get(profile)
        for o in opts:
            if o.level == wanted: return o.key
        return rng.choice(keys)
    if profile == "clean":
        for o in opts:
            if o.pick == "C": return o.key
        return keys[0]
    if profile == "fail":
        for want in ("F", "O"):
            for o in opts:
                if o.pick == want: return o.key
        return keys[-1]
    if profile == "drift":
        return keys[step % len(keys)]
    return rng.choice(keys)

def run(profile: str, a_lines: List[str], seed: Optional[int], save: bool, out: Optional[str] = None,
        bank_path: Optional[str] = None) -> dict:
    rng = random.Random(seed)
    eng = QuizEngine(load_bank(bank_path))
    for line in a_lines: eng.toggle_line(line)
    eng.start_phase_b()
    step = 0
    while eng.state.phase in ("B", "C"):
        st = eng.current_question()
        if st is None or st.error: raise RuntimeError(getattr(st, "error", None) or "no question")
        eng.answer(_choice_for(st.question, profile, step, rng)); step += 1
    if eng.state.phase == "D":
        eng.choose_installed(eng.state.sif_shortlist[0])
    if eng.state.phase == "E":
        eng.select_anchor(eng.anchor_options()[0])
    q = eng.current_question()
    if q is not None:
        eng.answer(_choice_for(q, profile, step, rng))
    else:
        eng.finalize_archetype()
    card = build_result_card(eng.state.sif_result)
    print(render_text(card))
    if save:
        eng.save()
        path = storage.save_result(eng.session_id, card)
        print(f"Result: {path}")
    if out:
        print(f"Card: {write_result(card, out)}")
    return card

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Play a full quiz session with a scripted answer profile.")
    ap.add_argument("--profile", choices=PROFILES, default="clean")
    ap.add_argument("--lines", default="Control,Truth,Stress", help="comma-separated A-lines (exactly 3)")
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--save", action="store_true")
    ap.add_argument("--out", default=None, help="also write the result card JSON here")
    ap.add_argument("--verbose", action="store_true")
    a = ap.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if a.verbose else logging.INFO, format="[%(levelname)s] %(message)s")
    a_lines = [s.strip() for s in a.lines.split(",") if s.strip()]
    unknown = [s for s in a_lines if s not in LINES]
    if unknown: ap.error(f"unknown lines: {unknown}")
    cfg = config.load_config()
    config.seed_rng(cfg)
    seed = a.seed if a.seed is not None else cfg.get("SEED", 1337)
    card = run(a.profile, a_lines, seed, a.save, a.out, cfg.get("QUIZ_BANK_PATH"))
    if a.verbose: print(json.dumps(card, indent=2, ensure_ascii=False))
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
