# quiz_core/reporting.py
from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Dict

from .faces import PRIZE_ROLES, get_prize_mirror, split_face
from .types import SIFResult

# -------- utils: make any object JSON-safe ----------
def _to_basic(x: Any) -> Any:
    if x is None or isinstance(x, (bool, int, float, str)):
        return x
    if isinstance(x, dict):
        return {str(k): _to_basic(v) for k, v in x.items()}
    if isinstance(x, (list, tuple, set)):
        return [_to_basic(v) for v in x]
    if hasattr(x, "to_dict"):
        return _to_basic(x.to_dict())
    if hasattr(x, "__dict__"):
        return _to_basic(vars(x))
    return str(x)


def build_result_card(result: SIFResult) -> Dict[str, Any]:
    """Primary / prize / secondary summary card for the Summary phase."""
    primary_family, primary_arch = split_face(result.primary.face)
    role = PRIZE_ROLES.get(primary_family, "Unknown")
    mirror_face = get_prize_mirror(result.primary.face)
    mirror_arch = split_face(mirror_face)[1] or "Unknown"
    secondary = result.secondary.face
    mirror_gain = secondary == mirror_face
    if mirror_gain:
        line3 = f"Mirror detected ({secondary} = {mirror_arch}) → gain."
    else:
        line3 = f"Secondary current ({secondary}) - no gain unless equals Mirror."
    return {
        "primary": result.primary.face,
        "secondary": secondary,
        "prize": result.prize,
        "prize_role": role,
        "primary_mirror": mirror_face,
        "primary_mirror_gain": mirror_gain,
        "badge": result.badge,
        "friction": _to_basic(result.context.get("friction", {})),
        "header": f"→ {primary_family}:{primary_arch} | Prize = {role}",
        "lines": [
            f"{role} as stable role; {primary_arch} as style; 1 action anchor.",
            f"{mirror_arch} install; 1 corrective contrast; 1 action.",
            line3,
        ],
        "summary": f"{result.primary.face} with {secondary} ({result.badge})",
    }


def render_text(card: Dict[str, Any]) -> str:
    out = [card["header"], *card["lines"], f"Badge: {card['badge']}"]
    if card.get("friction"):
        out.append("Friction: " + ", ".join(f"{k}={v}" for k, v in sorted(card["friction"].items())))
    return "\n".join(out)


def write_result(card: Dict[str, Any], out_path: str) -> str:
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(_to_basic(card), ensure_ascii=False, indent=2), encoding="utf-8")
    return str(out)
