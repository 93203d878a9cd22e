from __future__ import annotations

import json

from quiz_core.reporting import build_result_card, render_text, write_result
from quiz_core.types import FaceRef, SIFResult


def _result(secondary: str, badge: str = "Not yet aligned") -> SIFResult:
    return SIFResult(
        primary=FaceRef("Control", "Control:Rebel"),
        secondary=FaceRef(secondary.split(":")[0], secondary),
        prize="Stress:Catalyst",
        badge=badge,  # type: ignore[arg-type]
        context={"friction": {"Pace": 2}},
    )


def test_card_with_mirror_gain():
    card = build_result_card(_result("Truth:Architect"))
    assert card["header"] == "→ Control:Rebel | Prize = Authority"
    assert card["primary_mirror"] == "Truth:Architect"
    assert card["primary_mirror_gain"] is True
    # the prize slot follows the secondary face, not the primary
    assert card["prize"] == "Stress:Catalyst"
    assert card["lines"][2].startswith("Mirror detected (Truth:Architect = Architect)")
    assert card["summary"] == "Control:Rebel with Truth:Architect (Not yet aligned)"


def test_card_without_mirror_gain():
    card = build_result_card(_result("Bonding:Partner", "Installed from outside"))
    assert card["primary_mirror_gain"] is False
    assert "no gain unless equals Mirror" in card["lines"][2]
    text = render_text(card)
    assert "Badge: Installed from outside" in text
    assert "Friction: Pace=2" in text


def test_write_result(tmp_path):
    card = build_result_card(_result("Truth:Architect"))
    out = write_result(card, str(tmp_path / "cards" / "card.json"))
    body = json.loads((tmp_path / "cards" / "card.json").read_text(encoding="utf-8"))
    assert out.endswith("card.json")
    assert body["prize_role"] == "Authority"
    assert body["friction"] == {"Pace": 2}
