from __future__ import annotations

from typing import Iterable

import pytest

from quiz_core import config
from quiz_core.faces import CLEAN_OFFSET_FACES, FAMILY_TO_ARCHETYPES, LINES, get_prize_mirror
from quiz_core.types import Option, Question


def _duel(qid: str, phase: str, line: str, qtype: str, order: int, c_face: str) -> Question:
    mirror = get_prize_mirror(CLEAN_OFFSET_FACES[line][0])
    other = "O" if qtype == "CO" else "F"
    return Question(
        id=qid,
        phase=phase,
        line=line,
        type=qtype,  # type: ignore[arg-type]
        order=order,
        prompt=f"{line} {qtype}{order}",
        options=[
            Option(key="A", label="hold", pick="C", effects={"famC": [line], "faceC": [c_face]}),
            Option(key="B", label="bend", pick=other,  # type: ignore[arg-type]
                   effects={f"fam{other}": [line], f"face{other}": [mirror]}),
        ],
    )


def build_synthetic_bank(
    *,
    lines: list[str] | None = None,
    drop: Iterable[tuple[str, str, str, int]] = (),
    include_archetype: bool = True,
    extra_per_key: int = 0,
) -> list[Question]:
    """Deterministic bank in the bundled layout: option A is always the C pick.

    ``drop`` removes ``(line, phase, type, order)`` buckets; ``extra_per_key``
    adds spare questions (ids suffixed ``-x1``...) to every duel/module bucket.
    """

    dropped = set(drop)
    questions: list[Question] = []
    for line in lines or LINES:
        clean, offset = CLEAN_OFFSET_FACES[line]
        plan = [
            ("B", "CO", 1, clean),
            ("B", "CO", 2, offset),
            ("B", "CF", 1, clean),
            ("C", "CO", 1, clean),
            ("C", "CO", 2, offset),
            ("C", "CF", 3, clean),
        ]
        for phase, qtype, order, c_face in plan:
            if (line, phase, qtype, order) in dropped:
                continue
            base = f"{phase}-{line}-{qtype}{order}"
            questions.append(_duel(base, phase, line, qtype, order, c_face))
            for idx in range(extra_per_key):
                questions.append(_duel(f"{base}-x{idx + 1}", phase, line, qtype, order, c_face))

        if (line, "C", "SEVERITY", 1) not in dropped:
            questions.append(
                Question(
                    id=f"C-{line}-SEV",
                    phase="C",
                    line=line,
                    type="SEVERITY",
                    order=1,
                    prompt=f"How much does {line} friction cost you?",
                    options=[
                        Option(key="A", label="a lot", level="high"),
                        Option(key="B", label="some", level="mid"),
                        Option(key="C", label="barely", level="low"),
                    ],
                )
            )

        if include_archetype:
            first, second = FAMILY_TO_ARCHETYPES[line]
            questions.append(
                Question(
                    id=f"ARCH-{line}",
                    phase="Archetype",
                    line=line,
                    type="ARCHETYPE",
                    order=1,
                    prompt=f"Which {line} style fits?",
                    options=[
                        Option(key="A", label=first, archetype=first),
                        Option(key="B", label=second, archetype=second),
                    ],
                )
            )

    return questions


@pytest.fixture
def synthetic_bank() -> list[Question]:
    return build_synthetic_bank()


@pytest.fixture(autouse=True)
def _isolated_data_dir(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setattr(config, "TELEMETRY_ENABLED", True)
