"""Fixed family/face catalogue and the prize mirror tables.

Every line (family) carries exactly two archetype faces.  Face identifiers
are always written ``"Family:Archetype"``.
"""
from __future__ import annotations

from typing import Dict, List, Tuple

LINES: List[str] = ["Control", "Pace", "Boundary", "Truth", "Recognition", "Bonding", "Stress"]

# (first, second) archetype per family; order matters for FACE_ANCHOR
FAMILY_TO_ARCHETYPES: Dict[str, Tuple[str, str]] = {
    "Control": ("Rebel", "Sovereign"),
    "Pace": ("Visionary", "Navigator"),
    "Boundary": ("Equalizer", "Guardian"),
    "Truth": ("Seeker", "Architect"),
    "Recognition": ("Spotlight", "Diplomat"),
    "Bonding": ("Partner", "Provider"),
    "Stress": ("Catalyst", "Artisan"),
}

FAMILY_TO_FACES: Dict[str, List[str]] = {
    fam: [f"{fam}:{a}" for a in pair] for fam, pair in FAMILY_TO_ARCHETYPES.items()
}
FACE_TO_FAMILY: Dict[str, str] = {
    face: fam for fam, faces in FAMILY_TO_FACES.items() for face in faces
}

# face a clean-leaning path resolves to, then the offset-leaning one
CLEAN_OFFSET_FACES: Dict[str, Tuple[str, str]] = {
    "Control": ("Control:Sovereign", "Control:Rebel"),
    "Pace": ("Pace:Navigator", "Pace:Visionary"),
    "Boundary": ("Boundary:Guardian", "Boundary:Equalizer"),
    "Truth": ("Truth:Architect", "Truth:Seeker"),
    "Recognition": ("Recognition:Spotlight", "Recognition:Diplomat"),
    "Bonding": ("Bonding:Partner", "Bonding:Provider"),
    "Stress": ("Stress:Catalyst", "Stress:Artisan"),
}

PRIZE_MIRROR_MAP: Dict[str, str] = {
    "Control:Sovereign": "Recognition:Diplomat",
    "Control:Rebel": "Truth:Architect",
    "Pace:Visionary": "Truth:Architect",
    "Pace:Navigator": "Boundary:Guardian",
    "Boundary:Equalizer": "Control:Sovereign",
    "Boundary:Guardian": "Recognition:Diplomat",
    "Truth:Seeker": "Control:Rebel",
    "Truth:Architect": "Stress:Catalyst",
    "Recognition:Spotlight": "Truth:Architect",
    "Recognition:Diplomat": "Control:Sovereign",
    "Bonding:Partner": "Boundary:Equalizer",
    "Bonding:Provider": "Boundary:Guardian",
    "Stress:Catalyst": "Pace:Navigator",
    "Stress:Artisan": "Pace:Visionary",
}

FAMILY_TO_PRIZE: Dict[str, str] = {
    "Control": "Sovereign",
    "Pace": "Navigator",
    "Boundary": "Guardian",
    "Truth": "Architect",
    "Recognition": "Diplomat",
    "Bonding": "Provider",
    "Stress": "Catalyst",
}

PRIZE_ROLES: Dict[str, str] = {
    "Control": "Authority",
    "Pace": "Timekeeper",
    "Boundary": "Gatekeeper",
    "Truth": "Decider",
    "Recognition": "Witness",
    "Bonding": "Anchor",
    "Stress": "Igniter",
}

FACE_ANCHOR: Dict[str, Dict[str, object]] = {
    fam: {"CO1": pair[0], "CO2": pair[1], "CF": pair[0], "TIE": [pair[0], pair[1]]}
    for fam, pair in FAMILY_TO_ARCHETYPES.items()
}

INSTALLED_STATEMENTS: Dict[str, Dict[str, object]] = {
    "Control:Sovereign": {"statement": "People expect me to **take charge and set the agenda**.",
                          "cues": ["Sets direction", "Decides quickly"]},
    "Control:Rebel": {"statement": "People expect me to **challenge the plan or push back**.",
                      "cues": ["Questions authority", "Breaks stuck patterns"]},
    "Pace:Navigator": {"statement": "People lean on me to **map the path and keep us on track**.",
                       "cues": ["Plans milestones", "Manages momentum"]},
    "Pace:Visionary": {"statement": "People look to me to **imagine what's next and inspire direction**.",
                       "cues": ["Big picture", "Sets tempo with ideas"]},
    "Boundary:Equalizer": {"statement": "People call me in to **make things fair and balance trade-offs**.",
                           "cues": ["Referees decisions", "Ensures equity"]},
    "Boundary:Guardian": {"statement": "People rely on me to **protect the group and enforce guardrails**.",
                          "cues": ["Safety first", "Holds the line"]},
    "Truth:Architect": {"statement": "People tap me to **design the structure or system**.",
                        "cues": ["Models & frameworks", "Clarity of logic"]},
    "Truth:Seeker": {"statement": "People ask me to **dig for the real facts and question assumptions**.",
                     "cues": ["Investigates", "Probing questions"]},
    "Recognition:Spotlight": {"statement": "People put me **out front to represent or present**.",
                              "cues": ["Spokesperson", "Visible ownership"]},
    "Recognition:Diplomat": {"statement": "People ask me to **smooth relationships and keep harmony**.",
                             "cues": ["Bridges groups", "Reads the room"]},
    "Bonding:Partner": {"statement": "People come to me for **emotional support and connection**.",
                        "cues": ["Morale & empathy", "Keeps people engaged"]},
    "Bonding:Provider": {"statement": "People expect me to **handle practical care and logistics**.",
                         "cues": ["Gets resources in place", "Looks after needs"]},
    "Stress:Artisan": {"statement": "People ask me to **fix things hands-on right now**.",
                       "cues": ["Jumps in", "Tactical problem-solving"]},
    "Stress:Catalyst": {"statement": "People push me to **create urgency and drive hard outcomes**.",
                        "cues": ["Turns up the heat", "Forces movement"]},
}


def split_face(face: str) -> Tuple[str, str]:
    fam, _, arch = face.partition(":")
    return fam, arch


def get_prize_mirror(face: str) -> str:
    """Mirror face for ``face``; unknown faces mirror to themselves."""
    return PRIZE_MIRROR_MAP.get(face, face)


def canonical_prize(family: str) -> str:
    return f"{family}:{FAMILY_TO_PRIZE[family]}"


def anchor_face_for(family: str, slot: str = "CO1") -> str:
    return f"{family}:{FACE_ANCHOR[family][slot]}"
