from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable

from . import config
from .faces import LINES
from .question_bank import REQUIRED_KEYS, load_bank
from .types import Question

BUCKETS: tuple[str, ...] = tuple(f"{p}:{t}:{o}" for p, t, o in REQUIRED_KEYS)


def _blank_line() -> dict[str, object]:
    return {"buckets": {b: 0 for b in BUCKETS}, "archetype": 0, "missing_effects": 0}


def effect_findings(q: Question) -> tuple[list[str], list[str]]:
    """(errors, warnings) for the SIF effects of one question's options."""
    errors: list[str] = []
    warnings: list[str] = []
    for opt in q.options:
        if opt.pick is None:
            continue
        eff = opt.effects
        for key in ("faceO", "faceF"):
            if opt.pick != key[-1]:
                continue
            for face in eff.get(key, []):
                if face.split(":")[0] == q.line:
                    errors.append(f"{q.id} option {opt.key}: {opt.pick} choice credits same family face {face}")
        if opt.pick == "C":
            for face in eff.get("faceC", []):
                if face.split(":")[0] != q.line:
                    warnings.append(f"{q.id} option {opt.key}: C choice credits other family face {face}")
        if not eff.get(f"fam{opt.pick}"):
            warnings.append(f"{q.id} option {opt.key}: {opt.pick} choice has no fam{opt.pick} effects")
    return errors, warnings


def audit_questions(questions: Iterable[Question]) -> dict[str, object]:
    coverage: dict[str, dict[str, object]] = {line: _blank_line() for line in LINES}
    totals = {"questions": 0, "errors": 0, "warnings": 0}
    errors: list[str] = []
    warnings: list[str] = []

    for q in questions:
        totals["questions"] += 1
        line_data = coverage.setdefault(q.line, _blank_line())
        if q.type == "ARCHETYPE":
            line_data["archetype"] += 1  # type: ignore[operator]
            continue
        key = f"{q.phase}:{q.type}:{q.order}"
        buckets: dict[str, int] = line_data["buckets"]  # type: ignore[assignment]
        if key in buckets:
            buckets[key] += 1
        q_err, q_warn = effect_findings(q)
        if q_err or any("no fam" in w for w in q_warn):
            line_data["missing_effects"] += 1  # type: ignore[operator]
        errors.extend(q_err)
        warnings.extend(q_warn)

    for line, data in coverage.items():
        buckets = data["buckets"]  # type: ignore[assignment]
        for b in BUCKETS:
            if buckets.get(b, 0) < config.BANK_MIN_PER_KEY:
                warnings.append(f"{line} {b} has {buckets.get(b, 0)} (<{config.BANK_MIN_PER_KEY})")

    warnings = errors + warnings
    totals["errors"] = len(errors)
    totals["warnings"] = len(warnings)
    summary = {"coverage": coverage, "warnings": warnings, "errors": errors, "totals": totals}
    return summary


def print_report(summary: dict[str, object]) -> None:
    coverage: dict[str, dict[str, object]] = summary["coverage"]  # type: ignore[assignment]
    print("=== Bank Coverage ===")
    for line in sorted(coverage):
        data = coverage[line]
        buckets = data["buckets"]  # type: ignore[assignment]
        print(f"\nLine: {line}")
        print("  " + "  ".join(f"{b}:{buckets.get(b, 0):2d}" for b in BUCKETS))  # type: ignore[union-attr]
        if data["archetype"]:
            print(f"    archetype questions: {data['archetype']}")

    warnings: list[str] = summary["warnings"]  # type: ignore[assignment]
    if warnings:
        print("\nWarnings:")
        for msg in warnings:
            print(f" - {msg}")
    else:
        print("\nNo warnings.")

    totals = summary["totals"]
    print("\nTotals:", totals)


def write_summary(summary: dict[str, object], path: Path = Path("/tmp/quiz_bank_audit.json")) -> str:
    text = json.dumps(summary, indent=2, sort_keys=True)
    path.write_text(text + "\n", encoding="utf-8")
    print(text)
    return text


def main(_argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.WARNING, format="[%(levelname)s] %(message)s")
    items = load_bank()
    summary = audit_questions(items)
    print_report(summary)
    write_summary(summary)
    return 2 if summary["warnings"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
