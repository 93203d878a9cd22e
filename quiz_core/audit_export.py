"""Helpers to export selector telemetry and answer history in JSON/CSV formats."""
from __future__ import annotations

from typing import Iterable, List, Dict, Any
import csv
import io

_FIELDS: tuple[str, ...] = (
    "ts",
    "type",
    "phase",
    "line_id",
    "question_id",
    "decision_type",
    "pick",
    "verdict",
    "level",
    "score",
)

_HISTORY_FIELDS: tuple[str, ...] = ("t", "phase", "line_id", "question_id", "choice", "pick")


def _normalize_event(event: Dict[str, Any], fields: tuple[str, ...] = _FIELDS) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key in fields:
        val = event.get(key)
        if key == "score":
            try:
                out[key] = float(val)
            except (TypeError, ValueError):
                out[key] = None
        else:
            out[key] = "" if val is None else str(val)
    return out


def to_json(events: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Return a JSON-safe payload for telemetry export."""

    normalized: List[Dict[str, Any]] = [_normalize_event(evt or {}) for evt in events]
    return {"events": normalized}


def _render_csv(rows: Iterable[Dict[str, Any]], fields: tuple[str, ...]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=fields)
    writer.writeheader()
    for row in rows:
        writer.writerow({k: ("" if v is None else v) for k, v in row.items()})
    return buf.getvalue()


def to_csv(events: Iterable[Dict[str, Any]]) -> str:
    """Render telemetry events as CSV with a fixed header."""

    return _render_csv((_normalize_event(evt or {}) for evt in events), _FIELDS)


def history_to_csv(history: Iterable[Dict[str, Any]]) -> str:
    return _render_csv((_normalize_event(h or {}, _HISTORY_FIELDS) for h in history), _HISTORY_FIELDS)


__all__ = ["to_json", "to_csv", "history_to_csv"]
