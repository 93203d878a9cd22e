"""Helpers for persisting quiz session snapshots and finished results.

Snapshots are plain JSON files under ``DATA_DIR/sessions``; finished result
cards go to ``DATA_DIR/results``.  A snapshot older than
``SNAPSHOT_TTL_HOURS`` is treated as expired and removed on load.  The
engine never reads these files itself; only the orchestrator's save/resume
helpers touch them.
"""

from __future__ import annotations

import json
import logging
import random
import threading
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ValidationError

from . import config

log = logging.getLogger(__name__)

_LOCK = threading.Lock()


class SessionSnapshot(BaseModel):
    sessionId: str
    phase: str
    selectedALines: List[str] = []
    nonALines: List[str] = []
    usedQuestions: List[str] = []
    questionHistory: List[Dict[str, Any]] = []
    phaseBState: Dict[str, Any] = {}
    phaseCState: Dict[str, Any] = {}
    lastUpdated: str


def _data_root() -> Path:
    return Path(config.DATA_DIR).resolve()


def _sessions_dir() -> Path:
    return _data_root() / "sessions"


def _results_dir() -> Path:
    return _data_root() / "results"


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        log.warning("unreadable json path=%s", path)
        return default


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_session_id() -> str:
    return f"quiz_{int(time.time() * 1000)}_{random.randrange(16**9):09x}"


def _is_expired(last_updated: str, now: Optional[datetime] = None) -> bool:
    try:
        ts = datetime.fromisoformat(last_updated)
    except ValueError:
        return True
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return now - ts > timedelta(hours=config.SNAPSHOT_TTL_HOURS)


def save_snapshot(session_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and persist a snapshot; ``lastUpdated`` is stamped here."""

    body = dict(payload)
    body["sessionId"] = session_id
    body["lastUpdated"] = utcnow_iso()
    snap = SessionSnapshot.model_validate(body)
    data = snap.model_dump()
    data.update({k: v for k, v in body.items() if k not in data})
    with _LOCK:
        _write_json(_sessions_dir() / f"{session_id}.json", data)
    log.debug("snapshot saved session=%s phase=%s", session_id, snap.phase)
    return data


def load_snapshot(session_id: str) -> Optional[Dict[str, Any]]:
    path = _sessions_dir() / f"{session_id}.json"
    raw = _read_json(path, None)
    if raw is None:
        return None
    try:
        snap = SessionSnapshot.model_validate(raw)
    except ValidationError:
        log.warning("invalid snapshot session=%s", session_id)
        return None
    if _is_expired(snap.lastUpdated):
        log.info("snapshot expired session=%s", session_id)
        clear_snapshot(session_id)
        return None
    return raw


def update_snapshot(session_id: str, **fields: Any) -> Optional[Dict[str, Any]]:
    current = load_snapshot(session_id)
    if current is None:
        return None
    current.update(fields)
    return save_snapshot(session_id, current)


def clear_snapshot(session_id: str) -> bool:
    path = _sessions_dir() / f"{session_id}.json"
    with _LOCK:
        if not path.exists():
            return False
        path.unlink()
    return True


def list_sessions() -> List[str]:
    root = _sessions_dir()
    if not root.exists():
        return []
    return sorted(p.stem for p in root.glob("*.json"))


def save_result(session_id: str, card: Dict[str, Any]) -> Path:
    path = _results_dir() / f"{session_id}.json"
    with _LOCK:
        _write_json(path, card)
    return path


def load_result(session_id: str) -> Optional[Dict[str, Any]]:
    return _read_json(_results_dir() / f"{session_id}.json", None)
