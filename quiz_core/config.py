from __future__ import annotations
import os, json, pathlib, random


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


MAX_A_LINES: int = 3
SHORTLIST_SIZE: int = 4

SEVERITY_SCORES: dict[str, float] = {"high": 1.0, "mid": 0.5, "low": 0.0}

PICK_VALUE: dict[str, float] = {"C": 1.0, "O": 0.6, "F": 0.0}
FACE_PURITY_SEED: float = 0.6
A26_PURITY: float = 2.6
PURITY_EPS: float = 1e-9

MODULE_CO_STEP: float = 1.0
MODULE_CF_STEP: float = 1.6

IL_W_EARLY_O: float = 1.6
IL_W_F_TOUCH: float = 1.2
IL_W_O_RATIO: float = 0.8
IL_W_PURITY_GAP: float = 0.8
IL_W_CCC: float = 1.6
IL_W_ENDED_F: float = 1.4
IL_W_DRIFT: float = 0.8
IL_BASE_CAP: float = 4.0
IL_TOTAL_CAP: float = 5.0
IL_SIBLING_BONUS: float = 1.0
IL_PRIZE_BONUS: float = 0.5

SIF_II_CAP: float = 3.0

SNAPSHOT_TTL_HOURS: float = 24.0
DATA_DIR: str = "data"

BANK_MIN_PER_KEY: int = 1

TELEMETRY_ENABLED: bool = True
DEBUG_TRACE: bool = False
DEBUG_SEED: int | None = None
TRACE_FIELDS: tuple[str, ...] = (
    "phase",
    "line",
    "question_id",
    "decision",
    "pick",
    "verdict",
    "purity",
    "severity",
    "il",
)
# // env overrides for staging/ops; defaults remain conservative.
SNAPSHOT_TTL_HOURS = _env_float("SNAPSHOT_TTL_HOURS", SNAPSHOT_TTL_HOURS)
DATA_DIR = os.getenv("DATA_DIR", DATA_DIR)
BANK_MIN_PER_KEY = _env_int("BANK_MIN_PER_KEY", BANK_MIN_PER_KEY)
TELEMETRY_ENABLED = _env_bool("TELEMETRY_ENABLED", TELEMETRY_ENABLED)
DEBUG_TRACE = _env_bool("DEBUG_TRACE", False)
DEBUG_SEED = _env_int("DEBUG_SEED", 0) if os.getenv("DEBUG_SEED") else None


def load_config() -> dict:
    cfg = {}
    p = pathlib.Path("config.json")
    if p.exists():
        try: cfg = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError): cfg = {}
    e = os.environ
    if e.get("DATA_DIR"): cfg["DATA_DIR"] = e.get("DATA_DIR")
    if e.get("QUIZ_BANK_PATH"): cfg["QUIZ_BANK_PATH"] = e.get("QUIZ_BANK_PATH")
    if e.get("SNAPSHOT_TTL_HOURS"): cfg["SNAPSHOT_TTL_HOURS"] = _env_float("SNAPSHOT_TTL_HOURS", SNAPSHOT_TTL_HOURS)
    if e.get("SEED"): cfg["SEED"] = int(e.get("SEED"))
    return cfg
def seed_rng(cfg: dict):
    s = cfg.get("SEED", DEBUG_SEED)
    if s is not None:
        random.seed(int(s))
