import json
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict

# Debug flag: enable when running tests or when env var HEXTACTICS_DEBUG is set
DEBUG = bool(os.getenv('HEXTACTICS_DEBUG')) or ('unittest' in sys.modules) or ('PYTEST_CURRENT_TEST' in os.environ)

# Maintain per-match filename base so all writes go to the same timestamped file
_MATCH_FILE_BASE: Dict[str, str] = {}


def _ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _log_dir() -> str:
    """logs/matches relative to repo root, or $HEXTACTICS_LOG_DIR when set."""
    override = os.getenv('HEXTACTICS_LOG_DIR')
    if override:
        return os.path.abspath(override)
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", "logs", "matches"))


def _file_base_for(match_id: str) -> str:
    """Return a stable '<timestamp>_<match_id>' base for this process."""
    if match_id in _MATCH_FILE_BASE:
        return _MATCH_FILE_BASE[match_id]
    ts = datetime.now().strftime("%Y%m%d-%H%M%S")
    base = f"{ts}_{match_id}"
    _MATCH_FILE_BASE[match_id] = base
    return base


def match_log_path(match_id: str) -> str:
    return os.path.join(_log_dir(), f"{_file_base_for(match_id)}.log")


def match_write(match_id: str | None, record: Dict[str, Any]) -> None:
    """Append a structured JSON line to the per-match audit log.

    match_id None disables file output (boards built outside a MatchStore).
    """
    if not match_id:
        return
    record = dict(record)
    record.setdefault("ts", datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"))
    record.setdefault("match_id", match_id)
    try:
        _ensure_dir(_log_dir())
        with open(match_log_path(match_id), "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")
    except Exception:
        # Never raise from audit logging; it's best-effort.
        pass


def dbg(log_id: str | None, *args, **kwargs):
    """Debug helper: prints when DEBUG, always writes to match log.

    - print: 環境変数/テスト時のみ
    - file: `match_write` へ `{"type":"debug","msg":...}` を常に出力（best-effort）
    """
    if DEBUG:
        print(*args, **kwargs)
    msg = " ".join(str(a) for a in args)
    match_write(log_id, {"type": "debug", "msg": msg})
