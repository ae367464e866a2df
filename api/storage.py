"""JSON-file keyed store backing the suggestion cache and session metadata.

Values live in one JSON document per namespace under ``DATA_DIR`` so the
service keeps cached suggestions and open sessions across restarts.
"""

from __future__ import annotations

import json
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


DATA_ROOT = Path(os.getenv("DATA_DIR", "data")).resolve()
CACHE_PATH = DATA_ROOT / "suggestions_cache.json"
ACTIVE_SESSIONS_PATH = DATA_ROOT / "sessions_active.json"

_LOCK = threading.Lock()


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return default


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class JsonFileStore:
    """KeyedStore persisted as a single JSON object."""

    def __init__(self, path: Path = CACHE_PATH):
        self.path = path

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        data: Dict[str, Dict[str, Any]] = _read_json(self.path, {})
        val = data.get(key)
        return dict(val) if isinstance(val, dict) else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        with _LOCK:
            data: Dict[str, Dict[str, Any]] = _read_json(self.path, {})
            data[key] = dict(value)
            _write_json(self.path, data)

    def delete(self, key: str) -> None:
        with _LOCK:
            data: Dict[str, Dict[str, Any]] = _read_json(self.path, {})
            if key in data:
                data.pop(key, None)
                _write_json(self.path, data)


def _load_sessions() -> Dict[str, Dict[str, Any]]:
    return _read_json(ACTIVE_SESSIONS_PATH, {})


def record_active_session(session_id: str, payload: Dict[str, Any]) -> None:
    with _LOCK:
        sessions = _load_sessions()
        sessions[session_id] = payload
        _write_json(ACTIVE_SESSIONS_PATH, sessions)


def update_active_session(session_id: str, updates: Dict[str, Any]) -> None:
    with _LOCK:
        sessions = _load_sessions()
        if session_id not in sessions:
            return
        sessions[session_id].update(updates)
        _write_json(ACTIVE_SESSIONS_PATH, sessions)


def clear_active_session(session_id: str) -> None:
    with _LOCK:
        sessions = _load_sessions()
        if session_id in sessions:
            sessions.pop(session_id, None)
            _write_json(ACTIVE_SESSIONS_PATH, sessions)


def active_sessions_for_user(user_id: str) -> List[Dict[str, Any]]:
    sessions = _load_sessions()
    out: List[Dict[str, Any]] = []
    for payload in sessions.values():
        if payload.get("userId") == user_id:
            out.append(payload)
    out.sort(key=lambda r: r.get("startedAt", ""), reverse=True)
    return out
