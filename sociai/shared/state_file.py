import json
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import get_studio_config
from .logging_utils import warning as log_warning
from .state_common import account_uid, utc_now

# Serializes read-modify-write of the state file within this process.
_LOCK = threading.RLock()


def _state_file() -> Path:
    return get_studio_config().state_dir / "studio.json"


def _read_all() -> Dict[str, dict]:
    path = _state_file()
    if not path.exists():
        return {}
    try:
        return json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        log_warning(None, "state:file:unreadable", path=str(path), error=str(exc))
        return {}


def _write_all(data: Dict[str, dict]) -> None:
    path = _state_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data))
    tmp.replace(path)


def _get(account_id: str, key: str) -> Any:
    return (_read_all().get(account_uid(account_id)) or {}).get(key)


def _put(account_id: str, key: str, value: Any) -> None:
    with _LOCK:
        data = _read_all()
        uid = account_uid(account_id)
        entry = data.get(uid) or {"uid": uid}
        entry[key] = value
        entry["lastUpdateUtc"] = utc_now()
        data[uid] = entry
        _write_all(data)


class FileStudioStore:
    """Per-account documents kept in a single JSON file under RUNTIME_STATE_DIR."""

    @staticmethod
    def get_user(account_id: str) -> Optional[Dict[str, Any]]:
        return _get(account_id, "user")

    @staticmethod
    def save_user(account_id: str, profile: Dict[str, Any]) -> None:
        _put(account_id, "user", profile)

    @staticmethod
    def get_posts(account_id: str) -> List[Dict[str, Any]]:
        return _get(account_id, "posts") or []

    @staticmethod
    def save_posts(account_id: str, posts: List[Dict[str, Any]]) -> None:
        _put(account_id, "posts", posts)

    @staticmethod
    def get_notifications(account_id: str) -> List[Dict[str, Any]]:
        return _get(account_id, "notifications") or []

    @staticmethod
    def save_notifications(account_id: str, notifications: List[Dict[str, Any]]) -> None:
        _put(account_id, "notifications", notifications)

    @staticmethod
    def get_credits(account_id: str) -> Optional[int]:
        return _get(account_id, "credits")

    @staticmethod
    def save_credits(account_id: str, credits: int) -> None:
        _put(account_id, "credits", credits)

    @staticmethod
    def add_credits(account_id: str, delta: int, initial: int = 0) -> int:
        """Apply ``delta`` to the stored balance (``initial`` if none yet), clamped at zero."""
        with _LOCK:
            current = _get(account_id, "credits")
            balance = max((initial if current is None else current) + delta, 0)
            _put(account_id, "credits", balance)
        return balance
