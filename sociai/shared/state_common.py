import hashlib
from datetime import datetime, timezone


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def account_uid(account_id: str) -> str:
    """Stable storage key for an account (email), not reversible at a glance."""
    return hashlib.sha256(account_id.strip().lower().encode("utf-8")).hexdigest()[:32]
