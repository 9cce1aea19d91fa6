import os
from typing import Any, Callable, Dict, List, Optional

import backoff
from azure.core import MatchConditions
from azure.cosmos import CosmosClient, exceptions

from sociai.specs.common.errors import ConfigurationError

from .logging_utils import info as log_info, error as log_error
from .state_common import account_uid, utc_now

RETRYABLE_STATUS = (408, 429, 449, 503)
# Lost optimistic-concurrency races: create conflict, etag mismatch.
CONFLICT_STATUS = (409, 412)
MAX_TRIES = 3
MAX_WRITE_TRIES = 5


def _retryable(exc: Exception) -> bool:
    return getattr(exc, "status_code", None) in RETRYABLE_STATUS


_retry_transient = backoff.on_exception(
    backoff.expo,
    exceptions.CosmosHttpResponseError,
    max_tries=MAX_TRIES,
    max_time=10,
    giveup=lambda exc: not _retryable(exc),
)

_retry_write = backoff.on_exception(
    backoff.expo,
    exceptions.CosmosHttpResponseError,
    max_tries=MAX_WRITE_TRIES,
    max_time=10,
    giveup=lambda exc: not (_retryable(exc) or getattr(exc, "status_code", None) in CONFLICT_STATUS),
)


class CosmosStudioStore:
    """One document per account: ``{id, partitionKey, user, posts, notifications, credits}``."""

    _client: Any = None
    _container: Any = None

    @classmethod
    def _ensure_container(cls):
        if cls._container is not None:
            return cls._container

        conn = os.getenv("COSMOS_DB_CONNECTION_STRING")
        db_name = os.getenv("COSMOS_DB_NAME")
        container_name = os.getenv("COSMOS_DB_CONTAINER_STUDIO")
        if not conn or not db_name or not container_name:
            raise ConfigurationError("Cosmos configuration is missing", details={"container": container_name})

        client = CosmosClient.from_connection_string(conn)
        db = client.get_database_client(db_name)
        cls._client = client
        cls._container = db.get_container_client(container_name)
        log_info(None, "cosmos:studio:init", container=container_name)
        return cls._container

    @classmethod
    @_retry_transient
    def _read(cls, account_id: str) -> Optional[Dict[str, Any]]:
        container = cls._ensure_container()
        uid = account_uid(account_id)
        try:
            return container.read_item(item=uid, partition_key=uid)
        except exceptions.CosmosResourceNotFoundError:
            return None

    @classmethod
    @_retry_write
    def _update(cls, account_id: str, key: str, compute: Callable[[Any], Any]) -> Any:
        """Set ``key`` to ``compute(current)`` guarded by the document etag."""
        container = cls._ensure_container()
        uid = account_uid(account_id)
        item = cls._read(account_id)
        try:
            if item is None:
                item = {"id": uid, "partitionKey": uid, key: compute(None), "lastUpdateUtc": utc_now()}
                container.create_item(body=item)
            else:
                item[key] = compute(item.get(key))
                item["lastUpdateUtc"] = utc_now()
                container.replace_item(
                    item=uid,
                    body=item,
                    etag=item.get("_etag"),
                    match_condition=MatchConditions.IfNotModified,
                )
        except exceptions.CosmosHttpResponseError as exc:
            log_error(None, "cosmos:studio:write_failed", key=key, status=exc.status_code, error=str(exc))
            raise
        log_info(None, "cosmos:studio:write", key=key)
        return item[key]

    @classmethod
    def _put(cls, account_id: str, key: str, value: Any) -> None:
        cls._update(account_id, key, lambda _current: value)

    @classmethod
    def get_user(cls, account_id: str) -> Optional[Dict[str, Any]]:
        return (cls._read(account_id) or {}).get("user")

    @classmethod
    def save_user(cls, account_id: str, profile: Dict[str, Any]) -> None:
        cls._put(account_id, "user", profile)

    @classmethod
    def get_posts(cls, account_id: str) -> List[Dict[str, Any]]:
        return (cls._read(account_id) or {}).get("posts") or []

    @classmethod
    def save_posts(cls, account_id: str, posts: List[Dict[str, Any]]) -> None:
        cls._put(account_id, "posts", posts)

    @classmethod
    def get_notifications(cls, account_id: str) -> List[Dict[str, Any]]:
        return (cls._read(account_id) or {}).get("notifications") or []

    @classmethod
    def save_notifications(cls, account_id: str, notifications: List[Dict[str, Any]]) -> None:
        cls._put(account_id, "notifications", notifications)

    @classmethod
    def get_credits(cls, account_id: str) -> Optional[int]:
        return (cls._read(account_id) or {}).get("credits")

    @classmethod
    def save_credits(cls, account_id: str, credits: int) -> None:
        cls._put(account_id, "credits", credits)

    @classmethod
    def add_credits(cls, account_id: str, delta: int, initial: int = 0) -> int:
        """Apply ``delta`` to the stored balance (``initial`` if none yet), clamped at zero."""
        return cls._update(
            account_id,
            "credits",
            lambda current: max((initial if current is None else current) + delta, 0),
        )
