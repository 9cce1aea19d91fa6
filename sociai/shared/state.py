import os
from typing import Any, Dict, List, Optional, Protocol

from .config import get_studio_config
from .state_file import FileStudioStore


class StudioStore(Protocol):
    """Persistence collaborator keyed by account identifier."""

    def get_user(self, account_id: str) -> Optional[Dict[str, Any]]: ...
    def save_user(self, account_id: str, profile: Dict[str, Any]) -> None: ...
    def get_posts(self, account_id: str) -> List[Dict[str, Any]]: ...
    def save_posts(self, account_id: str, posts: List[Dict[str, Any]]) -> None: ...
    def get_notifications(self, account_id: str) -> List[Dict[str, Any]]: ...
    def save_notifications(self, account_id: str, notifications: List[Dict[str, Any]]) -> None: ...
    def get_credits(self, account_id: str) -> Optional[int]: ...
    def save_credits(self, account_id: str, credits: int) -> None: ...
    def add_credits(self, account_id: str, delta: int, initial: int = 0) -> int: ...


def _cosmos_configured() -> bool:
    return bool(
        os.getenv("COSMOS_DB_CONNECTION_STRING")
        and os.getenv("COSMOS_DB_NAME")
        and os.getenv("COSMOS_DB_CONTAINER_STUDIO")
    )


def select_store() -> StudioStore:
    backend = get_studio_config().state_backend
    if backend == "file":
        return FileStudioStore()
    if backend == "cosmos" or (backend == "auto" and _cosmos_configured()):
        from .state_cosmos import CosmosStudioStore

        return CosmosStudioStore()
    return FileStudioStore()
