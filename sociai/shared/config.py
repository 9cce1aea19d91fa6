"""
Studio configuration.

Reads environment variables once into a frozen dataclass. Call
``get_studio_config.cache_clear()`` after changing the environment (tests do).
"""

import os
import tempfile
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional


DEFAULT_BRIEF_MODEL = "gemini-3-pro-preview"
DEFAULT_TEXT_MODEL = "gemini-3-flash-preview"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"
DEFAULT_VIDEO_MODEL = "veo-3.1-fast-generate-preview"

# Use a temp-based directory by default to avoid Azure Functions
# file-watcher restarts when writing local state.
_DEFAULT_STATE_BASE = Path(tempfile.gettempdir()) / "sociai-studio-runtime"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class StudioConfig:
    api_key: Optional[str] = None
    generative_backend: str = "auto"
    brief_model: str = DEFAULT_BRIEF_MODEL
    text_model: str = DEFAULT_TEXT_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    video_model: str = DEFAULT_VIDEO_MODEL
    video_resolution: str = "720p"
    video_poll_interval: float = 10.0
    video_timeout: float = 600.0
    starting_credits: int = 500
    state_backend: str = "auto"
    state_dir: Path = _DEFAULT_STATE_BASE
    blob_container: str = "media"
    blob_connection_string: Optional[str] = None
    reference_max_side: int = 1024

    @property
    def blob_enabled(self) -> bool:
        return bool(self.blob_connection_string)

    @property
    def use_gemini(self) -> bool:
        if self.generative_backend == "gemini":
            return True
        if self.generative_backend == "placeholder":
            return False
        return bool(self.api_key)


@lru_cache(maxsize=1)
def get_studio_config() -> StudioConfig:
    return StudioConfig(
        api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or None,
        generative_backend=os.getenv("SOCIAI_GENERATIVE_BACKEND", "auto").lower(),
        brief_model=os.getenv("SOCIAI_BRIEF_MODEL", DEFAULT_BRIEF_MODEL),
        text_model=os.getenv("SOCIAI_TEXT_MODEL", DEFAULT_TEXT_MODEL),
        image_model=os.getenv("SOCIAI_IMAGE_MODEL", DEFAULT_IMAGE_MODEL),
        video_model=os.getenv("SOCIAI_VIDEO_MODEL", DEFAULT_VIDEO_MODEL),
        video_resolution=os.getenv("SOCIAI_VIDEO_RESOLUTION", "720p"),
        video_poll_interval=_env_float("SOCIAI_VIDEO_POLL_INTERVAL_SECONDS", 10.0),
        video_timeout=_env_float("SOCIAI_VIDEO_TIMEOUT_SECONDS", 600.0),
        starting_credits=_env_int("SOCIAI_STARTING_CREDITS", 500),
        state_backend=os.getenv("STUDIO_STATE_BACKEND", "auto").lower(),
        state_dir=Path(os.getenv("RUNTIME_STATE_DIR", str(_DEFAULT_STATE_BASE))),
        blob_container=os.getenv("PUBLIC_BLOB_CONTAINER", "media"),
        blob_connection_string=os.getenv("PUBLIC_BLOB_CONNECTION_STRING") or None,
        reference_max_side=_env_int("SOCIAI_REFERENCE_MAX_SIDE", 1024),
    )
