from typing import Optional

from sociai.shared.config import StudioConfig, get_studio_config
from sociai.shared.logging_utils import info as log_info

from .base import GenerativeClient
from .gemini_client import GeminiClient
from .placeholder_client import PlaceholderClient


def get_generative_client(config: Optional[StudioConfig] = None) -> GenerativeClient:
    """Gemini when a key is configured (or forced), else the offline placeholder."""
    cfg = config or get_studio_config()
    if cfg.use_gemini:
        return GeminiClient(cfg)
    log_info(None, "generative:placeholder_backend", backend=cfg.generative_backend)
    return PlaceholderClient()
