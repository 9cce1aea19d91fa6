import asyncio
import re
from typing import Any, Optional, Sequence

from sociai.media.placeholder import render_placeholder_image
from sociai.shared.logging_utils import info as log_info
from sociai.specs.common.enums import AspectRatio
from sociai.specs.common.errors import AuthorizationRequired
from sociai.specs.models.generation import ReferenceAsset

from .base import InlineMedia, VideoJob

_HEX_RE = re.compile(r"#[0-9A-Fa-f]{6}\b")


class PlaceholderClient:
    """Offline stand-in used when no Gemini key is configured.

    Text answers are empty (callers fall back to their defaults), images are
    palette gradients rendered locally, video needs a real key.
    """

    provider = "placeholder"

    async def generate_json(self, *, model: str, prompt: str, schema: Any = None, search: bool = False) -> str:
        log_info(None, "placeholder:text_skipped", model=model, search=search)
        return ""

    async def generate_image(
        self,
        *,
        prompt: str,
        references: Sequence[ReferenceAsset],
        aspect_ratio: AspectRatio,
        seed: int = 0,
    ) -> Optional[InlineMedia]:
        palette = _HEX_RE.findall(prompt)[:5]
        caption = prompt.split("\n", 1)[0][:160]
        png, _meta = await asyncio.to_thread(
            render_placeholder_image, caption, palette, aspect_ratio=aspect_ratio, seed=seed
        )
        return InlineMedia(data=png, mime_type="image/png")

    async def submit_video(self, *, prompt: str, aspect_ratio: AspectRatio, resolution: str) -> VideoJob:
        raise AuthorizationRequired("Video rendering needs a Gemini API key with active billing.")

    async def refresh_video(self, job: VideoJob) -> VideoJob:
        raise AuthorizationRequired("Video rendering needs a Gemini API key with active billing.")

    async def fetch_video(self, job: VideoJob) -> InlineMedia:
        raise AuthorizationRequired("Video rendering needs a Gemini API key with active billing.")
