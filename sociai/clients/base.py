from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence

from sociai.specs.common.enums import AspectRatio
from sociai.specs.models.generation import ReferenceAsset

# Veo answers this for keys without an active billing project.
NOT_FOUND_MARKER = "Requested entity was not found"
REAUTH_MESSAGE = "API key re-authorization required. Select a project with active billing."


@dataclass
class InlineMedia:
    data: bytes
    mime_type: str


@dataclass
class VideoJob:
    """Handle of a long-running video operation."""

    handle: Any
    done: bool = False
    uri: Optional[str] = None
    error: Optional[str] = None


class GenerativeClient(Protocol):
    """External generative model collaborator (text, image, video)."""

    provider: str

    async def generate_json(self, *, model: str, prompt: str, schema: Any = None, search: bool = False) -> str:
        """Return the raw text of a JSON answer; callers parse with defaults.

        ``search`` grounds the answer in live web results.
        """

    async def generate_image(
        self,
        *,
        prompt: str,
        references: Sequence[ReferenceAsset],
        aspect_ratio: AspectRatio,
        seed: int = 0,
    ) -> Optional[InlineMedia]:
        """Return the first inline image of the answer, or None when there is none."""

    async def submit_video(self, *, prompt: str, aspect_ratio: AspectRatio, resolution: str) -> VideoJob:
        ...

    async def refresh_video(self, job: VideoJob) -> VideoJob:
        ...

    async def fetch_video(self, job: VideoJob) -> InlineMedia:
        ...
