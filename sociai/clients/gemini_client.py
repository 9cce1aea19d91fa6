"""
Gemini client for the generation pipeline, built on the google-genai SDK.

- text/JSON answers for briefs and copy (``generate_json``)
- inline image generation with up to three reference images
- Veo video generation as a long-running operation (submit / refresh / fetch)

API errors are translated into studio errors: 401/403 and the
"Requested entity was not found" answer Veo gives for a key without an
active billing project become ``AuthorizationRequired``; everything else is
``GenerationFailed``.
"""

import asyncio
import base64
from typing import Any, Optional, Sequence

import requests
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from sociai.shared.config import StudioConfig, get_studio_config
from sociai.shared.logging_utils import info as log_info
from sociai.specs.common.enums import AspectRatio
from sociai.specs.common.errors import AuthorizationRequired, GenerationFailed, StudioError
from sociai.specs.models.generation import ReferenceAsset

from .base import NOT_FOUND_MARKER, REAUTH_MESSAGE, InlineMedia, VideoJob


def translate_api_error(exc: Exception, stage: str) -> StudioError:
    code = getattr(exc, "code", None)
    if code in (401, 403) or NOT_FOUND_MARKER in str(exc):
        return AuthorizationRequired(REAUTH_MESSAGE, details={"stage": stage, "upstream": str(exc)})
    return GenerationFailed(f"{stage} failed: {exc}", details={"stage": stage, "status": code})


class GeminiClient:
    provider = "gemini"

    def __init__(self, config: Optional[StudioConfig] = None, api_key: Optional[str] = None):
        self.config = config or get_studio_config()
        self._api_key = api_key or self.config.api_key
        self._client: Optional[genai.Client] = None

    def _get_client(self) -> genai.Client:
        """Lazy-init the genai client."""
        if not self._api_key:
            raise AuthorizationRequired(
                "No Gemini API key configured. Set GEMINI_API_KEY to a key with active billing."
            )
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def generate_json(self, *, model: str, prompt: str, schema: Any = None, search: bool = False) -> str:
        client = self._get_client()
        if search:
            # search grounding cannot be combined with a JSON response type
            config_kwargs = {"tools": [types.Tool(google_search=types.GoogleSearch())]}
        else:
            config_kwargs = {"response_mime_type": "application/json"}
            if schema is not None:
                config_kwargs["response_schema"] = schema
        try:
            response = await client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=types.GenerateContentConfig(**config_kwargs),
            )
        except genai_errors.APIError as exc:
            raise translate_api_error(exc, "text") from exc
        return response.text or ""

    async def generate_image(
        self,
        *,
        prompt: str,
        references: Sequence[ReferenceAsset],
        aspect_ratio: AspectRatio,
        seed: int = 0,
    ) -> Optional[InlineMedia]:
        client = self._get_client()
        parts = [types.Part.from_bytes(data=ref.data, mime_type=ref.mimeType) for ref in references]
        parts.append(types.Part.from_text(text=prompt))
        config = types.GenerateContentConfig(
            response_modalities=["IMAGE", "TEXT"],
            image_config=types.ImageConfig(aspect_ratio=aspect_ratio.value),
            seed=seed,
        )
        try:
            response = await client.aio.models.generate_content(
                model=self.config.image_model,
                contents=[types.Content(role="user", parts=parts)],
                config=config,
            )
        except genai_errors.APIError as exc:
            raise translate_api_error(exc, "image") from exc

        for candidate in response.candidates or []:
            content = candidate.content
            for part in (content.parts if content else None) or []:
                if part.inline_data and part.inline_data.data:
                    data = part.inline_data.data
                    if isinstance(data, str):
                        data = base64.b64decode(data)
                    return InlineMedia(data=data, mime_type=part.inline_data.mime_type or "image/png")
        return None

    @staticmethod
    def _job(operation: Any) -> VideoJob:
        uri = None
        if operation.done and operation.response and operation.response.generated_videos:
            video = operation.response.generated_videos[0].video
            uri = video.uri if video else None
        error = getattr(operation, "error", None)
        return VideoJob(
            handle=operation,
            done=bool(operation.done),
            uri=uri,
            error=str(error) if error else None,
        )

    async def submit_video(self, *, prompt: str, aspect_ratio: AspectRatio, resolution: str) -> VideoJob:
        client = self._get_client()
        try:
            operation = await client.aio.models.generate_videos(
                model=self.config.video_model,
                prompt=prompt,
                config=types.GenerateVideosConfig(
                    number_of_videos=1,
                    resolution=resolution,
                    aspect_ratio=aspect_ratio.value,
                ),
            )
        except genai_errors.APIError as exc:
            raise translate_api_error(exc, "video") from exc
        log_info(None, "gemini:video_submitted", operation=getattr(operation, "name", None))
        return self._job(operation)

    async def refresh_video(self, job: VideoJob) -> VideoJob:
        client = self._get_client()
        try:
            operation = await client.aio.operations.get(job.handle)
        except genai_errors.APIError as exc:
            raise translate_api_error(exc, "video") from exc
        return self._job(operation)

    async def fetch_video(self, job: VideoJob) -> InlineMedia:
        if not job.uri:
            raise GenerationFailed("Video generation failed - no URI")

        def _download() -> requests.Response:
            r = requests.get(job.uri, params={"key": self._api_key}, timeout=120)
            r.raise_for_status()
            return r

        try:
            r = await asyncio.to_thread(_download)
        except requests.RequestException as exc:
            raise GenerationFailed(f"Video download failed: {exc}") from exc
        content_type = r.headers.get("Content-Type", "video/mp4").split(";")[0]
        return InlineMedia(data=r.content, mime_type=content_type)
