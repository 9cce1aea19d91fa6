"""
Media rendering: brief -> one image or video asset.

Images are a single request/response. Video is a long-running operation that
is submitted once and then polled at a fixed interval until it is done, the
wall-clock budget runs out (``GenerationTimedOut``) or the awaiting task is
cancelled.
"""
import asyncio
import time
from typing import Awaitable, Callable, Optional, Sequence

import backoff

from sociai.clients.base import NOT_FOUND_MARKER, REAUTH_MESSAGE, GenerativeClient, VideoJob
from sociai.media.assets import publish_media
from sociai.shared.config import StudioConfig, get_studio_config
from sociai.shared.logging_utils import info as log_info, warning as log_warning
from sociai.specs.common.enums import AspectRatio, GenerationMode, MediaType, Platform
from sociai.specs.common.errors import AuthorizationRequired, GenerationFailed, GenerationTimedOut
from sociai.specs.models.generation import (
    Brief,
    ImageDebugInfo,
    ReferenceAsset,
    RenderResult,
    VideoDebugInfo,
)

from .base import Agent

MAX_REFERENCES = 3

NEGATIVE_PROMPT = (
    "no user-interface elements, no HUD overlays, no app screenshots, no buttons, "
    "no watermarks, no logos other than the supplied one, no distorted hands or faces"
)


def aspect_hint_for(platform: Platform, media_type: MediaType) -> AspectRatio:
    """Square for square-first feeds, vertical for short-form video, widescreen otherwise."""
    platform = Platform(platform)
    if platform is Platform.TIKTOK:
        return AspectRatio.VERTICAL
    if platform is Platform.INSTAGRAM:
        return AspectRatio.VERTICAL if MediaType(media_type) is MediaType.VIDEO else AspectRatio.SQUARE
    return AspectRatio.WIDESCREEN


def _text_rule(brief: Brief) -> str:
    if brief.textPolicy.allowText and brief.textPolicy.overlayText:
        return f'Render exactly one short headline: "{brief.textPolicy.overlayText}". No other text.'
    return "Absolutely no text, letters, numbers or captions anywhere in the image."


def compose_image_prompt(brief: Brief, references: Sequence[ReferenceAsset] = ()) -> str:
    kind = "photograph" if brief.mode is GenerationMode.PHOTO else "graphic poster"
    lines = [
        f"Create a {brief.visualStyle} {kind} of {brief.mainSubject}.",
        f"Mood: {brief.mood}.",
        f"Composition: {brief.composition}.",
        f"Colour palette: {', '.join(brief.palette)}.",
    ]
    if brief.brandName:
        lines.append(f"It represents the brand {brief.brandName} (voice: {brief.brandVoice or 'neutral'}).")
    if brief.keywords:
        lines.append(f"Keywords: {', '.join(brief.keywords)}.")
    if brief.avoidSingleHue:
        lines.append("Use the palette as accents and lighting; do not flood the scene with a single hue.")
    roles = {ref.role for ref in references}
    if "logo" in roles:
        lines.append("Integrate the supplied logo subtly and naturally, keep its shape and colours intact.")
    if "style" in roles:
        lines.append("Match the look and feel of the supplied style reference images without copying their content.")
    if brief.editInstruction:
        lines.append(f"Apply this edit: {brief.editInstruction}.")
    if brief.seed > 0:
        lines.append(f"Variation {brief.seed}: use a fresh angle and setting.")
    lines.append(_text_rule(brief))
    if brief.noUiElements:
        lines.append(f"Avoid: {NEGATIVE_PROMPT}.")
    return "\n".join(lines)


def compose_video_prompt(brief: Brief) -> str:
    lines = [
        f"A short cinematic {brief.visualStyle} video of {brief.mainSubject}.",
        f"Mood: {brief.mood}. Composition: {brief.composition}.",
        f"Colour grading built on {', '.join(brief.palette)}.",
        "Smooth camera movement, natural motion, professional lighting.",
    ]
    if brief.editInstruction:
        lines.append(f"Apply this edit: {brief.editInstruction}.")
    if brief.seed > 0:
        lines.append(f"Variation {brief.seed}: use a fresh angle and setting.")
    lines.append("No on-screen text or captions.")
    if brief.noUiElements:
        lines.append(f"Avoid: {NEGATIVE_PROMPT}.")
    return " ".join(lines)


class RenderAgent(Agent):
    """Turns a brief into a published media URL."""

    def __init__(
        self,
        client: GenerativeClient,
        *,
        config: Optional[StudioConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        super().__init__(client)
        self.config = config or get_studio_config()
        self._clock = clock
        self._sleep = sleep

    async def run(self, *args, **kwargs) -> RenderResult:
        return await self.render_media(*args, **kwargs)

    async def render_media(
        self,
        brief: Brief,
        media_type: MediaType,
        aspect_hint: AspectRatio,
        reference_assets: Sequence[ReferenceAsset] = (),
    ) -> RenderResult:
        media_type = MediaType(media_type)
        aspect_hint = AspectRatio(aspect_hint)
        if len(reference_assets) > MAX_REFERENCES:
            raise ValueError(f"At most {MAX_REFERENCES} reference assets are supported")
        if media_type is MediaType.VIDEO:
            return await self._render_video(brief, aspect_hint)
        return await self._render_image(brief, aspect_hint, reference_assets)

    async def _render_image(
        self, brief: Brief, aspect: AspectRatio, references: Sequence[ReferenceAsset]
    ) -> RenderResult:
        prompt = compose_image_prompt(brief, references)
        log_info(self._trace_id, "render:image_start", aspect=aspect.value, references=len(references), seed=brief.seed)
        media = await self._client.generate_image(
            prompt=prompt, references=list(references), aspect_ratio=aspect, seed=brief.seed
        )
        if media is None or not media.data:
            raise GenerationFailed("No image was returned by the model", details={"stage": "image"})

        url = await asyncio.to_thread(
            publish_media, media.data, media.mime_type, media_type=MediaType.IMAGE, trace_id=self._trace_id
        )
        log_info(self._trace_id, "render:image_done", size=len(media.data))
        return RenderResult(
            url=url,
            mediaType=MediaType.IMAGE,
            mimeType=media.mime_type,
            rawPromptUsed=prompt,
            debugInfo=ImageDebugInfo(
                palette=brief.palette,
                missingFields=brief.missingFields,
                mode=brief.mode,
                seed=brief.seed,
                aspectRatio=aspect,
                referenceCount=len(references),
                briefFallback=brief.isFallback,
                model=self.config.image_model,
            ),
        )

    @backoff.on_exception(backoff.expo, GenerationFailed, max_tries=3, factor=2)
    async def _refresh(self, job: VideoJob) -> VideoJob:
        return await self._client.refresh_video(job)

    async def _render_video(self, brief: Brief, aspect: AspectRatio) -> RenderResult:
        # Veo has no square output.
        if aspect is AspectRatio.SQUARE:
            aspect = AspectRatio.VERTICAL
        prompt = compose_video_prompt(brief)
        resolution = self.config.video_resolution
        started = self._clock()
        log_info(self._trace_id, "render:video_submit", aspect=aspect.value, resolution=resolution)
        job = await self._client.submit_video(prompt=prompt, aspect_ratio=aspect, resolution=resolution)

        attempts = 0
        while not job.done:
            elapsed = self._clock() - started
            if elapsed >= self.config.video_timeout:
                log_warning(self._trace_id, "render:video_timeout", attempts=attempts, elapsed=elapsed)
                raise GenerationTimedOut(
                    f"Video generation did not finish within {self.config.video_timeout:g} seconds",
                    details={"attempts": attempts, "elapsedSeconds": elapsed},
                )
            await self._sleep(self.config.video_poll_interval)
            job = await self._refresh(job)
            attempts += 1
            log_info(self._trace_id, "render:video_poll", attempt=attempts, done=job.done)

        if job.error:
            if NOT_FOUND_MARKER in job.error:
                raise AuthorizationRequired(REAUTH_MESSAGE, details={"stage": "video", "upstream": job.error})
            raise GenerationFailed(f"Video generation failed: {job.error}", details={"stage": "video"})
        if not job.uri:
            raise GenerationFailed("Video generation failed - no URI", details={"stage": "video"})

        media = await self._client.fetch_video(job)
        url = await asyncio.to_thread(
            publish_media, media.data, media.mime_type, media_type=MediaType.VIDEO, trace_id=self._trace_id
        )
        elapsed = self._clock() - started
        log_info(self._trace_id, "render:video_done", attempts=attempts, elapsed=elapsed)
        return RenderResult(
            url=url,
            mediaType=MediaType.VIDEO,
            mimeType=media.mime_type,
            rawPromptUsed=prompt,
            debugInfo=VideoDebugInfo(
                palette=brief.palette,
                missingFields=brief.missingFields,
                seed=brief.seed,
                aspectRatio=aspect,
                resolution=resolution,
                pollAttempts=attempts,
                elapsedSeconds=round(elapsed, 3),
                briefFallback=brief.isFallback,
                model=self.config.video_model,
            ),
        )
