"""Shared fixtures: isolated config/state and a scripted generative client."""

import json
from itertools import count
from unittest.mock import AsyncMock

import pytest

from sociai.clients.base import InlineMedia, VideoJob
from sociai.generation.studio import StudioSession
from sociai.shared.config import StudioConfig, get_studio_config
from sociai.specs.common.enums import Platform, Tone
from sociai.specs.models.domain import BrandProfile, SocialPost

_ENV_KEYS = (
    "GEMINI_API_KEY",
    "API_KEY",
    "SOCIAI_GENERATIVE_BACKEND",
    "SOCIAI_STARTING_CREDITS",
    "SOCIAI_VIDEO_POLL_INTERVAL_SECONDS",
    "SOCIAI_VIDEO_TIMEOUT_SECONDS",
    "PUBLIC_BLOB_CONNECTION_STRING",
    "COSMOS_DB_CONNECTION_STRING",
    "COSMOS_DB_NAME",
    "COSMOS_DB_CONTAINER_STUDIO",
)

BRIEF_JSON = {
    "main_subject": "a barista pouring latte art in a sunlit cafe",
    "keywords": ["coffee", "craft", "morning"],
    "visual_style": "warm editorial photography",
    "mood": "cozy and inviting",
    "color_direction": ["#6F4E37", "#F5E6CC", "#2E8B57"],
    "composition": "close-up, shallow depth of field",
    "text_policy": {"allow_text": False, "overlay_text": None},
}


@pytest.fixture(autouse=True)
def studio_env(monkeypatch, tmp_path):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("STUDIO_STATE_BACKEND", "file")
    monkeypatch.setenv("RUNTIME_STATE_DIR", str(tmp_path / "state"))
    get_studio_config.cache_clear()
    StudioSession.forget()
    yield tmp_path
    get_studio_config.cache_clear()
    StudioSession.forget()


@pytest.fixture
def config():
    return StudioConfig(video_poll_interval=10.0, video_timeout=600.0)


@pytest.fixture
def brand():
    return BrandProfile(
        name="Bean There",
        industry="Coffee shop",
        website="https://beanthere.example",
        email="hello@beanthere.example",
        tone=Tone.FUNNY,
        primaryColor="#6F4E37",
        secondaryColor="#F5E6CC",
        brandVoice="friendly neighbourhood barista",
    )


@pytest.fixture
def post():
    return SocialPost(
        id="post-1",
        platform=Platform.INSTAGRAM,
        date="2026-10-20",
        content="Our new autumn roast is here. Come taste it this weekend!",
        hashtags=["coffee", "#autumn"],
    )


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def make_client(brief=BRIEF_JSON, *, video_polls_pending=0, video_uri="https://video.example/v.mp4"):
    """Generative client double with AsyncMock methods.

    Images get distinct bytes per call so every render yields a new URL. The
    video job reports not-done ``video_polls_pending`` times before finishing.
    """
    client = AsyncMock()
    client.provider = "fake"
    client.generate_json = AsyncMock(return_value=json.dumps(brief) if isinstance(brief, dict) else brief)

    images = count(1)

    async def _image(*, prompt, references, aspect_ratio, seed=0):
        return InlineMedia(data=f"image-{seed}-{next(images)}".encode(), mime_type="image/png")

    client.generate_image = AsyncMock(side_effect=_image)

    pending = {"left": video_polls_pending}

    async def _refresh(job):
        if pending["left"] > 0:
            pending["left"] -= 1
            return VideoJob(handle=job.handle, done=False)
        return VideoJob(handle=job.handle, done=True, uri=video_uri)

    client.submit_video = AsyncMock(return_value=VideoJob(handle="operations/123", done=False))
    client.refresh_video = AsyncMock(side_effect=_refresh)
    client.fetch_video = AsyncMock(return_value=InlineMedia(data=b"\x00\x00\x00\x18ftypmp4", mime_type="video/mp4"))
    return client


@pytest.fixture
def client():
    return make_client()


@pytest.fixture
def client_factory():
    return make_client
