"""
Copy generation for the planner: the starter and weekly content plans,
single-post rewrites and the trend feed. All of them ask the text model for
JSON and fall back to an empty result when the answer cannot be parsed.
"""
import uuid
from datetime import date, timedelta
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from sociai.clients.base import GenerativeClient
from sociai.shared.config import get_studio_config
from sociai.shared.json_utils import parse_with_default
from sociai.shared.logging_utils import info as log_info, warning as log_warning
from sociai.shared.state_common import utc_now
from sociai.specs.common.enums import MediaSource, NotificationType, Platform, PostStatus
from sociai.specs.common.errors import GenerationFailed
from sociai.specs.models.domain import BrandProfile, ContentFormat, Notification, SocialPost

from .base import Agent

DEFAULT_FORMATS: List[ContentFormat] = [
    ContentFormat(id="1", name="HOLOCRON", keyword="EDUCATIONAL & STRATEGY", postsPerWeek=3, color="#34E0F7"),
    ContentFormat(id="2", name="HYPERDRIVE", keyword="FAST NEWS & PROMO", postsPerWeek=2, color="#C74CFF"),
    ContentFormat(id="3", name="CANTINA", keyword="COMMUNITY & VIBES", postsPerWeek=2, color="#8C4DFF"),
    ContentFormat(id="4", name="NEXUS PULSE", keyword="VIRAL TRENDS", postsPerWeek=1, color="#FFFFFF"),
]
STARTER_POST_COUNT = 3
MAX_TRENDS = 5


class StrategyPostDraft(BaseModel):
    """One post of the weekly plan as returned by the text model."""

    platform: str = Platform.INSTAGRAM.value
    date: Optional[str] = None
    content: str = ""
    hashtags: List[str] = Field(default_factory=list)
    format: Optional[str] = None


class CopyDraft(BaseModel):
    content: str = ""
    hashtags: List[str] = Field(default_factory=list)


class TrendDraft(BaseModel):
    title: str = ""
    message: str = ""


def format_signature(profile: BrandProfile) -> str:
    parts = []
    if profile.website:
        parts.append(f"🌐 Website: {profile.website}")
    if profile.email:
        parts.append(f"📧 Email: {profile.email}")
    if profile.phone:
        parts.append(f"📞 Contact: {profile.phone}")
    if profile.address:
        parts.append(f"📍 Address: {profile.address}")
    return "\n---\n" + "\n".join(parts) if parts else ""


def with_signature(text: str, profile: BrandProfile) -> str:
    signature = format_signature(profile)
    if not profile.autoAppendSignature or not signature or signature in text:
        return text
    return f"{text}\n{signature}"


def _platform(value: str) -> Platform:
    try:
        return Platform(value.strip().lower())
    except ValueError:
        return Platform.INSTAGRAM


class StrategyAgent(Agent):
    def __init__(self, client: GenerativeClient, *, model: Optional[str] = None) -> None:
        super().__init__(client)
        self.model = model or get_studio_config().text_model

    async def run(self, *args, **kwargs) -> List[SocialPost]:
        return await self.weekly_strategy(*args, **kwargs)

    async def _plan(self, prompt: str, profile: BrandProfile, start: date) -> List[SocialPost]:
        text = await self._client.generate_json(model=self.model, prompt=prompt, schema=List[StrategyPostDraft])
        drafts = parse_with_default(
            text,
            List[StrategyPostDraft],
            list,
            on_error=lambda exc: log_warning(self._trace_id, "strategy:unparseable", error=str(exc)),
        )
        posts: List[SocialPost] = []
        for i, draft in enumerate(d for d in drafts if d.content.strip()):
            posts.append(
                SocialPost(
                    id=uuid.uuid4().hex,
                    platform=_platform(draft.platform),
                    date=draft.date or (start + timedelta(days=i % 7)).isoformat(),
                    content=with_signature(draft.content.strip(), profile),
                    hashtags=draft.hashtags,
                    status=PostStatus.NEEDS_REVIEW,
                    mediaSource=MediaSource.AI_GENERATED,
                    format=draft.format,
                )
            )
        return posts

    async def initial_strategy(
        self, profile: BrandProfile, language: str = "en", *, start: Optional[date] = None
    ) -> List[SocialPost]:
        """Three starter posts for a freshly onboarded brand."""
        start = start or date.today()
        prompt = (
            f'Generate {STARTER_POST_COUNT} high-impact social media posts for "{profile.name}" '
            f"({profile.businessDescription or profile.industry or 'general business'}). Language: {language}. "
            f"Brand voice: {profile.brandVoice or profile.tone.value}. Audience: {profile.targetAudience}. "
            f"Dates from {start.isoformat()} (YYYY-MM-DD). "
            "Each item: platform (instagram, facebook, linkedin or tiktok), date, content, hashtags. "
            "Return a JSON array."
        )
        posts = (await self._plan(prompt, profile, start))[:STARTER_POST_COUNT]
        log_info(self._trace_id, "strategy:initial_generated", posts=len(posts))
        return posts

    async def latest_trends(self, industry: Optional[str], language: str = "en") -> List[Notification]:
        """Current social media trends for ``industry`` as unread trend notifications."""
        topic = (industry or "").strip() or "social media"
        prompt = (
            f"List up to {MAX_TRENDS} viral social media trends for {topic} as of today. Language: {language}. "
            'Return ONLY a JSON array of {"title": string, "message": string}.'
        )
        text = await self._client.generate_json(model=self.model, prompt=prompt, search=True)
        drafts = parse_with_default(
            text,
            List[TrendDraft],
            list,
            on_error=lambda exc: log_warning(self._trace_id, "strategy:trends_unparseable", error=str(exc)),
        )
        trends = [
            Notification(
                id=uuid.uuid4().hex,
                type=NotificationType.TREND,
                title=d.title.strip(),
                message=d.message.strip(),
                timestamp=utc_now(),
            )
            for d in drafts
            if d.title.strip() and d.message.strip()
        ][:MAX_TRENDS]
        log_info(self._trace_id, "strategy:trends_fetched", industry=topic, trends=len(trends))
        return trends

    async def weekly_strategy(
        self,
        profile: BrandProfile,
        formats: Optional[Sequence[ContentFormat]] = None,
        language: str = "en",
        *,
        week_start: Optional[date] = None,
    ) -> List[SocialPost]:
        """Generate one week of posts spread over the given content formats.

        Returns an empty list when the model answer is unusable. Dates the
        model leaves out are spread across the seven days from ``week_start``.
        """
        formats = list(formats or DEFAULT_FORMATS)
        week_start = week_start or date.today()
        total = sum(f.postsPerWeek for f in formats)
        formats_str = ", ".join(f"{f.name}: {f.keyword} ({f.postsPerWeek}/week)" for f in formats)
        prompt = (
            f'Generate a weekly content plan of {total} social media posts for "{profile.name}" '
            f"({profile.industry or 'general business'}). Language: {language}. Tone: {profile.tone.value}. "
            f"Brand voice: {profile.brandVoice or profile.tone.value}. Audience: {profile.targetAudience}. "
            f"Formats: {formats_str}. Dates between {week_start.isoformat()} and "
            f"{(week_start + timedelta(days=6)).isoformat()} (YYYY-MM-DD). "
            "Each item: platform (instagram, facebook, linkedin or tiktok), date, content, hashtags, format. "
            "Return a JSON array."
        )
        posts = await self._plan(prompt, profile, week_start)
        log_info(self._trace_id, "strategy:weekly_generated", posts=len(posts), formats=len(formats))
        return posts

    async def rewrite_copy(self, post: SocialPost, profile: BrandProfile, language: str = "en") -> CopyDraft:
        """Rewrite a post's text and hashtags in the brand voice."""
        prompt = (
            f'Rewrite this {post.platform.value} post for "{profile.name}" in language {language}. '
            f"Brand voice: {profile.brandVoice or profile.tone.value}. "
            f"Value proposition: {profile.valueProposition or 'premium quality and reliability'}. "
            "Make it longer and more engaging, keep the core message, no contact details. "
            'Return JSON: {"content": string, "hashtags": [string]}.\n\n'
            f'POST:\n"{post.content}"'
        )
        text = await self._client.generate_json(model=self.model, prompt=prompt, schema=CopyDraft)
        draft = parse_with_default(text, CopyDraft, None)
        if draft is None or not draft.content.strip():
            raise GenerationFailed("The copy rewrite returned no text", details={"stage": "copy", "postId": post.id})
        log_info(self._trace_id, "strategy:copy_rewritten", postId=post.id)
        return CopyDraft(content=with_signature(draft.content.strip(), profile), hashtags=draft.hashtags)
