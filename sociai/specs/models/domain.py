from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from sociai.generation.variant_history import MediaVariant, VariantHistory
from sociai.specs.common.enums import (
    MediaSource,
    MediaType,
    NotificationType,
    Platform,
    PostStatus,
    Tone,
)
from .generation import GenerationDebugInfo


HEX_COLOR_PATTERN = r"^#(?:[0-9a-fA-F]{3}){1,2}$"

DEFAULT_PRIMARY_COLOR = "#8C4DFF"


def normalize_hashtags(tags: List[str]) -> List[str]:
    """Strip leading '#' and drop case-insensitive duplicates, keeping order."""
    seen = set()
    out: List[str] = []
    for tag in tags:
        tag = tag.strip().lstrip("#")
        if tag and tag.lower() not in seen:
            seen.add(tag.lower())
            out.append(tag)
    return out


class BrandProfile(BaseModel):
    """Tenant-level brand configuration, created at onboarding and edited in settings.

    ``isAdmin`` marks a privileged account for which credits are not metered.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str = Field(min_length=1)
    industry: str = ""
    website: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    targetAudience: str = Field(default="General Audience", alias="target_audience")
    tone: Tone = Tone.PROFESSIONAL
    primaryColor: str = Field(default=DEFAULT_PRIMARY_COLOR, pattern=HEX_COLOR_PATTERN, alias="primary_color")
    secondaryColor: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN, alias="secondary_color")
    logoUrl: Optional[str] = Field(default=None, alias="logo_url")
    styleReferenceUrls: List[str] = Field(default_factory=list, max_length=3, alias="style_reference_urls")
    analysisSummary: Optional[str] = None
    autoAppendSignature: bool = True
    isAdmin: bool = False
    brandVoice: Optional[str] = Field(default=None, alias="brand_voice")
    businessDescription: Optional[str] = Field(default=None, alias="business_description")
    valueProposition: Optional[str] = Field(default=None, alias="value_proposition")
    postIdeas: List[str] = Field(default_factory=list)

    # Password is never persisted alongside the profile
    password: Optional[str] = Field(default=None, exclude=True)


class ContentFormat(BaseModel):
    id: str
    name: str
    keyword: str
    postsPerWeek: int = Field(default=1, ge=1)
    color: str = "#FFFFFF"


class Notification(BaseModel):
    id: str
    type: NotificationType = NotificationType.SYSTEM
    title: str
    message: str
    timestamp: str
    read: bool = False


class SocialPost(BaseModel):
    """A planned content unit in the planner.

    At most one of ``imageUrl``/``videoUrl`` is set. When ``variants`` is not
    empty the set URL is the history's current entry.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    platform: Platform = Platform.INSTAGRAM
    date: str
    content: str = ""
    hashtags: List[str] = Field(default_factory=list)
    status: PostStatus = PostStatus.DRAFT
    mediaSource: MediaSource = MediaSource.AI_GENERATED
    format: Optional[str] = None
    imageUrl: Optional[str] = None
    videoUrl: Optional[str] = None
    variants: VariantHistory = Field(default_factory=VariantHistory)
    variantSeed: int = Field(default=0, ge=0)
    creativeBrief: Optional[Dict[str, Any]] = None
    aiPrompt: Optional[str] = None
    aiDebug: Optional[GenerationDebugInfo] = None

    @field_validator("hashtags")
    @classmethod
    def _unique_hashtags(cls, value: List[str]) -> List[str]:
        return normalize_hashtags(value)

    @model_validator(mode="after")
    def _single_authoritative_media(self) -> "SocialPost":
        if self.imageUrl and self.videoUrl:
            raise ValueError("a post cannot carry both imageUrl and videoUrl")
        current = self.variants.current_variant()
        if current is not None:
            self._point_at(current)
        return self

    @property
    def media_url(self) -> Optional[str]:
        return self.imageUrl or self.videoUrl

    def _point_at(self, variant: MediaVariant) -> None:
        if variant.mediaType is MediaType.VIDEO:
            self.videoUrl, self.imageUrl = variant.url, None
        else:
            self.imageUrl, self.videoUrl = variant.url, None

    def sync_media_pointer(self) -> None:
        """Point imageUrl/videoUrl at the history's current variant."""
        current = self.variants.current_variant()
        if current is not None:
            self._point_at(current)


class CreditPlan(BaseModel):
    key: str
    label: str
    price: str
    credits: int = Field(gt=0)
    subscription: bool = False


__all__ = [
    "HEX_COLOR_PATTERN",
    "DEFAULT_PRIMARY_COLOR",
    "normalize_hashtags",
    "BrandProfile",
    "ContentFormat",
    "Notification",
    "SocialPost",
    "CreditPlan",
]
