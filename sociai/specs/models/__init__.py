from __future__ import annotations

from .generation import (
    Brief,
    GenerationDebugInfo,
    GenerationRequest,
    ImageDebugInfo,
    RawBrief,
    ReferenceAsset,
    RenderResult,
    TextPolicy,
    VideoDebugInfo,
)
from .domain import (
    BrandProfile,
    ContentFormat,
    CreditPlan,
    Notification,
    SocialPost,
)

__all__ = [
    "Brief",
    "GenerationDebugInfo",
    "GenerationRequest",
    "ImageDebugInfo",
    "RawBrief",
    "ReferenceAsset",
    "RenderResult",
    "TextPolicy",
    "VideoDebugInfo",
    "BrandProfile",
    "ContentFormat",
    "CreditPlan",
    "Notification",
    "SocialPost",
]
