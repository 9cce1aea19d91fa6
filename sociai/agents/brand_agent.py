"""
Brand analysis for onboarding: a brand name (and website) -> the visual and
verbal identity used to prefill the brand profile.

The text model is grounded in web search. When the call fails or the answer
is unusable a neutral fallback identity is returned and flagged, so onboarding
never blocks on it.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from sociai.clients.base import GenerativeClient
from sociai.media.palette import normalize_hex
from sociai.shared.config import get_studio_config
from sociai.shared.json_utils import parse_with_default
from sociai.shared.logging_utils import info as log_info, warning as log_warning
from sociai.specs.common.enums import Tone
from sociai.specs.common.errors import StudioError
from sociai.specs.models.domain import DEFAULT_PRIMARY_COLOR, BrandProfile

from .base import Agent

FALLBACK_POST_IDEAS = ["Introducing the brand", "Our mission"]
MAX_POST_IDEAS = 10


class BrandAnalysis(BaseModel):
    """Partial brand identity as detected by the analysis."""

    primaryColor: str = DEFAULT_PRIMARY_COLOR
    secondaryColor: Optional[str] = None
    logoUrl: Optional[str] = None
    tone: Tone = Tone.PROFESSIONAL
    targetAudience: str = "General Audience"
    businessDescription: Optional[str] = None
    valueProposition: Optional[str] = None
    brandVoice: Optional[str] = None
    postIdeas: List[str] = Field(default_factory=list)
    isFallback: bool = False

    @field_validator("primaryColor", mode="before")
    @classmethod
    def _primary(cls, value: Any) -> str:
        return normalize_hex(value) or DEFAULT_PRIMARY_COLOR

    @field_validator("secondaryColor", mode="before")
    @classmethod
    def _secondary(cls, value: Any) -> Optional[str]:
        return normalize_hex(value)

    @field_validator("tone", mode="before")
    @classmethod
    def _tone(cls, value: Any) -> Tone:
        try:
            return Tone(str(value).strip().lower())
        except ValueError:
            return Tone.PROFESSIONAL

    @field_validator("logoUrl", mode="before")
    @classmethod
    def _logo(cls, value: Any) -> Optional[str]:
        if isinstance(value, str) and value.startswith(("http://", "https://", "data:")):
            return value
        return None

    @field_validator("postIdeas", mode="before")
    @classmethod
    def _ideas(cls, value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        return [str(v).strip() for v in value if str(v).strip()][:MAX_POST_IDEAS]

    def profile_fields(self) -> Dict[str, Any]:
        """Fields to merge into a ``BrandProfile``; empty detections are left out."""
        data = self.model_dump(exclude={"postIdeas", "isFallback"}, exclude_none=True)
        data["autoAppendSignature"] = True
        return data

    def to_profile(self, name: str, **overrides: Any) -> BrandProfile:
        return BrandProfile.model_validate({**self.profile_fields(), "name": name, **overrides})


def fallback_analysis() -> BrandAnalysis:
    return BrandAnalysis(postIdeas=list(FALLBACK_POST_IDEAS), isFallback=True)


def build_analysis_prompt(name: str, website: Optional[str] = None) -> str:
    target = f'"{name}" at {website}' if website else f'"{name}"'
    return (
        f"Research the brand {target} and describe its identity.\n"
        "Extract:\n"
        "1. Visual identity: the primary brand HEX colour and a secondary accent.\n"
        "2. Logo: a high-resolution logo URL.\n"
        "3. Brand voice: its specific communication style.\n"
        f"4. Post ideas: {MAX_POST_IDEAS} creative social media post ideas.\n"
        "5. Core info: target audience, business description and value proposition.\n"
        "Return ONLY a JSON object with keys primaryColor, secondaryColor, logoUrl, "
        "tone (professional, funny, inspirational or edgy), targetAudience, "
        "businessDescription, valueProposition, brandVoice, postIdeas."
    )


class BrandAgent(Agent):
    def __init__(self, client: GenerativeClient, *, model: Optional[str] = None) -> None:
        super().__init__(client)
        self.model = model or get_studio_config().text_model

    async def run(self, *args, **kwargs) -> BrandAnalysis:
        return await self.analyze_brand(*args, **kwargs)

    async def analyze_brand(self, name: str, website: Optional[str] = None) -> BrandAnalysis:
        if not name or not name.strip():
            raise ValueError("name must not be empty")
        prompt = build_analysis_prompt(name.strip(), website)
        try:
            text = await self._client.generate_json(model=self.model, prompt=prompt, search=True)
        except StudioError as exc:
            log_warning(self._trace_id, "brand:fallback", reason=exc.code, error=str(exc))
            return fallback_analysis()

        analysis = parse_with_default(
            text,
            BrandAnalysis,
            None,
            on_error=lambda exc: log_warning(self._trace_id, "brand:unparseable", error=str(exc)),
        )
        if analysis is None:
            log_warning(self._trace_id, "brand:fallback", reason="unparseable")
            return fallback_analysis()
        log_info(self._trace_id, "brand:analyzed", tone=analysis.tone, ideas=len(analysis.postIdeas))
        return analysis
