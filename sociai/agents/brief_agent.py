"""
Creative brief synthesis: post text + brand context -> structured visual brief.

The text model is asked for a JSON brief. Anything that goes wrong upstream
(API error, empty or malformed JSON, no main subject) is absorbed here and a
default brief built from the brand profile is returned instead, so the render
stage always has a complete brief to work from.
"""
from typing import List, Optional

from sociai.clients.base import GenerativeClient
from sociai.media.palette import build_palette
from sociai.shared.config import get_studio_config
from sociai.shared.json_utils import parse_with_default
from sociai.shared.logging_utils import info as log_info, warning as log_warning
from sociai.specs.common.enums import GenerationMode, Tone
from sociai.specs.common.errors import BriefSynthesisFailed
from sociai.specs.models.domain import BrandProfile
from sociai.specs.models.generation import Brief, RawBrief, TextPolicy

from .base import Agent

TONE_MOODS = {
    Tone.PROFESSIONAL: "confident, polished and trustworthy",
    Tone.FUNNY: "playful, warm and upbeat",
    Tone.INSPIRATIONAL: "uplifting, aspirational and bright",
    Tone.EDGY: "bold, high-contrast and provocative",
}

MODE_STYLES = {
    GenerationMode.PHOTO: "photorealistic premium editorial photography",
    GenerationMode.POSTER: "bold graphic poster design with clean shapes",
}

MODE_COMPOSITIONS = {
    GenerationMode.PHOTO: "rule-of-thirds framing with one clear focal point and generous negative space",
    GenerationMode.POSTER: "strong central focal point with a calm area reserved for a single short headline",
}

# Brand fields whose absence weakens the brief; reported in debug info.
CONTEXT_FIELDS = (
    "industry",
    "targetAudience",
    "brandVoice",
    "businessDescription",
    "valueProposition",
    "secondaryColor",
    "logoUrl",
)

MAX_HEADLINE_WORDS = 6


def missing_context_fields(brand: BrandProfile) -> List[str]:
    missing = []
    for field in CONTEXT_FIELDS:
        value = getattr(brand, field, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(field)
    return missing


def _headline(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    words = text.split()
    return " ".join(words[:MAX_HEADLINE_WORDS]) or None


def build_brief_prompt(
    post_content: str,
    brand: BrandProfile,
    mode: GenerationMode,
    edit_instruction: Optional[str],
    seed: int,
) -> str:
    lines = [
        "You are a world-class creative director.",
        "Analyze the brand context and post content and produce a structured creative brief for one "
        + ("photograph." if mode is GenerationMode.PHOTO else "poster-style graphic."),
        "",
        "BRAND CONTEXT:",
        f"- Name: {brand.name}",
        f"- Industry: {brand.industry or 'General business'}",
        f"- Audience: {brand.targetAudience}",
        f"- Voice: {brand.brandVoice or brand.tone.value}",
        f"- Mission: {brand.businessDescription or 'Standard business operations'}",
        f"- USPs: {brand.valueProposition or 'Premium quality and reliability'}",
        f"- Brand kit colors: {brand.primaryColor}, {brand.secondaryColor or 'neutral'}",
        "",
        "POST CONTENT:",
        f'"{post_content.strip()}"',
        "",
        "RULES:",
        "1. Tell the story visually; do not copy the post text onto the image.",
        "2. color_direction must list 3 to 5 HEX colors; brand colors drive lighting and accents, "
        "but do not saturate everything in a single hue.",
        "3. No user-interface elements, HUD overlays, screenshots or watermarks.",
    ]
    if mode is GenerationMode.POSTER:
        lines.append(f"4. At most one headline of up to {MAX_HEADLINE_WORDS} words (text_policy.overlay_text); no paragraphs.")
    else:
        lines.append("4. No text on the image at all (text_policy.allow_text = false).")
    if seed > 0:
        lines.append(f"5. This is variation #{seed}: choose a clearly different subject framing, setting and lighting than earlier variations.")
    if edit_instruction:
        lines.extend(["", "CLIENT EDIT INSTRUCTION (highest priority):", edit_instruction.strip()])
    lines.extend(["", "Return ONLY a JSON object following the required schema."])
    return "\n".join(lines)


def default_brief(
    post_content: str,
    brand: BrandProfile,
    mode: GenerationMode,
    seed: int,
    edit_instruction: Optional[str] = None,
    missing: Optional[List[str]] = None,
) -> Brief:
    """Brief used when synthesis fails: a generic brand-identity scene."""
    industry = brand.industry or "modern"
    return Brief(
        mainSubject=f"a premium brand-identity scene for {brand.name}, a {industry} business, "
        "showing its product or service in an inviting real-world setting",
        palette=build_palette([], brand.primaryColor, brand.secondaryColor),
        mood=TONE_MOODS[brand.tone],
        visualStyle=MODE_STYLES[mode],
        composition=MODE_COMPOSITIONS[mode],
        keywords=[industry, brand.tone.value, "premium", "authentic"],
        textPolicy=TextPolicy(
            allowText=mode is GenerationMode.POSTER,
            overlayText=_headline(post_content) if mode is GenerationMode.POSTER else None,
        ),
        mode=mode,
        seed=seed,
        editInstruction=edit_instruction,
        brandName=brand.name,
        brandVoice=brand.brandVoice or brand.tone.value,
        isFallback=True,
        missingFields=missing if missing is not None else missing_context_fields(brand),
    )


class BriefAgent(Agent):
    """Synthesizes a creative brief; never fails for upstream reasons."""

    def __init__(self, client: GenerativeClient, *, model: Optional[str] = None) -> None:
        super().__init__(client)
        self.model = model or get_studio_config().brief_model

    async def run(self, *args, **kwargs) -> Brief:
        return await self.synthesize_brief(*args, **kwargs)

    async def _request_brief(self, prompt: str) -> RawBrief:
        try:
            text = await self._client.generate_json(model=self.model, prompt=prompt, schema=RawBrief)
        except Exception as exc:
            raise BriefSynthesisFailed(f"Brief request failed: {exc}") from exc

        problems: List[Exception] = []
        raw = parse_with_default(text, RawBrief, None, on_error=problems.append)
        if raw is None:
            reason = str(problems[0]) if problems else "unparseable brief"
            raise BriefSynthesisFailed(f"Malformed brief: {reason}")
        if not (raw.main_subject or "").strip():
            raise BriefSynthesisFailed("Brief has no main subject")
        return raw

    async def synthesize_brief(
        self,
        post_content: str,
        brand: BrandProfile,
        mode: GenerationMode = GenerationMode.PHOTO,
        edit_instruction: Optional[str] = None,
        seed: int = 0,
    ) -> Brief:
        if not post_content or not post_content.strip():
            raise ValueError("post_content must not be empty")
        if seed < 0:
            raise ValueError("seed must be >= 0")
        mode = GenerationMode(mode)
        missing = missing_context_fields(brand)
        prompt = build_brief_prompt(post_content, brand, mode, edit_instruction, seed)

        try:
            raw = await self._request_brief(prompt)
        except BriefSynthesisFailed as exc:
            log_warning(self._trace_id, "brief:fallback", reason=str(exc), mode=mode.value, seed=seed)
            return default_brief(post_content, brand, mode, seed, edit_instruction, missing)

        allow_text = mode is GenerationMode.POSTER and raw.text_policy.allow_text
        brief = Brief(
            mainSubject=raw.main_subject.strip(),
            palette=build_palette(raw.color_direction, brand.primaryColor, brand.secondaryColor),
            mood=(raw.mood or "").strip() or TONE_MOODS[brand.tone],
            visualStyle=(raw.visual_style or "").strip() or MODE_STYLES[mode],
            composition=(raw.composition or "").strip() or MODE_COMPOSITIONS[mode],
            keywords=[k.strip() for k in raw.keywords if k and k.strip()][:8],
            textPolicy=TextPolicy(
                allowText=allow_text,
                overlayText=_headline(raw.text_policy.overlay_text) if allow_text else None,
            ),
            mode=mode,
            seed=seed,
            editInstruction=edit_instruction,
            brandName=brand.name,
            brandVoice=brand.brandVoice or brand.tone.value,
            isFallback=False,
            missingFields=missing,
        )
        log_info(self._trace_id, "brief:synthesized", mode=mode.value, seed=seed, palette=brief.palette)
        return brief
