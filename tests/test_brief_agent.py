from unittest.mock import AsyncMock

import pytest

from sociai.agents.brief_agent import BriefAgent, build_brief_prompt, missing_context_fields
from sociai.specs.common.enums import GenerationMode
from sociai.specs.common.errors import GenerationFailed
from sociai.specs.models.domain import BrandProfile

POST = "Our new autumn roast is here. Come taste it this weekend!"


@pytest.fixture
def agent(client):
    return BriefAgent(client, model="brief-model").with_trace("trace-1")


class TestSynthesis:
    async def test_brief_from_model_answer(self, agent, brand, client):
        brief = await agent.synthesize_brief(POST, brand)
        assert brief.mainSubject == "a barista pouring latte art in a sunlit cafe"
        assert brief.palette[:3] == ["#6F4E37", "#F5E6CC", "#2E8B57"]
        assert brief.isFallback is False
        assert brief.noUiElements and brief.avoidSingleHue
        assert brief.brandName == "Bean There"
        kwargs = client.generate_json.await_args.kwargs
        assert kwargs["model"] == "brief-model"
        assert POST in kwargs["prompt"]

    async def test_photo_mode_never_allows_text(self, brand, client_factory):
        answer = {"main_subject": "cup", "text_policy": {"allow_text": True, "overlay_text": "BUY NOW"}}
        agent = BriefAgent(client_factory(answer), model="m")
        brief = await agent.synthesize_brief(POST, brand, mode=GenerationMode.PHOTO)
        assert brief.textPolicy.allowText is False
        assert brief.textPolicy.overlayText is None

    async def test_poster_headline_is_shortened(self, brand, client_factory):
        answer = {
            "main_subject": "cup",
            "text_policy": {"allow_text": True, "overlay_text": "one two three four five six seven eight"},
        }
        agent = BriefAgent(client_factory(answer), model="m")
        brief = await agent.synthesize_brief(POST, brand, mode=GenerationMode.POSTER)
        assert brief.textPolicy.allowText is True
        assert brief.textPolicy.overlayText == "one two three four five six"

    async def test_missing_fields_use_brand_defaults(self, brand, client_factory):
        agent = BriefAgent(client_factory({"main_subject": "a steaming cup"}), model="m")
        brief = await agent.synthesize_brief(POST, brand)
        assert brief.mainSubject == "a steaming cup"
        assert brief.palette[:2] == ["#6F4E37", "#F5E6CC"]
        assert brief.mood and brief.visualStyle and brief.composition

    async def test_rejects_empty_post(self, agent, brand):
        with pytest.raises(ValueError):
            await agent.synthesize_brief("   ", brand)


class TestFallback:
    @pytest.mark.parametrize(
        "answer",
        ["", "not json at all", '{"keywords": ["x"]}', '{"main_subject": "   "}', "[1, 2, 3]"],
    )
    async def test_unusable_answer_gives_default_brief(self, brand, client_factory, answer):
        agent = BriefAgent(client_factory(answer), model="m")
        brief = await agent.synthesize_brief(POST, brand, seed=2)
        assert brief.isFallback is True
        assert "Bean There" in brief.mainSubject
        assert 3 <= len(brief.palette) <= 5
        assert brief.seed == 2

    async def test_upstream_error_is_absorbed(self, brand, client):
        client.generate_json = AsyncMock(side_effect=GenerationFailed("text failed: 500"))
        brief = await BriefAgent(client, model="m").synthesize_brief(POST, brand)
        assert brief.isFallback is True
        assert brief.mainSubject

    async def test_unexpected_exception_is_absorbed(self, brand, client):
        client.generate_json = AsyncMock(side_effect=RuntimeError("socket closed"))
        brief = await BriefAgent(client, model="m").synthesize_brief(POST, brand, mode=GenerationMode.POSTER)
        assert brief.isFallback is True
        assert brief.textPolicy.allowText is True


def test_missing_context_fields():
    profile = BrandProfile(name="Bare")
    missing = missing_context_fields(profile)
    assert "industry" in missing
    assert "logoUrl" in missing
    assert "targetAudience" not in missing


def test_prompt_mentions_variation_and_edit(brand):
    prompt = build_brief_prompt(POST, brand, GenerationMode.PHOTO, "make it night time", 3)
    assert "variation #3" in prompt
    assert "make it night time" in prompt
    assert "No text on the image" in prompt
