from typing import Callable

import azure.functions as func

from sociai.agents.brand_agent import BrandAgent
from sociai.clients.factory import get_generative_client
from sociai.generation.studio import StudioSession
from sociai.shared.config import get_studio_config
from sociai.shared.logging_utils import timed
from sociai.specs.common.errors import StudioError
from sociai.specs.http.onboarding import (
    AnalyzeBrandRequest,
    AnalyzeBrandResponse,
    OnboardRequest,
    OnboardResponse,
)
from sociai.specs.models.domain import BrandProfile

from .http_common import json_response, parse_request, studio_error_response

bp = func.Blueprint()


def _brand_agent() -> BrandAgent:
    config = get_studio_config()
    return BrandAgent(get_generative_client(config), model=config.text_model)


async def handle_analyze_brand(
    req: func.HttpRequest,
    *,
    make_agent: Callable[[], BrandAgent] = _brand_agent,
) -> func.HttpResponse:
    parsed = parse_request(req, AnalyzeBrandRequest, "analyze_brand")
    if isinstance(parsed, func.HttpResponse):
        return parsed
    try:
        analysis = await make_agent().analyze_brand(parsed.name, parsed.website)
    except StudioError as exc:
        return studio_error_response(exc)

    resp = AnalyzeBrandResponse(
        profile=analysis.to_profile(parsed.name.strip(), website=parsed.website),
        postIdeas=analysis.postIdeas,
        isFallback=analysis.isFallback,
    )
    return json_response(resp)


async def handle_onboard(
    req: func.HttpRequest,
    *,
    create_studio: Callable[[str, BrandProfile], StudioSession] = StudioSession.create,
) -> func.HttpResponse:
    parsed = parse_request(req, OnboardRequest, "onboard")
    if isinstance(parsed, func.HttpResponse):
        return parsed
    try:
        with timed(None, "onboard:completed", language=parsed.language) as dims:
            studio = create_studio(parsed.accountId, parsed.profile)
            posts = await studio.complete_onboarding(parsed.language)
            dims["posts"] = len(posts)
    except StudioError as exc:
        return studio_error_response(exc)

    resp = OnboardResponse(posts=posts, notifications=studio.notifications, credits=studio.credits_display)
    return json_response(resp, 201)


@bp.function_name(name="analyze_brand")
@bp.route(route="analyze_brand", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
async def analyze_brand(req: func.HttpRequest) -> func.HttpResponse:
    return await handle_analyze_brand(req)


@bp.function_name(name="onboard")
@bp.route(route="onboard", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
async def onboard(req: func.HttpRequest) -> func.HttpResponse:
    return await handle_onboard(req)
