from typing import Callable

import azure.functions as func

from sociai.generation.studio import StudioSession
from sociai.shared.logging_utils import timed
from sociai.specs.common.errors import StudioError
from sociai.specs.http.planner import (
    NavigateVariantRequest,
    NavigateVariantResponse,
    TrendsRequest,
    TrendsResponse,
    WeeklyStrategyRequest,
    WeeklyStrategyResponse,
)

from .http_common import json_response, parse_request, studio_error_response

bp = func.Blueprint()


def handle_navigate_variant(
    req: func.HttpRequest,
    *,
    load_studio: Callable[[str], StudioSession] = StudioSession.load,
) -> func.HttpResponse:
    parsed = parse_request(req, NavigateVariantRequest, "navigate")
    if isinstance(parsed, func.HttpResponse):
        return parsed
    try:
        studio = load_studio(parsed.accountId)
        url = studio.navigate_variant(parsed.postId, parsed.direction)
        post = studio.get_post(parsed.postId)
    except StudioError as exc:
        return studio_error_response(exc)
    studio.save()

    resp = NavigateVariantResponse(
        postId=post.id,
        url=url,
        variantIndex=post.variants.index,
        variantCount=len(post.variants),
    )
    return json_response(resp)


async def handle_weekly_strategy(
    req: func.HttpRequest,
    *,
    load_studio: Callable[[str], StudioSession] = StudioSession.load,
) -> func.HttpResponse:
    parsed = parse_request(req, WeeklyStrategyRequest, "strategy")
    if isinstance(parsed, func.HttpResponse):
        return parsed
    try:
        with timed(None, "strategy:completed", language=parsed.language) as dims:
            studio = load_studio(parsed.accountId)
            posts = await studio.generate_weekly_strategy(parsed.formats, parsed.language)
            dims["posts"] = len(posts)
    except StudioError as exc:
        return studio_error_response(exc)

    return json_response(WeeklyStrategyResponse(posts=posts, credits=studio.credits_display))


async def handle_trends(
    req: func.HttpRequest,
    *,
    load_studio: Callable[[str], StudioSession] = StudioSession.load,
) -> func.HttpResponse:
    parsed = parse_request(req, TrendsRequest, "trends")
    if isinstance(parsed, func.HttpResponse):
        return parsed
    try:
        studio = load_studio(parsed.accountId)
        trends = await studio.refresh_trends(parsed.language)
    except StudioError as exc:
        return studio_error_response(exc)

    return json_response(TrendsResponse(trends=trends))


@bp.function_name(name="navigate_variant")
@bp.route(route="navigate_variant", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def navigate_variant(req: func.HttpRequest) -> func.HttpResponse:
    return handle_navigate_variant(req)


@bp.function_name(name="weekly_strategy")
@bp.route(route="weekly_strategy", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
async def weekly_strategy(req: func.HttpRequest) -> func.HttpResponse:
    return await handle_weekly_strategy(req)


@bp.function_name(name="trends")
@bp.route(route="trends", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
async def latest_trends(req: func.HttpRequest) -> func.HttpResponse:
    return await handle_trends(req)
