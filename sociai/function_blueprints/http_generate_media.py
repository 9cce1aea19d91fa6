from typing import Callable

import azure.functions as func

from sociai.generation.studio import StudioSession
from sociai.shared.logging_utils import timed
from sociai.specs.common.errors import StudioError
from sociai.specs.http.generate_media import GenerateMediaRequest, GenerateMediaResponse

from .http_common import json_response, parse_request, studio_error_response

bp = func.Blueprint()


async def handle_generate_media(
    req: func.HttpRequest,
    *,
    load_studio: Callable[[str], StudioSession] = StudioSession.load,
) -> func.HttpResponse:
    parsed = parse_request(req, GenerateMediaRequest, "generate")
    if isinstance(parsed, func.HttpResponse):
        return parsed

    session = None
    try:
        with timed(None, "generate:completed", postId=parsed.postId, mediaType=parsed.mediaType) as dims:
            studio = load_studio(parsed.accountId)
            post = studio.get_post(parsed.postId)
            if parsed.seed is not None:
                seed = parsed.seed
            elif parsed.regenerate and len(post.variants):
                seed = post.variantSeed + 1
            else:
                seed = 0
            session = studio.open_generation(post.id)
            result = await session.start(
                parsed.mediaType,
                mode=parsed.mode,
                edit_instruction=parsed.editInstruction,
                seed=seed,
            )
            dims.update(traceId=session.trace_id, seed=seed)
    except StudioError as exc:
        return studio_error_response(exc, session.trace_id if session else None)

    resp = GenerateMediaResponse(
        traceId=session.trace_id,
        phase=session.phase,
        postId=post.id,
        url=result.url,
        mediaType=result.mediaType,
        seed=seed,
        variantIndex=post.variants.index,
        variantCount=len(post.variants),
        variants=post.variants.urls,
        credits=studio.credits_display,
        debugInfo=result.debugInfo,
    )
    return json_response(resp)


@bp.function_name(name="generate_media")
@bp.route(route="generate_media", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
async def generate_media(req: func.HttpRequest) -> func.HttpResponse:
    return await handle_generate_media(req)
