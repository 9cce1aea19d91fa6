from typing import Callable

import azure.functions as func

from sociai.generation.payments import PLANS
from sociai.generation.studio import StudioSession
from sociai.shared.logging_utils import error as log_error, info as log_info
from sociai.specs.common.errors import StudioError
from sociai.specs.http.credits import CreditsResponse, PurchaseRequest, PurchaseResponse

from .http_common import error_response, json_response, parse_request, studio_error_response

bp = func.Blueprint()


def handle_get_credits(
    req: func.HttpRequest,
    *,
    load_studio: Callable[[str], StudioSession] = StudioSession.load,
) -> func.HttpResponse:
    account_id = req.params.get("accountId")
    if not account_id:
        log_error(None, "credits:missing_accountId")
        return error_response("Missing accountId", 400, code="INVALID_REQUEST")
    try:
        studio = load_studio(account_id)
    except StudioError as exc:
        return studio_error_response(exc)

    ledger = studio.ledger
    resp = CreditsResponse(
        accountId=account_id,
        balance=ledger.balance(),
        display=ledger.display(),
        unlimited=ledger.privileged,
        plans=list(PLANS.values()),
    )
    return json_response(resp)


def handle_purchase_credits(
    req: func.HttpRequest,
    *,
    load_studio: Callable[[str], StudioSession] = StudioSession.load,
) -> func.HttpResponse:
    parsed = parse_request(req, PurchaseRequest, "purchase")
    if isinstance(parsed, func.HttpResponse):
        return parsed
    try:
        studio = load_studio(parsed.accountId)
        granted = studio.purchase(parsed.plan)
    except StudioError as exc:
        return studio_error_response(exc)

    log_info(None, "purchase:completed", plan=parsed.plan, granted=granted)
    resp = PurchaseResponse(granted=granted, balance=studio.ledger.balance(), display=studio.credits_display)
    return json_response(resp)


@bp.function_name(name="credits")
@bp.route(route="credits", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def get_credits(req: func.HttpRequest) -> func.HttpResponse:
    return handle_get_credits(req)


@bp.function_name(name="purchase_credits")
@bp.route(route="purchase_credits", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def purchase_credits(req: func.HttpRequest) -> func.HttpResponse:
    return handle_purchase_credits(req)
