from typing import Any, Dict, Optional, Tuple, Type, TypeVar, Union

import azure.functions as func
from pydantic import BaseModel, ValidationError

from sociai.shared.logging_utils import error as log_error
from sociai.specs.common.errors import (
    AuthorizationRequired,
    ConfigurationError,
    GenerationFailed,
    GenerationInProgress,
    GenerationTimedOut,
    InvalidRequest,
    InvalidTransition,
    PaymentError,
    QuotaExceeded,
    ResourceNotFoundError,
    StudioError,
)
from sociai.specs.http.common import ErrorResponse

M = TypeVar("M", bound=BaseModel)

# First match wins; subclasses before their bases.
STATUS_BY_ERROR: Tuple[Tuple[Type[StudioError], int], ...] = (
    (GenerationTimedOut, 504),
    (GenerationFailed, 502),
    (QuotaExceeded, 402),
    (AuthorizationRequired, 401),
    (ResourceNotFoundError, 404),
    (GenerationInProgress, 409),
    (InvalidTransition, 409),
    (InvalidRequest, 400),
    (PaymentError, 400),
    (ConfigurationError, 500),
)


def status_for(exc: StudioError) -> int:
    for cls, status in STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return status
    return 500


def json_response(model: BaseModel, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        body=model.model_dump_json(),
        mimetype="application/json",
        status_code=status_code,
    )


def error_response(
    message: str,
    status_code: int,
    *,
    code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> func.HttpResponse:
    return json_response(ErrorResponse(message=message, errorCode=code, details=details), status_code)


def studio_error_response(exc: StudioError, trace_id: Optional[str] = None) -> func.HttpResponse:
    status = status_for(exc)
    log_error(trace_id, "http:studio_error", code=exc.code, status=status, error=str(exc))
    return error_response(str(exc), status, code=exc.code, details=exc.details or None)


def parse_request(req: func.HttpRequest, model: Type[M], event: str) -> Union[M, func.HttpResponse]:
    """Validate the JSON body into ``model``; on failure return the 400 response instead."""
    try:
        data = req.get_json()
    except ValueError:
        log_error(None, f"{event}:invalid_json")
        return error_response("Invalid JSON body", 400, code="INVALID_JSON")
    if not isinstance(data, dict):
        log_error(None, f"{event}:invalid_json")
        return error_response("JSON body must be an object", 400, code="INVALID_JSON")
    try:
        return model.model_validate(data)
    except ValidationError as ex:
        log_error(None, f"{event}:invalid_request", error=str(ex))
        return error_response(f"Invalid request: {ex}", 400, code="INVALID_REQUEST")
