# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller helper: render an OperationResult as an HTTP response.
"""

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from rotation_service.core.errors import ErrorKind, OperationResult

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.VALIDATION: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.PARTIAL_FAILURE: 502,
    ErrorKind.UPSTREAM_FAILURE: 502,
}


def to_response(result: OperationResult, success_status: int = 200) -> JSONResponse:
    status = success_status if result.success else STATUS_BY_KIND.get(result.error_kind, 500)
    body = {k: v for k, v in result.model_dump().items() if v is not None}
    return JSONResponse(status_code=status, content=jsonable_encoder(body))
