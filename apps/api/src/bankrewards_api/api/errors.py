from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from bankrewards_api.services.loyalty import InsufficientPointsError, LoyaltyError, NotFoundError

# Balance-changing routes answer malformed bodies with 400 like every other rejected request.
BAD_REQUEST_BODY_PATHS = ("/loyalty/earn", "/loyalty/redeem")


def to_http_exception(exc: LoyaltyError) -> HTTPException:
    """Translate a loyalty failure into the HTTP error returned to callers."""

    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, InsufficientPointsError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": str(exc),
                "shortfall": exc.shortfall,
                "required": exc.required,
                "available": exc.available,
            },
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


async def loyalty_request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    if request.url.path.rstrip("/").endswith(BAD_REQUEST_BODY_PATHS):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": jsonable_encoder(exc.errors())},
        )
    return await request_validation_exception_handler(request, exc)
