from fastapi import Request
from fastapi.responses import JSONResponse

from stockpulse.exceptions import (
    AppError,
    NotFoundError,
    PredictionPreconditionError,
    ProviderError,
    QuotaExceededError,
    ValidationError,
)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": exc.code, "message": exc.message},
    )


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"error": exc.code, "message": exc.message},
    )


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"error": exc.code, "message": exc.message},
    )


async def precondition_handler(
    request: Request, exc: PredictionPreconditionError
) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"error": exc.code, "message": exc.message},
    )


async def quota_exceeded_handler(request: Request, exc: QuotaExceededError) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"error": exc.code, "message": exc.message},
    )


async def provider_error_handler(request: Request, exc: ProviderError) -> JSONResponse:
    return JSONResponse(
        status_code=502,
        content={"error": exc.code, "message": exc.message, "reason": exc.reason.value},
    )


def register_exception_handlers(app):
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(PredictionPreconditionError, precondition_handler)
    app.add_exception_handler(QuotaExceededError, quota_exceeded_handler)
    app.add_exception_handler(ProviderError, provider_error_handler)
    app.add_exception_handler(AppError, app_error_handler)
