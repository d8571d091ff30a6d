import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette import status

from .core.config import configure_logging, get_settings
from .core.errors import (
    AssetFlowError,
    AssetValidationError,
    ImmutableRecordError,
    InvalidTransitionError,
    LookupFailureError,
    NotFoundError,
    PermissionDeniedError,
)
from .routers import assets, audit, health

settings = get_settings()
configure_logging(settings)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(assets.router, prefix=settings.api_prefix)
app.include_router(audit.router, prefix=settings.api_prefix)

_STATUS_BY_ERROR = (
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (AssetValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (LookupFailureError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ImmutableRecordError, status.HTTP_409_CONFLICT),
)


def status_for(exc: AssetFlowError) -> int:
    for error_cls, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(AssetFlowError)
async def _asset_flow_error(request: Request, exc: AssetFlowError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=code, content=exc.to_dict())
