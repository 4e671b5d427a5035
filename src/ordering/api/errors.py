"""HTTP mapping for payment provider failures."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ordering.domain import logger
from payments.gateway.errors import GatewayConfigurationError, GatewayError


def _status_for(exc: GatewayError) -> int:
    if isinstance(exc, GatewayConfigurationError):
        return 503
    if exc.status_code == 504:
        return 504
    return 502


def register_gateway_error_handler(app: FastAPI) -> None:
    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        status_code = _status_for(exc)
        logger.warning(
            "Payment provider error",
            path=request.url.path,
            status_code=status_code,
            error_code=exc.error_code,
            message=exc.message,
        )
        return JSONResponse(
            status_code=status_code,
            content={"error": exc.message, "error_code": exc.error_code},
        )
