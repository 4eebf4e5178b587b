# boutique/core/errors.py
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """
    Base exception for failures of an external collaborator
    (WooCommerce, Supabase edge functions, Mondial Relay).

    `details` is the parsed upstream body, returned verbatim to the client.
    """

    service = "upstream"

    def __init__(self, message: str, status_code: int | None = None, details=None):
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class UpstreamDecodeError(UpstreamError):
    """Upstream answered 2xx but the payload is missing required fields."""


class WooCommerceError(UpstreamError):
    service = "woocommerce"


class EdgeFunctionError(UpstreamError):
    service = "edge_function"


class MondialRelayError(UpstreamError):
    service = "mondial_relay"


class ConfigurationError(Exception):
    """A collaborator this request needs is not configured on the server."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map upstream failures to 502 with the {error, details} shape the
    storefront displays, and missing server configuration to 500 {error}.
    """

    @app.exception_handler(ConfigurationError)
    async def _configuration_error_handler(request: Request, exc: ConfigurationError):
        logger.error("%s on %s %s", exc.message, request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": exc.message},
        )

    @app.exception_handler(UpstreamError)
    async def _upstream_error_handler(request: Request, exc: UpstreamError):
        logger.error(
            "Upstream %s failure on %s %s: %s (status=%s)",
            exc.service,
            request.method,
            request.url.path,
            exc.message,
            exc.status_code,
        )
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": exc.message, "details": exc.details},
        )
