import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .binding import DohRequest, DohResponse, error_response
from .gateway import DohGateway

logger = logging.getLogger("dohgate.doh_api")

# Coarse network-location hints some edge platforms attach to requests.
GEO_HINT_HEADERS = (
    "cf-ipcountry",
    "cf-ipcontinent",
    "cf-ipcity",
    "cf-region",
    "cf-iplatitude",
    "cf-iplongitude",
)

_ROUTED_METHODS = ["GET", "POST", "OPTIONS", "PUT", "PATCH", "DELETE", "HEAD"]


def _request_metadata(request: Request) -> Dict[str, Any]:
    """
    Brief: Collect opaque client hints for the resolver.

    Inputs:
    - request: FastAPI Request

    Outputs:
    - dict with client_ip and whichever geolocation headers are present.
    """
    meta: Dict[str, Any] = {
        "client_ip": request.client.host if request.client else "0.0.0.0"
    }
    geo = {h: request.headers[h] for h in GEO_HINT_HEADERS if h in request.headers}
    if geo:
        meta["geo"] = geo
    return meta


def _to_http_response(resp: DohResponse) -> Response:
    out = Response(content=resp.body, status_code=resp.status)
    for name, value in resp.headers:
        # append() keeps duplicate header names intact.
        out.headers.append(name, value)
    return out


def create_doh_app(gateway: DohGateway) -> FastAPI:
    """
    Brief: Create the FastAPI app serving RFC 8484 on the gateway's path.

    Inputs:
    - gateway: DohGateway that answers every request

    Outputs:
    - FastAPI application. Every path is routed to the gateway so that 404/405
      answers carry the same CORS headers as successes; methods the router
      itself turns away get the same plain-text error shape.

    Example:
      >>> from dohgate.plugins.cache import InMemoryTTLCache
      >>> app = create_doh_app(DohGateway(lambda q, meta: q, InMemoryTTLCache()))
    """

    app = FastAPI(
        title="dohgate",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.exception_handler(StarletteHTTPException)
    async def router_error(request: Request, exc: StarletteHTTPException) -> Response:
        return _to_http_response(error_response(exc.status_code))

    @app.api_route("/{full_path:path}", methods=_ROUTED_METHODS)
    async def doh_endpoint(request: Request) -> Response:
        """
        Brief: Read the request once and hand it to the gateway.

        Inputs:
        - request: FastAPI Request

        Outputs:
        - Response built from the gateway's DohResponse.
        """
        body = await request.body() if request.method == "POST" else b""
        doh_request = DohRequest(
            method=request.method,
            url=str(request.url),
            headers=request.headers.items(),
            body=body,
            metadata=_request_metadata(request),
        )
        try:
            resp = await gateway.handle(doh_request)
        except Exception:
            logger.exception("Unhandled error in DoH gateway")
            resp = error_response(500)
        return _to_http_response(resp)

    return app


def serve_doh(
    app: FastAPI,
    host: str,
    port: int,
    *,
    cert_file: Optional[str] = None,
    key_file: Optional[str] = None,
    log_level: str = "info",
) -> None:
    """Brief: Serve the app with uvicorn until interrupted.

    Inputs:
    - app: FastAPI application from create_doh_app()
    - host: listen address
    - port: listen port
    - cert_file: optional TLS certificate path
    - key_file: optional TLS key path
    - log_level: uvicorn log level

    Outputs:
    - None (blocks until the server exits).
    """
    import uvicorn

    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level=log_level,
        ssl_certfile=cert_file or None,
        ssl_keyfile=key_file or None,
        log_config=None,
    )
    server = uvicorn.Server(config)
    logger.info(
        "Starting DoH gateway on %s://%s:%d",
        "https" if cert_file and key_file else "http",
        host,
        port,
    )
    server.run()
