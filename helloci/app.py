from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__

GREETING = "Hello World"
NOT_FOUND = "Not Found"


def create_app() -> FastAPI:
    """Build the service application.

    Only ``GET /`` is routed. Unknown paths and unsupported methods both
    answer 404 so callers see a single "not here" status.
    """
    app = FastAPI(
        title="hello-ci",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.get("/", response_class=PlainTextResponse)
    def hello() -> PlainTextResponse:
        return PlainTextResponse(GREETING, status_code=200)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
        if exc.status_code in (404, 405):
            return PlainTextResponse(NOT_FOUND, status_code=404)
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)

    return app


app = create_app()
