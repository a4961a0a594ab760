"""
FastAPI application entry point for the social network API.
"""

from __future__ import annotations

import logging
from typing import Iterable

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from socialnet.config import get_settings
from socialnet.routes import auth_router, posts_router, profiles_router, users_router

logger = logging.getLogger(__name__)

ROUTERS: tuple[APIRouter, ...] = (
    users_router,
    auth_router,
    profiles_router,
    posts_router,
)

fallback_router = APIRouter()


@fallback_router.api_route(
    "/{path:path}",
    methods=["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
def route_not_found(path: str):
    return JSONResponse(status_code=404, content={"msg": "Route not found"})


def _validation_errors(exc: RequestValidationError) -> list[dict]:
    errors = []
    for error in exc.errors():
        loc = list(error.get("loc", ()))
        message = str(error.get("msg", "Invalid value"))
        # Drop pydantic's prefix on messages raised from our validators.
        message = message.removeprefix("Value error, ")
        errors.append(
            {
                "msg": message,
                "param": ".".join(str(part) for part in loc[1:]) or None,
                "location": loc[0] if loc else None,
            }
        )
    return errors


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"errors": _validation_errors(exc)})


async def http_exception_handler(request: Request, exc: HTTPException):
    if isinstance(exc.detail, list):
        content = {"errors": exc.detail}
    else:
        content = {"msg": exc.detail}
    return JSONResponse(
        status_code=exc.status_code, content=content, headers=exc.headers
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"msg": "Server Error"})


def create_app(routers: Iterable[APIRouter] = ROUTERS) -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Social Network API", version="0.1.0")
    for router in routers:
        app.include_router(router, prefix=settings.api_prefix)
    app.include_router(fallback_router)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    settings = get_settings()
    logger.info("Server starting on port %s", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)
