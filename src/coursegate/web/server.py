from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from coursegate.app import App
from coursegate.config import Config
from coursegate.errors import UserError
from coursegate.web.deps import DEVICE_INFO_HEADER, client_address
from coursegate.web.error_handlers import general_exception_handler, user_error_handler
from coursegate.web.openapi import set_custom_openapi
from coursegate.web.routers import (
    admin_router,
    auth_router,
    courses_router,
    notifications_router,
    profile_router,
)

API_PREFIX = "/api/v1"
REQUEST_ID_HEADER = "X-Request-ID"


async def bind_request_context(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """Tag every log event emitted while handling the request with its id and client address."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
    with structlog.contextvars.bound_contextvars(request_id=request_id, client=client_address(request)):
        response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


def create_fastapi_app(app_instance: App, config: Config) -> FastAPI:
    """Build the HTTP application around an App facade."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        app.state.app = app_instance
        app.state.config = config
        async with app_instance.lifespan():
            yield

    app = FastAPI(title="Coursegate API", lifespan=lifespan)

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["Authorization", "Content-Type", DEVICE_INFO_HEADER, REQUEST_ID_HEADER],
            expose_headers=[REQUEST_ID_HEADER],
        )
    app.middleware("http")(bind_request_context)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    for router in (auth_router, profile_router, courses_router, notifications_router, admin_router):
        app.include_router(router, prefix=API_PREFIX)

    app.add_exception_handler(UserError, user_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    set_custom_openapi(app)
    return app
