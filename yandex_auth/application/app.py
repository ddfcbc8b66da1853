"""Demo application: a FastAPI site with "Sign in with Yandex"."""

import logging
from contextlib import asynccontextmanager

import logfire
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from yandex_auth.application.middleware import challenge
from yandex_auth.application.registration import (
    set_default_sign_in_as_type,
    use_yandex_authentication,
)
from yandex_auth.config import Config, configure_logging
from yandex_auth.domain.auth.model.properties import AuthenticationProperties
from yandex_auth.infrastructure.auth.cookie import JwtCookieSignIn
from yandex_auth.infrastructure.auth.di import create_container
from yandex_auth.options import YandexAuthenticationOptions

logger = logging.getLogger(__name__)

SIGN_IN_AS_TYPE = "ApplicationCookie"


def create_app(config: Config | None = None) -> FastAPI:
    """Create FastAPI application."""
    config = config or Config()

    # Configure logging early
    configure_logging(config.logging)
    logger.info("Starting %s v%s", config.server.name, config.server.version)

    container = create_container(config)
    options = container.get(YandexAuthenticationOptions)
    cookie = container.get(JwtCookieSignIn)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        container.close()

    app_instance = FastAPI(
        title=config.server.name,
        version=config.server.version,
        lifespan=lifespan,
    )

    # Instrument FastAPI and the backchannel client for tracing
    logfire.instrument_httpx()
    logfire.instrument_fastapi(app_instance)

    set_default_sign_in_as_type(app_instance, SIGN_IN_AS_TYPE)
    use_yandex_authentication(app_instance, options=options)

    @app_instance.get("/", response_class=HTMLResponse)
    async def index(request: Request) -> str:
        identity = cookie.authenticate(request)
        if identity is None:
            return '<p>Not signed in. <a href="/me">Sign in with Yandex</a></p>'
        return f'<p>Signed in as {identity.name}. <a href="/logout">Sign out</a></p>'

    @app_instance.get("/me")
    async def me(request: Request) -> Response:
        identity = cookie.authenticate(request)
        if identity is None:
            challenge(
                request,
                AuthenticationProperties.for_redirect(str(request.url)),
                options.authentication_type,
            )
            return Response(status_code=401)
        return JSONResponse(
            {
                "name": identity.name,
                "authentication_type": identity.authentication_type,
                "claims": [{"type": c.type, "value": c.value} for c in identity],
            }
        )

    @app_instance.get("/logout")
    async def logout() -> Response:
        response = RedirectResponse("/", status_code=302)
        cookie.sign_out(response)
        return response

    # Global exception handler - logs all unhandled exceptions
    @app_instance.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "Unhandled exception on %s %s",
            request.method,
            request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    return app_instance
