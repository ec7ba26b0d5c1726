"""Middleware registration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from qaforum.config import Settings
from qaforum.middleware.error_handler import setup_error_handlers
from qaforum.middleware.logging import setup_logging
from qaforum.middleware.rate_limit import RateLimitMiddleware
from qaforum.middleware.request_context import REQUEST_ID_HEADER, RESPONSE_TIME_HEADER, RequestContextMiddleware

# Headers the web client reads from API responses
EXPOSED_HEADERS = [REQUEST_ID_HEADER, RESPONSE_TIME_HEADER, "X-RateLimit-Remaining", "X-RateLimit-Limit", "Retry-After"]


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register error handlers and middleware, innermost first.

    The rate limiter sits inside the request context so rejected requests
    still carry an id and get logged. CORS is outermost so 429 and 500
    envelopes reach the browser.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        expose_headers=EXPOSED_HEADERS,
    )
