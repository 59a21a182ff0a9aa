"""HTTP plumbing shared by every router: logging, error rendering, throttling, CORS."""

from fastapi import FastAPI

from c42.config import Settings
from c42.middleware.cors import setup_cors
from c42.middleware.error_handler import setup_error_handlers
from c42.middleware.logging import setup_logging
from c42.middleware.rate_limit import RateLimitMiddleware
from c42.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Install the HTTP stack on ``app``.

    Starlette wraps each added middleware around the previous ones, so the
    request path is CORS, then request id, then rate limiting. A throttled
    request is still logged with its id and still answers cross-origin.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
