"""Cross-origin access for the community web client."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from c42.config import Settings
from c42.middleware.rate_limit import LIMIT_HEADER, REMAINING_HEADER
from c42.middleware.request_id import REQUEST_ID_HEADER

# The chat and admin APIs only use these verbs.
_METHODS = ["GET", "POST", "PATCH", "DELETE", "OPTIONS"]


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow the configured origins to send bearer tokens and read our response headers."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=_METHODS,
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER, REMAINING_HEADER, LIMIT_HEADER],
    )
