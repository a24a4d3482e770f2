"""
Web — FastAPI routes for customer verification and event forwarding.

    from checkout_engine.web import create_app
    app = create_app(engine, manage_lifecycle=True)
"""

from __future__ import annotations

from checkout_engine.web._app import client_ip, create_app
from checkout_engine.web._codecs import (
    VerifyRequest,
    VerifyResponse,
    DeliveryTotalsBody,
    ErrorBody,
    ConversionsRequest,
    ConversionsResponse,
)

__all__ = (
    "client_ip",
    "create_app",
    "VerifyRequest",
    "VerifyResponse",
    "DeliveryTotalsBody",
    "ErrorBody",
    "ConversionsRequest",
    "ConversionsResponse",
)
