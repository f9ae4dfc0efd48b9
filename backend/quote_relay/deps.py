"""Request dependencies shared by the HTTP routes."""

from __future__ import annotations

import hmac

from fastapi import Header, Request

from quote_relay.errors import UnauthorizedError


def parse_symbols(request: Request) -> frozenset[str]:
    """Symbol filter from ``symbols`` / ``symbols[]`` query params.

    Accepts repeated params and comma-separated lists; blanks are dropped.
    An empty result means "all symbols".
    """
    raw = request.query_params.getlist("symbols") + request.query_params.getlist("symbols[]")
    return frozenset(s.strip() for value in raw for s in value.split(",") if s.strip())


def require_read_token(
    request: Request,
    x_read_token: str | None = Header(default=None, alias="X-Read-Token"),
) -> None:
    """Check the optional read token (``?token=`` or ``X-Read-Token``)."""
    expected = request.app.state.settings.read_token
    if not expected:
        return
    provided = request.query_params.get("token") or x_read_token or ""
    if not hmac.compare_digest(provided.encode(), expected.encode()):
        raise UnauthorizedError()
